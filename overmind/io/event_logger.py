# overmind/io/event_logger.py
"""
Structured event logging for overmind with aggregation and performance tracking.

Goals:
- Unified event collection for scheduler decisions (assignments, request matches,
  spawn requests, directive placement, safe mode) and task execution
- Structured output (JSON-lines compatible) with event types and metadata
- Performance metrics tracking (tick times, phase durations)
- Configurable verbosity per event category

Event Types:
- task_assigned: Creep bound to an objective/request/fallback target
- task_finished: Task completed or invalidated
- request_matched: Resource request consumed by a creep
- spawn_request: Creep specification enqueued at a hatchery
- directive_placed: Guard/emergency flag created
- safe_mode: Safe mode triggered for a room
- stale_target: Claimed/registered target vanished before use
- intent_execution: Executor applied/rejected a task action
- performance: Tick timing and phase breakdowns
"""

import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Optional


log = logging.getLogger(__name__)


class EventType(str, Enum):
    """Categorized event types for filtering and analysis."""
    TASK_ASSIGNED = "task_assigned"
    TASK_FINISHED = "task_finished"
    REQUEST_MATCHED = "request_matched"
    SPAWN_REQUEST = "spawn_request"
    DIRECTIVE_PLACED = "directive_placed"
    SAFE_MODE = "safe_mode"
    STALE_TARGET = "stale_target"
    INTENT_EXECUTION = "intent_execution"
    PERFORMANCE = "performance"
    CUSTOM = "custom"


@dataclass
class Event:
    """Structured event with metadata."""
    type: EventType
    timestamp: float
    tick: int
    source: str
    data: Dict[str, Any]
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "tick": self.tick,
            "source": self.source,
            "data": self.data,
            "tags": self.tags,
        }


class PerformanceTracker:
    """Track timing for different phases of execution."""

    def __init__(self):
        self.timers: Dict[str, float] = {}
        self.durations: Dict[str, List[float]] = defaultdict(list)

    def start(self, name: str) -> None:
        """Start timing a phase."""
        self.timers[name] = time.perf_counter()

    def end(self, name: str) -> float:
        """End timing and record duration."""
        if name not in self.timers:
            return 0.0
        duration = time.perf_counter() - self.timers.pop(name)
        self.durations[name].append(duration)
        return duration

    def last(self, name: str) -> float:
        values = self.durations.get(name)
        return values[-1] if values else 0.0

    def get_stats(self) -> Dict[str, Dict[str, float]]:
        """Get timing statistics per phase."""
        stats = {}
        for name, durations in self.durations.items():
            if durations:
                stats[name] = {
                    "count": len(durations),
                    "total": sum(durations),
                    "mean": sum(durations) / len(durations),
                    "min": min(durations),
                    "max": max(durations),
                    "last": durations[-1],
                }
        return stats

    def reset(self) -> None:
        """Reset all timers and statistics."""
        self.timers.clear()
        self.durations.clear()


class EventLogger:
    """Central event logger with filtering and output control."""

    def __init__(self,
                 buffer_size: int = 10000,
                 auto_flush_interval: int = 100,
                 enabled_types: Optional[List[EventType]] = None):
        """
        Initialize event logger.

        Args:
            buffer_size: Maximum events to buffer before auto-flush
            auto_flush_interval: Flush every N events
            enabled_types: Event types to log (None = all)
        """
        self.buffer: List[Event] = []
        self.buffer_size = buffer_size
        self.auto_flush_interval = auto_flush_interval
        self.enabled_types = set(enabled_types) if enabled_types else set(EventType)

        self.event_counts: Dict[EventType, int] = defaultdict(int)
        self.performance = PerformanceTracker()
        self._lock = Lock()
        self._event_counter = 0

        self._handlers: List[Callable[[List[Event]], None]] = []
        self._add_default_handler()

    def _add_default_handler(self) -> None:
        """Add default JSON-lines logger handler."""
        def json_handler(events: List[Event]) -> None:
            for event in events:
                if log.isEnabledFor(logging.DEBUG):
                    log.debug("event: %s", json.dumps(event.to_dict(), ensure_ascii=False, default=str))
        self._handlers.append(json_handler)

    def add_handler(self, handler: Callable[[List[Event]], None]) -> None:
        """Add custom event handler."""
        self._handlers.append(handler)

    def is_enabled(self, event_type: EventType) -> bool:
        return event_type in self.enabled_types

    def log_event(self, event_type: EventType, tick: int, source: str,
                  data: Dict[str, Any], tags: Optional[List[str]] = None) -> None:
        """Log a structured event."""
        if not self.is_enabled(event_type):
            return

        with self._lock:
            event = Event(
                type=event_type,
                timestamp=time.time(),
                tick=tick,
                source=source,
                data=data,
                tags=tags or [],
            )
            self.buffer.append(event)
            self.event_counts[event_type] += 1
            self._event_counter += 1

            if (self._event_counter % self.auto_flush_interval == 0 or
                    len(self.buffer) >= self.buffer_size):
                self._flush_locked()

    def log_task_assigned(self, tick: int, creep: str, task: Dict[str, Any], via: str) -> None:
        """Log a task bound to a creep (via = objective | request | fallback)."""
        self.log_event(
            EventType.TASK_ASSIGNED,
            tick,
            creep,
            {"via": via, "task": task},
            tags=[f"action:{task.get('action')}", f"via:{via}"],
        )

    def log_task_finished(self, tick: int, creep: str, task: Dict[str, Any]) -> None:
        self.log_event(
            EventType.TASK_FINISHED,
            tick,
            creep,
            {"task": task},
            tags=[f"status:{task.get('status')}"],
        )

    def log_request_matched(self, tick: int, creep: str, queue: str, request: Dict[str, Any]) -> None:
        self.log_event(
            EventType.REQUEST_MATCHED,
            tick,
            creep,
            {"queue": queue, "request": request},
            tags=[f"queue:{queue}", f"mode:{request.get('mode')}"],
        )

    def log_spawn_request(self, tick: int, colony: str, role: str, priority: int, body_size: int) -> None:
        self.log_event(
            EventType.SPAWN_REQUEST,
            tick,
            colony,
            {"role": role, "priority": priority, "body_size": body_size},
            tags=[f"role:{role}"],
        )

    def log_directive_placed(self, tick: int, colony: str, directive: str, position: Dict[str, Any]) -> None:
        self.log_event(
            EventType.DIRECTIVE_PLACED,
            tick,
            colony,
            {"directive": directive, "pos": position},
            tags=[f"directive:{directive}"],
        )

    def log_safe_mode(self, tick: int, colony: str, room: str, critical_barriers: int, hostiles: int) -> None:
        self.log_event(
            EventType.SAFE_MODE,
            tick,
            colony,
            {"room": room, "critical_barriers": critical_barriers, "hostiles": hostiles},
            tags=["safe_mode"],
        )

    def log_stale_target(self, tick: int, colony: str, target_id: str, count: int) -> None:
        self.log_event(
            EventType.STALE_TARGET,
            tick,
            colony,
            {"target": target_id, "count": count},
            tags=["stale"],
        )

    def log_intent_execution(self, tick: int, creep: str, action: str, status: str,
                             details: Optional[Dict[str, Any]] = None) -> None:
        """Log execution result of a task action."""
        self.log_event(
            EventType.INTENT_EXECUTION,
            tick,
            creep,
            {"action": action, "status": status, "details": details or {}},
            tags=[f"action:{action}", f"status:{status}"],
        )

    def log_performance_tick(self, tick: int, phase_durations: Dict[str, float],
                             total_duration: float) -> None:
        """Log performance metrics for a tick."""
        self.log_event(
            EventType.PERFORMANCE,
            tick,
            "system",
            {
                "total_ms": total_duration * 1000,
                "phases_ms": {k: v * 1000 for k, v in phase_durations.items()},
            },
            tags=["performance", f"tick:{tick}"],
        )

    def events_of(self, event_type: EventType) -> List[Event]:
        """Buffered (unflushed) events of one type."""
        with self._lock:
            return [e for e in self.buffer if e.type == event_type]

    def flush(self) -> int:
        """Flush buffered events to handlers."""
        with self._lock:
            return self._flush_locked()

    def _flush_locked(self) -> int:
        if not self.buffer:
            return 0

        events_to_flush = self.buffer[:]
        self.buffer.clear()

        for handler in self._handlers:
            try:
                handler(events_to_flush)
            except Exception as e:
                log.error("Event handler error: %s", e, exc_info=True)

        return len(events_to_flush)

    def get_stats(self) -> Dict[str, Any]:
        """Get logger statistics."""
        with self._lock:
            return {
                "total_events": self._event_counter,
                "buffered": len(self.buffer),
                "by_type": {k.value: v for k, v in self.event_counts.items()},
                "performance": self.performance.get_stats(),
            }

    def reset(self) -> None:
        with self._lock:
            self.buffer.clear()
            self.event_counts.clear()
            self.performance.reset()
            self._event_counter = 0


# Global instance for convenient access
_global_logger: Optional[EventLogger] = None


def get_event_logger() -> EventLogger:
    """Get or create global event logger."""
    global _global_logger
    if _global_logger is None:
        _global_logger = EventLogger()
    return _global_logger


def configure_event_logger(**kwargs) -> EventLogger:
    """Configure and return global event logger."""
    global _global_logger
    _global_logger = EventLogger(**kwargs)
    return _global_logger
