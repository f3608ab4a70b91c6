# overmind/core/engine.py
"""ColonyEngine: drives every colony through one simulation tick.

Tick order:
  snapshot -> refresh tasks -> overlord.init -> request tasks -> execute
  -> overlord.run -> spawn -> apply commands -> advance

Creeps and colonies are processed in name order, so an unchanged world
produces the same assignments on every run. Each phase is timed and the
breakdown is emitted as a `performance` event.
"""

import logging
from typing import Any, Dict, List, Optional

from .claims import ClaimSet
from .colony import Colony
from .overlord import Overlord
from .world import World
from .executor import TaskExecutor
from ..io.config_loader import OvermindConfig
from ..io.event_logger import EventLogger, PerformanceTracker, get_event_logger
from ..registry.manager import PluginManager

log = logging.getLogger(__name__)

PHASES = ("refresh", "init", "request", "execute", "run", "spawn", "commands")


class ColonyEngine:
    def __init__(self, world: World, config: Optional[OvermindConfig] = None,
                 plugin_manager: Any = None, events: Optional[EventLogger] = None):
        self.world = world
        self.config = config or OvermindConfig()
        self.pm = plugin_manager if plugin_manager is not None else PluginManager()
        if not self.pm.discovered:
            self.pm.discover_and_register()
        self._events = events or get_event_logger()
        self.executor = TaskExecutor(world, events=self._events)
        self.colonies: Dict[str, Colony] = {}
        self.overlords: Dict[str, Overlord] = {}
        # One claim set for every colony, so shared outposts cannot be double claimed
        self.claims = ClaimSet(stale_warn_threshold=self.config.scheduler.stale_target_warn_threshold)
        self.perf = PerformanceTracker()

    def add_colony(self, colony: Colony) -> Overlord:
        if colony.name in self.colonies:
            raise ValueError(f"Colony already registered: {colony.name}")
        shared = (set([colony.room_name] + colony.outpost_names)
                  & {n for c in self.colonies.values() for n in [c.room_name] + c.outpost_names})
        if shared:
            log.warning("colony rooms overlap name=%s rooms=%s", colony.name, sorted(shared))
        self.colonies[colony.name] = colony
        overlord = Overlord(colony, self.config, plugin_manager=self.pm, events=self._events,
                            claims=self.claims)
        self.overlords[colony.name] = overlord
        log.info("colony added name=%s room=%s outposts=%s", colony.name, colony.room_name, colony.outpost_names)
        return overlord

    def tick(self) -> Dict[str, Any]:
        """Run one tick; returns a small summary."""
        tick = self.world.tick
        self.perf.start("tick")
        ctx = self.world.snapshot()
        creeps = [ctx.creeps[name] for name in sorted(ctx.creeps)]
        overlords = [self.overlords[name] for name in sorted(self.overlords)]

        # Drop tasks that finished last tick or no longer make sense
        self.perf.start("refresh")
        dropped = 0
        for creep in creeps:
            task = creep.task
            if task is None:
                continue
            if task.is_active:
                task.refresh(creep, ctx)
                if task.is_finished:
                    self._events.log_task_finished(tick, creep.name, task.to_dict())
            if task.is_finished:
                creep.task = None
                dropped += 1
        self.perf.end("refresh")

        self.perf.start("init")
        self.claims.reset(tick)
        self.claims.seed(c.task for c in creeps)
        for overlord in overlords:
            overlord.init(ctx)
        self.perf.end("init")

        self.perf.start("request")
        assigned = 0
        for creep in creeps:
            if creep.task is not None:
                continue
            overlord = self.overlords.get(creep.colony)
            if overlord is None:
                log.debug("creep without colony name=%s colony=%s", creep.name, creep.colony)
                continue
            if overlord.request_task(creep, ctx) is not None:
                assigned += 1
        self.perf.end("request")

        self.perf.start("execute")
        results: Dict[str, int] = {}
        for creep in creeps:
            status = self.executor.execute(creep, ctx)
            results[status] = results.get(status, 0) + 1
        self.perf.end("execute")

        self.perf.start("run")
        for overlord in overlords:
            overlord.run(ctx)
        self.perf.end("run")

        self.perf.start("spawn")
        spawned = 0
        for name in sorted(self.colonies):
            hatchery = self.colonies[name].hatchery
            if hatchery is not None and hatchery.spawn_next(self.world, tick) is not None:
                spawned += 1
        self.perf.end("spawn")

        self.perf.start("commands")
        applied = self.world.apply_commands(ctx.commands)
        self.perf.end("commands")

        self.world.advance()
        total = self.perf.end("tick")
        self._events.log_performance_tick(tick, {p: self.perf.last(p) for p in PHASES}, total)
        self._events.flush()

        summary = {
            "tick": tick,
            "creeps": len(creeps),
            "dropped": dropped,
            "assigned": assigned,
            "executed": results,
            "spawned": spawned,
            "commands": applied,
        }
        log.debug("tick done %s dur=%.2fms", summary, total * 1000)
        return summary

    def run(self, ticks: int) -> List[Dict[str, Any]]:
        return [self.tick() for _ in range(ticks)]

    def assignments(self) -> Dict[str, Optional[Dict[str, Any]]]:
        """Current task per creep, for inspection and tests."""
        return {name: (c.task.to_dict() if c.task else None) for name, c in sorted(self.world.creeps.items())}
