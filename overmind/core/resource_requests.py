# overmind/core/resource_requests.py
"""
ResourceRequestGroup: per-tick supply/demand declarations for haulable resources.

Goals:
- Two queues, `supply` (has resource, wants pickup) and `demand` (wants delivery),
  each split by transport mode (haul | carry).
- Highest urgency first, then nearest, then registration order.
- The per-tick ClaimSet is shared with the ObjectiveGroup, so a target handed out
  by one query path is not handed out again by the other within the same tick.

Notes:
- Requests are discarded at the end of the tick and rebuilt from the world scan.
- Shared sinks/sources (storage) are registered non-exclusive and never claimed.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .claims import ClaimSet
from .tasks import Task, TaskAction
from .world import Position, RESOURCE_ENERGY, ROOM_SIZE, Room, TickContext, distances_from
from ..io.event_logger import EventLogger, get_event_logger

log = logging.getLogger(__name__)


class TransportMode(str, Enum):
    HAUL = "haul"
    CARRY = "carry"


class RequestDirection(str, Enum):
    IN = "in"
    OUT = "out"


QUEUE_SUPPLY = "supply"
QUEUE_DEMAND = "demand"

_QUEUE_ALIASES = {
    QUEUE_SUPPLY: QUEUE_SUPPLY,
    "resource_out": QUEUE_SUPPLY,
    "resourceOut": QUEUE_SUPPLY,
    QUEUE_DEMAND: QUEUE_DEMAND,
    "resource_in": QUEUE_DEMAND,
    "resourceIn": QUEUE_DEMAND,
}


@dataclass(frozen=True)
class ResourceRequest:
    target_id: str
    pos: Position
    resource_type: str
    amount: int
    mode: TransportMode
    direction: RequestDirection
    urgency: float = 0.0
    exclusive: bool = True
    # Registration order inside the group; last tie-break
    index: int = 0

    @property
    def queue(self) -> str:
        return QUEUE_SUPPLY if self.direction == RequestDirection.OUT else QUEUE_DEMAND

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target_id,
            "pos": self.pos.to_dict(),
            "resource_type": self.resource_type,
            "amount": self.amount,
            "mode": self.mode.value,
            "direction": self.direction.value,
            "urgency": round(self.urgency, 4),
        }


class ResourceRequestGroup:
    """Supply and demand queues for one colony tick."""

    def __init__(self, claims: Optional[ClaimSet] = None, room_penalty: float = float(ROOM_SIZE),
                 events: Optional[EventLogger] = None):
        self.claims = claims if claims is not None else ClaimSet()
        self.room_penalty = room_penalty
        self._events = events or get_event_logger()
        self.supply: Dict[TransportMode, List[ResourceRequest]] = {m: [] for m in TransportMode}
        self.demand: Dict[TransportMode, List[ResourceRequest]] = {m: [] for m in TransportMode}
        self._counter = 0

    @property
    def resource_out(self) -> Dict[TransportMode, List[ResourceRequest]]:
        return self.supply

    @property
    def resource_in(self) -> Dict[TransportMode, List[ResourceRequest]]:
        return self.demand

    def reset(self, claims: Optional[ClaimSet] = None) -> None:
        if claims is not None:
            self.claims = claims
        for queue in (self.supply, self.demand):
            for bucket in queue.values():
                bucket.clear()
        self._counter = 0

    # ---------- Registration ----------

    def _add(self, target: Any, direction: RequestDirection, amount: int, resource_type: str,
             mode: Union[TransportMode, str], urgency: float, exclusive: bool) -> ResourceRequest:
        if amount <= 0:
            raise ValueError(f"Request amount must be positive, got {amount} for {target.id}")
        request = ResourceRequest(
            target_id=target.id,
            pos=target.pos,
            resource_type=resource_type,
            amount=int(amount),
            mode=TransportMode(mode),
            direction=direction,
            urgency=float(urgency),
            exclusive=exclusive,
            index=self._counter,
        )
        self._counter += 1
        queue = self.supply if direction == RequestDirection.OUT else self.demand
        queue[request.mode].append(request)
        return request

    def request_supply(self, target: Any, amount: int, resource_type: str = RESOURCE_ENERGY,
                       mode: Union[TransportMode, str] = TransportMode.HAUL, urgency: float = 0.0,
                       exclusive: bool = True) -> ResourceRequest:
        """Target has `amount` of a resource that should be picked up."""
        return self._add(target, RequestDirection.OUT, amount, resource_type, mode, urgency, exclusive)

    def request_demand(self, target: Any, amount: int, resource_type: str = RESOURCE_ENERGY,
                       mode: Union[TransportMode, str] = TransportMode.CARRY, urgency: float = 0.0,
                       exclusive: bool = True) -> ResourceRequest:
        """Target wants `amount` of a resource delivered."""
        return self._add(target, RequestDirection.IN, amount, resource_type, mode, urgency, exclusive)

    def register_from_room(self, room: Room, thresholds: Any, settings: Any) -> int:
        """Scan one room's structures and register the requests they imply.

        Args:
            room: Room to scan
            thresholds: ThresholdConfig (tower/container/lab levels)
            settings: OverlordSettings (unload_storage_buffer)

        Returns:
            Number of requests registered
        """
        before = self._counter

        # Hatchery energy: spawns and extensions below capacity
        for s in room.spawns + room.extensions:
            if s.free_capacity > 0 and s.store_capacity > 0:
                deficit = s.free_capacity / s.store_capacity
                self.request_demand(s, s.free_capacity, mode=TransportMode.CARRY, urgency=0.75 + 0.25 * deficit)

        for tower in room.towers:
            if tower.free_capacity > 0 and tower.energy < thresholds.tower_refill_fraction * tower.store_capacity:
                deficit = 1.0 - tower.energy / tower.store_capacity
                self.request_demand(tower, tower.free_capacity, mode=TransportMode.CARRY, urgency=deficit)

        for container in room.containers:
            if not container.store_capacity:
                continue
            if container.tag == "miningSite":
                if container.energy > thresholds.container_collect_threshold:
                    self.request_supply(container, container.energy, mode=TransportMode.HAUL,
                                        urgency=container.energy / container.store_capacity)
            elif (container.free_capacity > 0
                  and container.energy < thresholds.container_refill_fraction * container.store_capacity):
                deficit = 1.0 - container.energy / container.store_capacity
                self.request_demand(container, container.free_capacity, mode=TransportMode.HAUL, urgency=deficit)

        storage = room.storage
        if storage is not None and storage.energy > settings.unload_storage_buffer:
            self.request_supply(storage, storage.energy - settings.unload_storage_buffer,
                                mode=TransportMode.HAUL, urgency=0.0, exclusive=False)

        for lab in room.labs:
            mineral = lab.requested_resource
            if not mineral:
                continue
            have = lab.store.get(mineral, 0)
            want = min(thresholds.lab_mineral_threshold - have, lab.free_capacity)
            if want > 0:
                deficit = want / max(1, thresholds.lab_mineral_threshold)
                self.request_demand(lab, want, resource_type=mineral, mode=TransportMode.CARRY, urgency=deficit)

        terminal = room.terminal
        if terminal is not None:
            for resource, amount in sorted(terminal.store.items()):
                if resource != RESOURCE_ENERGY and amount > 0:
                    self.request_supply(terminal, amount, resource_type=resource,
                                        mode=TransportMode.CARRY, urgency=0.0, exclusive=False)

        count = self._counter - before
        if count:
            log.debug("requests registered room=%s count=%d", room.name, count)
        return count

    # ---------- Queries ----------

    def queue(self, queue_name: str) -> Dict[TransportMode, List[ResourceRequest]]:
        name = _QUEUE_ALIASES.get(queue_name)
        if name is None:
            raise ValueError(f"Unknown request queue '{queue_name}'")
        return self.supply if name == QUEUE_SUPPLY else self.demand

    def requests(self, queue_name: str, mode: Optional[Union[TransportMode, str]] = None,
                 resource_type: Optional[str] = None) -> List[ResourceRequest]:
        """Requests of one queue in registration order."""
        queue = self.queue(queue_name)
        modes = [TransportMode(mode)] if mode is not None else list(TransportMode)
        out = [r for m in modes for r in queue[m]]
        if resource_type is not None:
            out = [r for r in out if r.resource_type == resource_type]
        out.sort(key=lambda r: r.index)
        return out

    def get_prioritized_closest_request(
        self,
        position: Position,
        queue_name: str,
        mode: Optional[Union[TransportMode, str]] = None,
        resource_type: Optional[str] = None,
        exclude_claimed: bool = True,
        ctx: Optional[TickContext] = None,
    ) -> Optional[ResourceRequest]:
        """Highest urgency first, then nearest to `position`, then registration order.

        Returns None when nothing matches. With `ctx`, requests whose target
        vanished are skipped and counted as stale.
        """
        candidates = []
        for request in self.requests(queue_name, mode, resource_type):
            if exclude_claimed and request.exclusive and self.claims.is_claimed(request.target_id):
                continue
            if ctx is not None and ctx.get(request.target_id) is None:
                count = self.claims.note_stale(request.target_id, source="request")
                self._events.log_stale_target(ctx.tick, "?", request.target_id, count)
                continue
            candidates.append(request)
        if not candidates:
            return None
        urgency = np.array([r.urgency for r in candidates], dtype=float)
        dist = distances_from(position, [r.pos for r in candidates], self.room_penalty)
        order = np.arange(len(candidates))
        # lexsort: last key is primary
        best = int(np.lexsort((order, dist, -urgency))[0])
        return candidates[best]

    def bind_request(self, creep: Any, request: ResourceRequest, ctx: TickContext,
                     action: Optional[TaskAction] = None) -> Task:
        """Turn a request into an active task for `creep` and claim its target."""
        if action is None:
            action = TaskAction.WITHDRAW if request.direction == RequestDirection.OUT else TaskAction.TRANSFER
        task = Task(
            owner=creep.name,
            action=action,
            target_id=request.target_id,
            target_pos=request.pos,
            created_tick=ctx.tick,
            resource_type=request.resource_type,
            exclusive=request.exclusive,
        )
        if request.exclusive:
            self.claims.claim(request.target_id, creep.name)
        task.activate()
        creep.task = task
        log.info("request_matched creep=%s queue=%s mode=%s target=%s tick=%d",
                 creep.name, request.queue, request.mode.value, request.target_id, ctx.tick)
        self._events.log_request_matched(ctx.tick, creep.name, request.queue, request.to_dict())
        self._events.log_task_assigned(ctx.tick, creep.name, task.to_dict(), via="request")
        return task

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {
            QUEUE_SUPPLY: {m.value: len(self.supply[m]) for m in TransportMode},
            QUEUE_DEMAND: {m.value: len(self.demand[m]) for m in TransportMode},
        }

    def __len__(self) -> int:
        return sum(len(b) for q in (self.supply, self.demand) for b in q.values())

    def __repr__(self) -> str:
        s = self.summary()
        return f"ResourceRequestGroup(supply={s[QUEUE_SUPPLY]}, demand={s[QUEUE_DEMAND]})"
