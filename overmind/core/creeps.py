# overmind/core/creeps.py
"""
Creeps and the role behaviors that pull tasks from the scheduler.

Goals:
- Creep: carry store, body and the single task it owns.
- One behavior object per role, looked up in BEHAVIORS by role name.
- request_task(creep, overlord, ctx) is the only entry point workers need.

Notes:
- Behaviors only bind tasks; the executor applies them.
- A creep with a finished task is treated as idle. The engine drops finished
  tasks at the start of the next tick.
"""

import logging
from typing import Any, Dict, List, Optional

from .roles import CARRY, CARRY_CAPACITY, CREEP_LIFE_TIME, Role
from .resource_requests import QUEUE_DEMAND, QUEUE_SUPPLY, TransportMode
from .tasks import Task, TaskAction
from .world import Position, RESOURCE_ENERGY, Room, TickContext, nearest_index

log = logging.getLogger(__name__)


class Creep:
    """A worker agent of one colony."""

    def __init__(self, name: str, role: str, colony: str, pos: Position, body: List[str],
                 ticks_to_live: int = CREEP_LIFE_TIME, carry: Optional[Dict[str, int]] = None,
                 memory: Optional[Dict[str, Any]] = None):
        self.name = name
        self.role = getattr(role, "value", role)
        self.colony = colony
        self.pos = pos
        self.body = list(body)
        self.ticks_to_live = ticks_to_live
        self.carry: Dict[str, int] = dict(carry or {})
        self.memory: Dict[str, Any] = dict(memory or {})
        self.task: Optional[Task] = None
        self.destroyed = False

    @property
    def id(self) -> str:
        return self.name

    @property
    def carry_capacity(self) -> int:
        return CARRY_CAPACITY * self.body.count(CARRY)

    @property
    def carry_total(self) -> int:
        return sum(self.carry.values())

    @property
    def free_capacity(self) -> int:
        return max(0, self.carry_capacity - self.carry_total)

    @property
    def is_idle(self) -> bool:
        return self.task is None or self.task.is_finished

    def carried(self, resource_type: str = RESOURCE_ENERGY) -> int:
        return self.carry.get(resource_type, 0)

    def get_active_bodyparts(self, part: str) -> int:
        return self.body.count(part)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "role": self.role,
            "colony": self.colony,
            "pos": self.pos.to_dict(),
            "carry": dict(self.carry),
            "ticks_to_live": self.ticks_to_live,
            "task": self.task.to_dict() if self.task else None,
        }

    def __repr__(self) -> str:
        return f"Creep({self.name}, role={self.role}, pos=({self.pos.x},{self.pos.y},{self.pos.room}))"


def bind_target(creep: Creep, overlord: Any, action: TaskAction, target: Any, ctx: TickContext,
                resource_type: str = RESOURCE_ENERGY, exclusive: bool = False) -> Optional[Task]:
    """Bind a task to a raw target (no objective or request behind it)."""
    task = Task(
        owner=creep.name,
        action=action,
        target_id=target.id,
        target_pos=target.pos,
        created_tick=ctx.tick,
        resource_type=resource_type,
        exclusive=exclusive,
    )
    if not task.is_valid_creep(creep) or not task.is_valid_target(target):
        return None
    if exclusive:
        if overlord.claims.is_claimed(target.id):
            return None
        overlord.claims.claim(target.id, creep.name)
    task.activate()
    creep.task = task
    log.debug("task_assigned creep=%s action=%s target=%s via=fallback tick=%d",
              creep.name, action.value, target.id, ctx.tick)
    overlord.events.log_task_assigned(ctx.tick, creep.name, task.to_dict(), via="fallback")
    return task


def _colony_room(overlord: Any, room_name: str) -> Optional[Room]:
    """The named room if it belongs to the overlord's colony, else None."""
    for room in overlord.colony.rooms:
        if room.name == room_name:
            return room
    return None


# ---------- Behaviors ----------

class Behavior:
    """Decides what an idle creep of one role does next."""

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        return overlord.assign_task(creep, ctx)

    @staticmethod
    def _match(creep: Creep, overlord: Any, ctx: TickContext, queue: str,
               mode: Optional[TransportMode] = None, resource_type: Optional[str] = RESOURCE_ENERGY,
               action: Optional[TaskAction] = None) -> Optional[Task]:
        requests = overlord.resource_requests
        request = requests.get_prioritized_closest_request(
            creep.pos, queue, mode=mode, resource_type=resource_type, ctx=ctx)
        if request is None:
            return None
        task = Task(creep.name, action or (TaskAction.WITHDRAW if queue == QUEUE_SUPPLY else TaskAction.TRANSFER),
                    request.target_id, request.pos, ctx.tick, resource_type=request.resource_type)
        if not task.is_valid_creep(creep):
            return None
        return requests.bind_request(creep, request, ctx, action=task.action)


class HaulerBehavior(Behavior):
    """Moves energy from mining sites to where it is wanted."""

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        if creep.free_capacity > 0:
            task = self._pickup_adjacent(creep, overlord, ctx)
            if task is not None:
                return task
        if creep.carried() == 0:
            return (self._match(creep, overlord, ctx, QUEUE_SUPPLY, mode=TransportMode.HAUL)
                    or overlord.assign_task(creep, ctx))
        # Containers that asked for a refill come first, storage takes the rest
        task = self._match(creep, overlord, ctx, QUEUE_DEMAND, mode=TransportMode.HAUL)
        if task is not None:
            return task
        storage = overlord.colony.room.storage if overlord.colony.room else None
        if storage is not None:
            task = bind_target(creep, overlord, TaskAction.TRANSFER, storage, ctx)
            if task is not None:
                return task
        return overlord.assign_task(creep, ctx)

    @staticmethod
    def _pickup_adjacent(creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        room = _colony_room(overlord, creep.pos.room)
        if room is None:
            return None
        for dropped in room.dropped_energy:
            if creep.pos.in_range_to(dropped.pos, 1):
                task = bind_target(creep, overlord, TaskAction.PICKUP, dropped, ctx, exclusive=True)
                if task is not None:
                    return task
        return None


class QueenBehavior(Behavior):
    """Keeps spawns, extensions and towers filled (queens and suppliers).

    Energy comes from the hatchery link first, then the battery, then storage.
    With nothing to fill, the queen shuttles energy from the link into the
    battery. Anything still unresolved goes to the objective group.
    """

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        hatchery = overlord.colony.hatchery
        if creep.carried() > 0:
            task = (self._match(creep, overlord, ctx, QUEUE_DEMAND, mode=TransportMode.CARRY)
                    or self._recharge(creep, overlord, hatchery, ctx))
        else:
            task = (self._recharge(creep, overlord, hatchery, ctx)
                    or self._match(creep, overlord, ctx, QUEUE_SUPPLY))
        if task is None and hatchery is not None:
            task = self._idle(creep, overlord, hatchery, ctx)
        return task or overlord.assign_task(creep, ctx)

    @staticmethod
    def _recharge(creep: Creep, overlord: Any, hatchery: Any, ctx: TickContext) -> Optional[Task]:
        if creep.free_capacity == 0:
            return None
        if hatchery is not None:
            for source in (hatchery.link, hatchery.battery):
                if source is not None and source.energy > 0:
                    task = bind_target(creep, overlord, TaskAction.WITHDRAW, source, ctx)
                    if task is not None:
                        return task
        storage = overlord.colony.room.storage if overlord.colony.room else None
        if storage is not None and storage.energy > 0:
            return bind_target(creep, overlord, TaskAction.RECHARGE, storage, ctx)
        return None

    @staticmethod
    def _idle(creep: Creep, overlord: Any, hatchery: Any, ctx: TickContext) -> Optional[Task]:
        # A queen with room left has already drawn from the link in _recharge
        link, battery = hatchery.link, hatchery.battery
        if link is None or battery is None or link.energy == 0 or battery.free_capacity == 0:
            return None
        return bind_target(creep, overlord, TaskAction.TRANSFER, battery, ctx)


class WorkerBehavior(Behavior):
    """Builds, repairs, fortifies and upgrades (workers and upgraders)."""

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        if creep.carried() == 0:
            storage = overlord.colony.room.storage if overlord.colony.room else None
            buffer = overlord.settings.storage_buffer.get(creep.role, 0)
            if storage is not None and storage.energy > buffer:
                task = bind_target(creep, overlord, TaskAction.RECHARGE, storage, ctx)
                if task is not None:
                    return task
        return overlord.assign_task(creep, ctx)


class MineralSupplierBehavior(Behavior):
    """Carries minerals from the terminal to labs that asked for them."""

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        carried = [r for r, amount in sorted(creep.carry.items()) if amount > 0]
        requests = overlord.resource_requests
        if carried:
            for resource in carried:
                task = self._match(creep, overlord, ctx, QUEUE_DEMAND, mode=TransportMode.CARRY,
                                   resource_type=resource)
                if task is not None:
                    return task
            return None
        for demand in requests.requests(QUEUE_DEMAND, mode=TransportMode.CARRY):
            if demand.resource_type == RESOURCE_ENERGY:
                continue
            task = self._match(creep, overlord, ctx, QUEUE_SUPPLY, mode=TransportMode.CARRY,
                               resource_type=demand.resource_type)
            if task is not None:
                return task
        return None


class MinerBehavior(Behavior):
    """Harvests the nearest source, preferring one no other miner works."""

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        room = _colony_room(overlord, creep.pos.room) or overlord.colony.room
        if room is None:
            return None
        sources = [s for s in room.sources if not s.destroyed and s.energy > 0]
        free = [s for s in sources if not overlord.claims.is_claimed(s.id)]
        for pool, exclusive in ((free, True), (sources, False)):
            if not pool:
                continue
            idx = nearest_index(creep.pos, [s.pos for s in pool], overlord.objective_group.room_penalty)
            task = bind_target(creep, overlord, TaskAction.HARVEST, pool[idx], ctx, exclusive=exclusive)
            if task is not None:
                return task
        return None


class GuardBehavior(Behavior):
    """Moves to the nearest hostile in the colony's rooms."""

    def request_task(self, creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
        hostiles = [h for room in overlord.colony.rooms for h in room.live_hostiles]
        if not hostiles:
            return None
        idx = nearest_index(creep.pos, [h.pos for h in hostiles], overlord.objective_group.room_penalty)
        return bind_target(creep, overlord, TaskAction.GO_TO, hostiles[idx], ctx)


BEHAVIORS: Dict[str, Behavior] = {
    Role.HAULER.value: HaulerBehavior(),
    Role.QUEEN.value: QueenBehavior(),
    Role.SUPPLIER.value: QueenBehavior(),
    Role.MANAGER.value: QueenBehavior(),
    Role.WORKER.value: WorkerBehavior(),
    Role.UPGRADER.value: WorkerBehavior(),
    Role.MINERAL_SUPPLIER.value: MineralSupplierBehavior(),
    Role.MINER.value: MinerBehavior(),
    Role.GUARD.value: GuardBehavior(),
}


def request_task(creep: Creep, overlord: Any, ctx: TickContext) -> Optional[Task]:
    """Give an idle creep its next task; None leaves it idle this tick."""
    behavior = BEHAVIORS.get(getattr(creep.role, "value", creep.role))
    if behavior is None:
        log.debug("no behavior for role=%s creep=%s", creep.role, creep.name)
        return None
    return behavior.request_task(creep, overlord, ctx)
