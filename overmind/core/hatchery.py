# overmind/core/hatchery.py
"""Hatchery: per-tick spawn queue of a colony.

Spawn requests are rebuilt every tick (wishlist semantics): whoever still needs
a creep enqueues it again during the init phase. Lower priority numbers spawn
first; equal priorities keep their enqueue order.
"""

import heapq
import itertools
import logging
from typing import Any, List, Optional, Tuple

from .creeps import Creep
from .objectives import Objective, ObjectiveType, make_objective
from .roles import CreepSpecification
from .world import Position, Room, Structure, nearest_index
from ..io.event_logger import EventLogger, get_event_logger

log = logging.getLogger(__name__)

PRIORITY_EMERGENCY = 0
PRIORITY_DEFENSE = 10
PRIORITY_CORE = 20
PRIORITY_WORKER = 50
PRIORITY_DEFAULT = 100

BATTERY_TAG = "hatcheryBattery"
# Link and battery must sit this close to a spawn
HATCHERY_RANGE = 2


class Hatchery:
    """Spawns and extensions of a colony's primary room plus the spawn queue."""

    def __init__(self, colony_name: str, room: Room, events: Optional[EventLogger] = None):
        self.colony_name = colony_name
        self.room = room
        self._events = events or get_event_logger()
        self._queue: List[Tuple[int, int, CreepSpecification]] = []
        self._seq = itertools.count()
        self._spawned = itertools.count(1)

    @property
    def id(self) -> str:
        return f"hatchery:{self.room.name}"

    @property
    def spawns(self):
        return self.room.spawns

    @property
    def pos(self) -> Position:
        spawns = self.spawns
        return spawns[0].pos if spawns else Position(25, 25, self.room.name)

    def _closest_to_spawns(self, structures: List[Structure]) -> Optional[Structure]:
        near = [s for s in structures
                if any(s.pos.in_range_to(sp.pos, HATCHERY_RANGE) for sp in self.spawns)]
        if not near:
            return None
        return near[nearest_index(self.pos, [s.pos for s in near], 0.0)]

    @property
    def link(self) -> Optional[Structure]:
        return self._closest_to_spawns(self.room.links)

    @property
    def battery(self) -> Optional[Structure]:
        """Energy buffer container: the tagged one, else an untagged container by a spawn."""
        tagged = [c for c in self.room.containers if c.tag == BATTERY_TAG]
        if tagged:
            return tagged[0]
        return self._closest_to_spawns([c for c in self.room.containers if c.tag is None])

    def refresh(self, room: Room) -> None:
        self.room = room

    # ---------- Queue ----------

    def reset(self) -> None:
        self._queue.clear()

    def enqueue(self, spec: CreepSpecification, priority: int = PRIORITY_DEFAULT, tick: int = 0) -> None:
        heapq.heappush(self._queue, (priority, next(self._seq), spec))
        log.debug("spawn enqueued colony=%s role=%s priority=%d parts=%d",
                  self.colony_name, spec.role, priority, len(spec.body))
        self._events.log_spawn_request(tick, self.colony_name, spec.role, priority, len(spec.body))

    def peek(self) -> Optional[CreepSpecification]:
        return self._queue[0][2] if self._queue else None

    def queued_roles(self) -> List[str]:
        return [spec.role for _, _, spec in sorted(self._queue)]

    def __len__(self) -> int:
        return len(self._queue)

    # ---------- Objectives ----------

    def supply_objectives(self) -> List[Objective]:
        """Supply objectives for spawns and extensions that are not full."""
        out = []
        for s in self.room.spawns + self.room.extensions:
            if s.free_capacity > 0 and s.store_capacity > 0:
                urgency = min(0.99, s.free_capacity / s.store_capacity)
                out.append(make_objective(ObjectiveType.SUPPLY, s, urgency=urgency))
        return out

    # ---------- Spawning ----------

    def _drain_energy(self, cost: int) -> None:
        # Spawns first, then extensions
        for s in self.room.spawns + self.room.extensions:
            take = min(cost, s.energy)
            if take:
                s.store["energy"] = s.energy - take
                cost -= take
            if cost <= 0:
                return

    def spawn_next(self, world: Any, tick: int) -> Optional[Any]:
        """Spawn the best queued creep if a spawn exists and energy suffices."""
        if not self._queue or not self.spawns:
            return None
        spec = self._queue[0][2]
        if spec.cost > self.room.energy_available:
            log.debug("spawn waiting colony=%s role=%s cost=%d available=%d",
                      self.colony_name, spec.role, spec.cost, self.room.energy_available)
            return None
        heapq.heappop(self._queue)
        self._drain_energy(spec.cost)

        name = f"{spec.role}_{tick}_{next(self._spawned)}"
        while name in world.creeps:
            name = f"{spec.role}_{tick}_{next(self._spawned)}"
        creep = Creep(name, spec.role, spec.colony, self.pos, spec.body, memory=spec.memory)
        world.add_creep(creep)
        log.info("creep spawned name=%s role=%s colony=%s cost=%d tick=%d",
                 name, spec.role, spec.colony, spec.cost, tick)
        return creep

    def __repr__(self) -> str:
        return f"Hatchery({self.room.name}, queued={len(self._queue)})"
