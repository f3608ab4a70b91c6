# overmind/core/world.py
"""
World model and the per-tick read-only context for the scheduler.

Goals:
- Plain entity types (structures, sites, dropped resources, controllers, hostiles, flags).
- Room views the scheduler scans every tick (barriers, repairables, towers, storage units, ...).
- TickContext: explicit snapshot built once per tick and passed into every orchestration call.
  The scheduler never reaches for ambient game state.
- CommandBuffer: outbox for the few world mutations the scheduler may request
  (flag placement/removal, safe mode). Applied by the engine after the run phase.

Notes:
- Entities are shared by reference with the World; removal marks them `destroyed`,
  so TickContext.get() returns None for targets that vanished mid-tick.
- Distance helpers are vectorized with NumPy; argmin/lexsort keep the first
  occurrence on ties, which gives the stable registration-order fallback.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import numpy as np

log = logging.getLogger(__name__)

RESOURCE_ENERGY = "energy"
ROOM_SIZE = 50
INVADER_USERNAME = "Invader"
SOURCE_REGEN_TIME = 300


class StructureType(str, Enum):
    SPAWN = "spawn"
    EXTENSION = "extension"
    TOWER = "tower"
    CONTAINER = "container"
    STORAGE = "storage"
    TERMINAL = "terminal"
    LAB = "lab"
    LINK = "link"
    ROAD = "road"
    WALL = "constructedWall"
    RAMPART = "rampart"


BARRIER_TYPES = frozenset({StructureType.WALL, StructureType.RAMPART})


# ---------- Positions ----------

@dataclass(frozen=True)
class Position:
    """Tile position inside a named room."""
    x: int
    y: int
    room: str

    def range_to(self, other: "Position") -> float:
        """Chebyshev range used for action ranges; infinite across rooms."""
        if self.room != other.room:
            return math.inf
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def in_range_to(self, other: "Position", rng: int) -> bool:
        return self.range_to(other) <= rng

    def step_toward(self, other: "Position") -> "Position":
        """One tile toward `other`. Changing rooms costs a single step."""
        if self.room != other.room:
            return Position(self.x, self.y, other.room)
        dx = (other.x > self.x) - (other.x < self.x)
        dy = (other.y > self.y) - (other.y < self.y)
        return Position(self.x + dx, self.y + dy, self.room)

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "room": self.room}


def distances_from(origin: Position, positions: Sequence[Position], room_penalty: float) -> np.ndarray:
    """Distances from `origin` to each position (same order as input)."""
    if not positions:
        return np.zeros(0, dtype=float)
    xs = np.fromiter((p.x for p in positions), dtype=float, count=len(positions))
    ys = np.fromiter((p.y for p in positions), dtype=float, count=len(positions))
    other_room = np.fromiter((p.room != origin.room for p in positions), dtype=bool, count=len(positions))
    d = np.hypot(xs - origin.x, ys - origin.y)
    return d + np.where(other_room, float(room_penalty), 0.0)


def nearest_index(origin: Position, positions: Sequence[Position], room_penalty: float) -> Optional[int]:
    """Index of the nearest position; ties resolve to the earliest entry."""
    if not positions:
        return None
    return int(np.argmin(distances_from(origin, positions, room_penalty)))


# ---------- Entities ----------

@dataclass(eq=False)
class Entity:
    id: str
    pos: Position
    destroyed: bool = field(default=False, init=False)


@dataclass(eq=False)
class Structure(Entity):
    structure_type: StructureType = StructureType.CONTAINER
    hits: int = 1000
    hits_max: int = 1000
    store: Dict[str, int] = field(default_factory=dict)
    store_capacity: int = 0
    # Free-form tag, e.g. "miningSite"/"upgradeSite" on containers
    tag: Optional[str] = None
    # Labs: mineral this structure wants delivered
    requested_resource: Optional[str] = None
    owner: Optional[str] = None

    @property
    def energy(self) -> int:
        return int(self.store.get(RESOURCE_ENERGY, 0))

    @property
    def store_used(self) -> int:
        return int(sum(self.store.values()))

    @property
    def free_capacity(self) -> int:
        return max(0, self.store_capacity - self.store_used)


@dataclass(eq=False)
class ConstructionSite(Entity):
    structure_type: StructureType = StructureType.EXTENSION
    progress: int = 0
    progress_total: int = 3000

    @property
    def remaining(self) -> int:
        return max(0, self.progress_total - self.progress)


@dataclass(eq=False)
class DroppedResource(Entity):
    resource_type: str = RESOURCE_ENERGY
    amount: int = 0


@dataclass(eq=False)
class Source(Entity):
    energy: int = 3000
    energy_capacity: int = 3000


@dataclass(eq=False)
class Controller(Entity):
    level: int = 1
    progress: int = 0
    progress_total: int = 200
    safe_mode_available: int = 1
    safe_mode_active: bool = False


@dataclass(eq=False)
class Hostile(Entity):
    owner: str = INVADER_USERNAME


@dataclass(eq=False)
class Flag(Entity):
    color: str = "white"
    secondary_color: str = "white"

    @property
    def name(self) -> str:
        return self.id


# ---------- Rooms ----------

@dataclass(eq=False)
class Room:
    """All objects of one room plus the derived views the scheduler scans."""
    name: str
    structures: List[Structure] = field(default_factory=list)
    construction_sites: List[ConstructionSite] = field(default_factory=list)
    dropped_resources: List[DroppedResource] = field(default_factory=list)
    sources: List[Source] = field(default_factory=list)
    hostiles: List[Hostile] = field(default_factory=list)
    flags: List[Flag] = field(default_factory=list)
    controller: Optional[Controller] = None

    def _of_type(self, *types: StructureType) -> List[Structure]:
        return [s for s in self.structures if s.structure_type in types and not s.destroyed]

    @property
    def spawns(self) -> List[Structure]:
        return self._of_type(StructureType.SPAWN)

    @property
    def extensions(self) -> List[Structure]:
        return self._of_type(StructureType.EXTENSION)

    @property
    def towers(self) -> List[Structure]:
        return self._of_type(StructureType.TOWER)

    @property
    def containers(self) -> List[Structure]:
        return self._of_type(StructureType.CONTAINER)

    @property
    def labs(self) -> List[Structure]:
        return self._of_type(StructureType.LAB)

    @property
    def links(self) -> List[Structure]:
        return self._of_type(StructureType.LINK)

    @property
    def storage(self) -> Optional[Structure]:
        found = self._of_type(StructureType.STORAGE)
        return found[0] if found else None

    @property
    def terminal(self) -> Optional[Structure]:
        found = self._of_type(StructureType.TERMINAL)
        return found[0] if found else None

    @property
    def storage_units(self) -> List[Structure]:
        """Containers plus storage."""
        units = self.containers
        if self.storage is not None:
            units.append(self.storage)
        return units

    @property
    def barriers(self) -> List[Structure]:
        return [s for s in self.structures if s.structure_type in BARRIER_TYPES and not s.destroyed]

    @property
    def repairables(self) -> List[Structure]:
        return [s for s in self.structures if s.structure_type not in BARRIER_TYPES and not s.destroyed]

    @property
    def dropped_energy(self) -> List[DroppedResource]:
        return [d for d in self.dropped_resources if d.resource_type == RESOURCE_ENERGY and not d.destroyed]

    @property
    def structure_sites(self) -> List[ConstructionSite]:
        return [c for c in self.construction_sites if c.structure_type != StructureType.ROAD and not c.destroyed]

    @property
    def road_sites(self) -> List[ConstructionSite]:
        return [c for c in self.construction_sites if c.structure_type == StructureType.ROAD and not c.destroyed]

    @property
    def live_flags(self) -> List[Flag]:
        return [f for f in self.flags if not f.destroyed]

    @property
    def live_hostiles(self) -> List[Hostile]:
        return [h for h in self.hostiles if not h.destroyed]

    @property
    def energy_available(self) -> int:
        return sum(s.energy for s in self.spawns + self.extensions)

    @property
    def energy_capacity_available(self) -> int:
        return sum(s.store_capacity for s in self.spawns + self.extensions)

    def objects(self) -> Iterator[Entity]:
        yield from self.structures
        yield from self.construction_sites
        yield from self.dropped_resources
        yield from self.sources
        yield from self.hostiles
        yield from self.flags
        if self.controller is not None:
            yield self.controller

    def remove(self, entity: Entity) -> bool:
        for bucket in (self.structures, self.construction_sites, self.dropped_resources,
                       self.sources, self.hostiles, self.flags):
            if entity in bucket:
                bucket.remove(entity)
                entity.destroyed = True
                return True
        return False


# ---------- Commands ----------

@dataclass(frozen=True)
class Command:
    kind: str
    payload: Dict[str, Any]


class CommandBuffer:
    """Outbox of world mutations requested during a tick."""

    CREATE_FLAG = "create_flag"
    REMOVE_FLAG = "remove_flag"
    SAFE_MODE = "activate_safe_mode"

    def __init__(self) -> None:
        self._commands: List[Command] = []
        self._pending_flags: Dict[str, Position] = {}

    def create_flag(self, pos: Position, name: str, color: str, secondary_color: str) -> bool:
        """Queue a flag; a name already queued this tick is ignored."""
        if name in self._pending_flags:
            return False
        self._pending_flags[name] = pos
        self._commands.append(Command(self.CREATE_FLAG, {
            "pos": pos, "name": name, "color": color, "secondary_color": secondary_color,
        }))
        return True

    def remove_flag(self, name: str) -> None:
        self._commands.append(Command(self.REMOVE_FLAG, {"name": name}))

    def activate_safe_mode(self, room_name: str) -> None:
        self._commands.append(Command(self.SAFE_MODE, {"room": room_name}))

    def of_kind(self, kind: str) -> List[Command]:
        return [c for c in self._commands if c.kind == kind]

    def __iter__(self) -> Iterator[Command]:
        return iter(list(self._commands))

    def __len__(self) -> int:
        return len(self._commands)


# ---------- Tick context ----------

@dataclass(frozen=True)
class TickContext:
    """Read-only view of the world for one tick."""
    tick: int
    rooms: Mapping[str, Room]
    creeps: Mapping[str, Any]
    objects: Mapping[str, Any]
    commands: CommandBuffer = field(default_factory=CommandBuffer)

    def get(self, object_id: Optional[str]) -> Optional[Any]:
        """Resolve an id; destroyed or unknown objects resolve to None."""
        if object_id is None:
            return None
        obj = self.objects.get(object_id)
        if obj is None or getattr(obj, "destroyed", False):
            return None
        return obj

    def room(self, name: Optional[str]) -> Optional[Room]:
        if name is None:
            return None
        return self.rooms.get(name)


# ---------- World ----------

class World:
    """Mutable simulation state. Only the engine, executor and hatchery mutate it."""

    def __init__(self, rooms: Optional[Iterable[Room]] = None, tick: int = 0):
        self.tick = tick
        self.rooms: Dict[str, Room] = {}
        self.creeps: Dict[str, Any] = {}
        for room in rooms or []:
            self.add_room(room)

    def add_room(self, room: Room) -> Room:
        if room.name in self.rooms:
            raise ValueError(f"Room already registered: {room.name}")
        self.rooms[room.name] = room
        return room

    def add_creep(self, creep: Any) -> Any:
        if creep.name in self.creeps:
            raise ValueError(f"Creep already registered: {creep.name}")
        self.creeps[creep.name] = creep
        return creep

    def remove_creep(self, name: str) -> None:
        creep = self.creeps.pop(name, None)
        if creep is not None:
            creep.destroyed = True

    def _index(self) -> Dict[str, Any]:
        index: Dict[str, Any] = {}
        for room in self.rooms.values():
            for obj in room.objects():
                if not obj.destroyed:
                    index[obj.id] = obj
        for creep in self.creeps.values():
            index[creep.name] = creep
        return index

    def remove_object(self, entity: Entity) -> bool:
        room = self.rooms.get(entity.pos.room)
        return bool(room and room.remove(entity))

    def snapshot(self) -> TickContext:
        """Build the read-only context for the current tick."""
        return TickContext(
            tick=self.tick,
            rooms=MappingProxyType(dict(self.rooms)),
            creeps=MappingProxyType(dict(self.creeps)),
            objects=MappingProxyType(self._index()),
            commands=CommandBuffer(),
        )

    def apply_commands(self, commands: CommandBuffer) -> int:
        """Apply queued commands; returns the number applied."""
        applied = 0
        for cmd in commands:
            if cmd.kind == CommandBuffer.CREATE_FLAG:
                pos: Position = cmd.payload["pos"]
                room = self.rooms.get(pos.room)
                if room is None:
                    log.warning("create_flag skipped: unknown room=%s", pos.room)
                    continue
                if any(f.name == cmd.payload["name"] for f in room.live_flags):
                    continue
                room.flags.append(Flag(cmd.payload["name"], pos,
                                       color=cmd.payload["color"],
                                       secondary_color=cmd.payload["secondary_color"]))
                applied += 1
            elif cmd.kind == CommandBuffer.REMOVE_FLAG:
                for room in self.rooms.values():
                    for flag in room.live_flags:
                        if flag.name == cmd.payload["name"]:
                            room.remove(flag)
                            applied += 1
            elif cmd.kind == CommandBuffer.SAFE_MODE:
                room = self.rooms.get(cmd.payload["room"])
                ctrl = room.controller if room else None
                if ctrl is None or ctrl.safe_mode_active or ctrl.safe_mode_available <= 0:
                    continue
                ctrl.safe_mode_available -= 1
                ctrl.safe_mode_active = True
                applied += 1
        if applied:
            log.debug("world commands applied=%d tick=%d", applied, self.tick)
        return applied

    def advance(self) -> None:
        """Age creeps and move to the next tick."""
        for name in list(self.creeps):
            creep = self.creeps[name]
            creep.ticks_to_live -= 1
            if creep.ticks_to_live <= 0:
                log.info("creep expired name=%s role=%s tick=%d", name, creep.role, self.tick)
                self.remove_creep(name)
        self.tick += 1
        if self.tick % SOURCE_REGEN_TIME == 0:
            for room in self.rooms.values():
                for source in room.sources:
                    source.energy = source.energy_capacity
