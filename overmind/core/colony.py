# overmind/core/colony.py
"""Colony: a primary room, its outposts, hatchery and creeps."""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

from .hatchery import Hatchery
from .world import Flag, Room, TickContext
from ..io.event_logger import EventLogger

log = logging.getLogger(__name__)


class Colony:
    def __init__(self, name: str, room_name: Optional[str] = None, outpost_names: Sequence[str] = (),
                 events: Optional[EventLogger] = None):
        self.name = name
        self.room_name = room_name or name
        self.outpost_names = list(outpost_names)
        self.room: Optional[Room] = None
        self.outposts: List[Room] = []
        self.hatchery: Optional[Hatchery] = None
        # Colony helping this one grow, and colonies this one is helping
        self.incubator: Optional["Colony"] = None
        self.incubating_colonies: List["Colony"] = []
        self.overlord: Any = None
        self.creeps: List[Any] = []
        self._by_role: Dict[str, List[Any]] = {}
        self._events = events

    def set_incubator(self, incubator: "Colony") -> None:
        self.incubator = incubator
        if self not in incubator.incubating_colonies:
            incubator.incubating_colonies.append(self)

    def refresh(self, ctx: TickContext) -> None:
        """Re-resolve rooms, hatchery and creeps against this tick's context."""
        self.room = ctx.room(self.room_name)
        self.outposts = [r for r in (ctx.room(n) for n in self.outpost_names) if r is not None]
        if self.room is not None and self.room.spawns:
            if self.hatchery is None:
                self.hatchery = Hatchery(self.name, self.room, events=self._events)
                log.info("hatchery established colony=%s room=%s", self.name, self.room.name)
            else:
                self.hatchery.refresh(self.room)
        elif self.hatchery is not None:
            log.warning("hatchery lost colony=%s", self.name)
            self.hatchery = None

        self.creeps = sorted(
            (c for c in ctx.creeps.values() if c.colony == self.name and not c.destroyed),
            key=lambda c: c.name,
        )
        by_role: Dict[str, List[Any]] = defaultdict(list)
        for creep in self.creeps:
            by_role[creep.role].append(creep)
        self._by_role = dict(by_role)

    @property
    def is_incubating(self) -> bool:
        """True while another colony is incubating this one."""
        return self.incubator is not None

    @property
    def rooms(self) -> List[Room]:
        return ([self.room] if self.room is not None else []) + self.outposts

    @property
    def flags(self) -> List[Flag]:
        return [f for room in self.rooms for f in room.live_flags]

    def get_creeps_by_role(self, role: Any) -> List[Any]:
        return list(self._by_role.get(getattr(role, "value", role), []))

    def __repr__(self) -> str:
        return f"Colony({self.name}, rooms={[r.name for r in self.rooms]}, creeps={len(self.creeps)})"
