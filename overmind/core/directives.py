# overmind/core/directives.py
"""Directives: reactive behaviors bound to colored flags.

A directive is placed by creating its flag through the tick's CommandBuffer;
the flag exists from the next tick on, and the owning Overlord instantiates the
directive from it every tick. Directive classes are collected through the
plugin registry (`register_directives`).
"""

import logging
from typing import Any, ClassVar, Optional

from .hatchery import PRIORITY_DEFENSE, PRIORITY_EMERGENCY
from .roles import EmergencyMinerSetup, GuardSetup, Role
from .world import CommandBuffer, Flag, Position, TickContext

log = logging.getLogger(__name__)

EMERGENCY_ENERGY_THRESHOLD = 1300


class Directive:
    """Base class: flag colors identify the directive type."""

    directive_name: ClassVar[str] = "directive"
    color: ClassVar[str] = "white"
    secondary_color: ClassVar[str] = "white"

    def __init__(self, flag: Flag, colony: Any):
        self.flag = flag
        self.colony = colony

    @property
    def name(self) -> str:
        return self.flag.name

    @property
    def pos(self) -> Position:
        return self.flag.pos

    @classmethod
    def filter(cls, flag: Flag) -> bool:
        return flag.color == cls.color and flag.secondary_color == cls.secondary_color

    @classmethod
    def flag_name(cls, pos: Position) -> str:
        return f"{cls.directive_name}:{pos.room}"

    @classmethod
    def create(cls, pos: Position, commands: CommandBuffer, name: Optional[str] = None) -> bool:
        """Queue this directive's flag; False if one with the same name is already queued."""
        created = commands.create_flag(pos, name or cls.flag_name(pos), cls.color, cls.secondary_color)
        if created:
            log.info("directive placed type=%s room=%s pos=(%d,%d)", cls.directive_name, pos.room, pos.x, pos.y)
        return created

    def init(self, ctx: TickContext, overlord: Any) -> None:
        pass

    def run(self, ctx: TickContext, overlord: Any) -> None:
        pass

    def remove(self, ctx: TickContext) -> None:
        log.info("directive removed name=%s tick=%d", self.name, ctx.tick)
        ctx.commands.remove_flag(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class DirectiveGuard(Directive):
    """Requests a guard for the flag's room until its hostiles are gone."""

    directive_name = "guard"
    color = "red"
    secondary_color = "red"

    def _guards(self) -> list:
        return [c for c in self.colony.get_creeps_by_role(Role.GUARD)
                if c.memory.get("assignment") == self.name]

    def init(self, ctx: TickContext, overlord: Any) -> None:
        hatchery = self.colony.hatchery
        if hatchery is None or self._guards():
            return
        spec = GuardSetup().create(self.colony, assignment=self.name)
        hatchery.enqueue(spec, PRIORITY_DEFENSE, tick=ctx.tick)

    def run(self, ctx: TickContext, overlord: Any) -> None:
        room = ctx.room(self.pos.room)
        if room is None or not room.live_hostiles:
            self.remove(ctx)


class DirectiveEmergency(Directive):
    """Spawns a minimal miner after a colony crash; lifted once spawn energy recovers."""

    directive_name = "emergency"
    color = "orange"
    secondary_color = "orange"

    def _threshold(self, overlord: Any) -> int:
        thresholds = getattr(overlord, "thresholds", None)
        return getattr(thresholds, "emergency_energy_threshold", EMERGENCY_ENERGY_THRESHOLD)

    def init(self, ctx: TickContext, overlord: Any) -> None:
        hatchery = self.colony.hatchery
        if hatchery is None or self.colony.get_creeps_by_role(Role.MINER):
            return
        spec = EmergencyMinerSetup().create(self.colony, assignment=self.name, pattern_repetition_limit=1)
        hatchery.enqueue(spec, PRIORITY_EMERGENCY, tick=ctx.tick)

    def run(self, ctx: TickContext, overlord: Any) -> None:
        room = self.colony.room
        if room is None:
            return
        recovered = room.energy_available >= self._threshold(overlord)
        if recovered or self.colony.get_creeps_by_role(Role.MINER):
            self.remove(ctx)
