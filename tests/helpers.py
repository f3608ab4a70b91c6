"""Small world builders shared by the test modules."""
from functools import partial
from typing import Dict, List, Optional

from overmind.core.colony import Colony
from overmind.core.creeps import Creep
from overmind.core.roles import CARRY, MOVE, WORK
from overmind.core.world import Controller, Position, Room, Structure, StructureType, World

ROOM = "W1N1"
pos = partial(Position, room=ROOM)

WORKER_BODY = [WORK, CARRY, MOVE]


def spawn(name: str = "spawn1", energy: int = 300, x: int = 25, y: int = 25, room: str = ROOM) -> Structure:
    return Structure(name, Position(x, y, room), structure_type=StructureType.SPAWN, hits=5000, hits_max=5000,
                     store={"energy": energy} if energy else {}, store_capacity=300)


def controller(room: str = ROOM) -> Controller:
    return Controller(f"{room}-ctrl", Position(30, 8, room), level=2, progress_total=45000)


def make_room(name: str = ROOM, with_spawn: bool = True, spawn_energy: int = 300, **kwargs) -> Room:
    structures: List[Structure] = list(kwargs.pop("structures", []))
    if with_spawn:
        structures.insert(0, spawn(f"{name}-spawn1", energy=spawn_energy, room=name))
    kwargs.setdefault("controller", controller(name))
    return Room(name=name, structures=structures, **kwargs)


def make_creep(name: str, role: str, x: int = 25, y: int = 25, room: str = ROOM,
               carry: Optional[Dict[str, int]] = None, body: Optional[List[str]] = None,
               colony: str = ROOM) -> Creep:
    return Creep(name, role, colony, Position(x, y, room), body or WORKER_BODY, carry=carry)


def colony_for(world: World, name: str = ROOM, outposts=()) -> Colony:
    colony = Colony(name, name, outposts)
    colony.refresh(world.snapshot())
    return colony
