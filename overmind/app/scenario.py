# overmind/app/scenario.py
"""Demo world: one colony room with an outpost, used by the runner and tests."""

import logging
from functools import partial
from typing import List, Optional, Tuple

from ..core.colony import Colony
from ..core.creeps import Creep
from ..core.engine import ColonyEngine
from ..core.roles import SETUPS, Role
from ..core.world import (
    ConstructionSite,
    Controller,
    DroppedResource,
    Position,
    Room,
    Source,
    Structure,
    StructureType,
    World,
)
from ..io.config_loader import OvermindConfig
from ..io.event_logger import EventLogger

log = logging.getLogger(__name__)


def build_colony_room(name: str) -> Room:
    """Primary room with a small hatchery, storage, towers, sites and barriers."""
    p = partial(Position, room=name)
    structures = [
        Structure(f"{name}-spawn1", p(25, 25), structure_type=StructureType.SPAWN, hits=5000, hits_max=5000,
                  store={"energy": 300}, store_capacity=300),
        Structure(f"{name}-tower1", p(28, 25), structure_type=StructureType.TOWER, hits=3000, hits_max=3000,
                  store={"energy": 200}, store_capacity=1000),
        Structure(f"{name}-storage", p(25, 30), structure_type=StructureType.STORAGE, hits=10000, hits_max=10000,
                  store={"energy": 20000}, store_capacity=1000000),
        Structure(f"{name}-mine1", p(11, 11), structure_type=StructureType.CONTAINER, hits=250000,
                  hits_max=250000, store={"energy": 600}, store_capacity=2000, tag="miningSite"),
        Structure(f"{name}-mine2", p(41, 41), structure_type=StructureType.CONTAINER, hits=250000,
                  hits_max=250000, store={"energy": 200}, store_capacity=2000, tag="miningSite"),
        Structure(f"{name}-upgrade", p(30, 10), structure_type=StructureType.CONTAINER, hits=100000,
                  hits_max=250000, store={"energy": 100}, store_capacity=2000, tag="upgradeSite"),
        Structure(f"{name}-road1", p(20, 20), structure_type=StructureType.ROAD, hits=2000, hits_max=5000),
        Structure(f"{name}-wall1", p(5, 5), structure_type=StructureType.WALL, hits=12000, hits_max=300000000),
        Structure(f"{name}-wall2", p(5, 6), structure_type=StructureType.WALL, hits=9000, hits_max=300000000),
        Structure(f"{name}-rampart1", p(6, 5), structure_type=StructureType.RAMPART, hits=7000,
                  hits_max=300000000),
    ]
    structures += [
        Structure(f"{name}-ext{i}", p(21 + i, 22), structure_type=StructureType.EXTENSION, hits=1000,
                  hits_max=1000, store={}, store_capacity=50)
        for i in range(1, 6)
    ]
    return Room(
        name=name,
        structures=structures,
        construction_sites=[
            ConstructionSite(f"{name}-site-ext6", p(27, 22), structure_type=StructureType.EXTENSION,
                             progress=0, progress_total=3000),
            ConstructionSite(f"{name}-site-road2", p(21, 21), structure_type=StructureType.ROAD,
                             progress=0, progress_total=300),
        ],
        dropped_resources=[DroppedResource(f"{name}-drop1", p(15, 15), amount=250)],
        sources=[Source(f"{name}-src1", p(10, 10)), Source(f"{name}-src2", p(40, 40))],
        controller=Controller(f"{name}-ctrl", p(30, 8), level=2, progress=0, progress_total=45000),
    )


def build_outpost_room(name: str) -> Room:
    p = partial(Position, room=name)
    return Room(
        name=name,
        structures=[
            Structure(f"{name}-mine1", p(9, 9), structure_type=StructureType.CONTAINER, hits=250000,
                      hits_max=250000, store={"energy": 800}, store_capacity=2000, tag="miningSite"),
        ],
        sources=[Source(f"{name}-src1", p(8, 8))],
    )


def _spawn_initial_creeps(world: World, colony: Colony, config: OvermindConfig) -> None:
    room = world.rooms[colony.room_name]
    capacity = room.energy_capacity_available
    sources = room.sources
    counts = [
        (Role.MINER, config.simulation.miners),
        (Role.HAULER, config.simulation.haulers),
        (Role.QUEEN, config.simulation.queens),
        (Role.WORKER, config.simulation.workers),
    ]
    spawn_pos = room.spawns[0].pos
    for role, n in counts:
        setup = SETUPS[role.value]
        for i in range(n):
            if role == Role.MINER and sources:
                src = sources[i % len(sources)].pos
                pos = Position(src.x + 1, src.y + 1, src.room)
            else:
                pos = spawn_pos
            body = setup.generate_body(capacity) or setup.prefix + setup.pattern + setup.suffix
            world.add_creep(Creep(f"{role.value}{i + 1}", role.value, colony.name, pos, body))


def build_demo_world(config: Optional[OvermindConfig] = None,
                     events: Optional[EventLogger] = None) -> Tuple[World, List[Colony]]:
    """World with one colony (primary room plus outposts) and its starting creeps."""
    config = config or OvermindConfig()
    sim = config.simulation
    world = World()
    world.add_room(build_colony_room(sim.colony_room))
    for outpost in sim.outpost_rooms:
        world.add_room(build_outpost_room(outpost))
    colony = Colony(sim.colony_room, sim.colony_room, sim.outpost_rooms, events=events)
    _spawn_initial_creeps(world, colony, config)
    log.info("demo world built rooms=%d creeps=%d", len(world.rooms), len(world.creeps))
    return world, [colony]


def build_demo_engine(config: Optional[OvermindConfig] = None, plugin_manager=None,
                      events: Optional[EventLogger] = None) -> ColonyEngine:
    config = config or OvermindConfig()
    world, colonies = build_demo_world(config, events=events)
    engine = ColonyEngine(world, config, plugin_manager=plugin_manager, events=events)
    for colony in colonies:
        engine.add_colony(colony)
    return engine
