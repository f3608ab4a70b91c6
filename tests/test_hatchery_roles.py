"""Tests for creep body setups and the hatchery spawn queue."""
import unittest

from overmind.core.colony import Colony
from overmind.core.hatchery import BATTERY_TAG, PRIORITY_CORE, PRIORITY_DEFAULT, PRIORITY_EMERGENCY, Hatchery
from overmind.core.roles import (
    CARRY,
    MAX_CREEP_SIZE,
    MOVE,
    WORK,
    CreepSpecification,
    GuardSetup,
    HaulerSetup,
    MinerSetup,
    Role,
    SETUPS,
    WorkerSetup,
)
from overmind.core.world import Structure, StructureType, World
from overmind.io.event_logger import EventLogger, EventType

from .helpers import colony_for, make_room, pos


class TestCreepSetup(unittest.TestCase):

    def test_worker_body_scales_with_energy(self):
        self.assertEqual(WorkerSetup().generate_body(550), [WORK, WORK, CARRY, CARRY, MOVE, MOVE])
        self.assertEqual(WorkerSetup().generate_body(199), [])

    def test_repetition_limit(self):
        self.assertEqual(len(WorkerSetup().generate_body(5000, max_repeats=2)), 6)

    def test_body_size_capped(self):
        body = WorkerSetup().generate_body(100000)
        self.assertLessEqual(len(body), MAX_CREEP_SIZE)
        self.assertEqual(len(body), 48)

    def test_prefix_and_suffix(self):
        self.assertEqual(MinerSetup().generate_body(550), [WORK, WORK, WORK, WORK, CARRY, MOVE, MOVE])
        hauler = HaulerSetup().generate_body(550)
        self.assertEqual(hauler.count(CARRY), 4)
        self.assertEqual(hauler.count(WORK), 1)

    def test_create_uses_room_capacity(self):
        world = World([make_room()])
        colony = colony_for(world)
        spec = WorkerSetup().create(colony, assignment=colony.room.controller)
        self.assertEqual(spec.body, [WORK, CARRY, MOVE])
        self.assertEqual(spec.cost, 200)
        self.assertEqual(spec.memory, {"role": "worker", "colony": "W1N1", "assignment": "W1N1-ctrl"})

    def test_create_falls_back_to_one_pattern(self):
        spec = GuardSetup().create(Colony("nowhere"), assignment="guard:W2N1")
        self.assertEqual(spec.body, GuardSetup.prefix + GuardSetup.pattern)
        self.assertEqual(spec.assignment, "guard:W2N1")

    def test_setups_cover_spawnable_roles(self):
        self.assertEqual(SETUPS[Role.MINER.value].role, Role.MINER)
        self.assertNotIn(Role.MANAGER.value, SETUPS)


class TestHatchery(unittest.TestCase):

    def setUp(self):
        self.ext = Structure("ext1", pos(22, 22), structure_type=StructureType.EXTENSION,
                             store={"energy": 50}, store_capacity=50)
        self.world = World([make_room(spawn_energy=200, structures=[self.ext])])
        self.room = self.world.rooms["W1N1"]
        self.events = EventLogger()
        self.hatchery = Hatchery("W1N1", self.room, events=self.events)

    def spec(self, role, body):
        return CreepSpecification(role=role, colony="W1N1", body=body, memory={"role": role})

    def test_priority_then_fifo(self):
        self.hatchery.enqueue(self.spec("worker", [WORK]), PRIORITY_DEFAULT)
        self.hatchery.enqueue(self.spec("queen", [CARRY]), PRIORITY_CORE)
        self.hatchery.enqueue(self.spec("hauler", [CARRY]), PRIORITY_CORE)
        self.hatchery.enqueue(self.spec("miner", [WORK]), PRIORITY_EMERGENCY)
        self.assertEqual(self.hatchery.queued_roles(), ["miner", "queen", "hauler", "worker"])
        self.assertEqual(len(self.events.events_of(EventType.SPAWN_REQUEST)), 4)

    def test_spawn_drains_spawns_first(self):
        self.hatchery.enqueue(self.spec("worker", [WORK, CARRY, MOVE, MOVE]))
        creep = self.hatchery.spawn_next(self.world, tick=5)
        self.assertEqual(creep.name, "worker_5_1")
        self.assertIn("worker_5_1", self.world.creeps)
        self.assertEqual(self.room.spawns[0].energy, 0)
        self.assertEqual(self.ext.energy, 0)
        self.assertEqual(creep.pos, self.room.spawns[0].pos)
        self.assertEqual(len(self.hatchery), 0)

    def test_spawn_waits_for_energy(self):
        self.hatchery.enqueue(self.spec("worker", [WORK, WORK, WORK]))
        self.assertIsNone(self.hatchery.spawn_next(self.world, tick=1))
        self.assertEqual(len(self.hatchery), 1)
        self.assertEqual(self.room.energy_available, 250)

    def test_supply_objectives_for_unfilled_structures(self):
        targets = [o.target_id for o in self.hatchery.supply_objectives()]
        self.assertEqual(targets, ["W1N1-spawn1"])

    def test_reset_clears_queue(self):
        self.hatchery.enqueue(self.spec("worker", [WORK]))
        self.hatchery.reset()
        self.assertIsNone(self.hatchery.peek())

    def test_no_link_or_battery(self):
        self.assertIsNone(self.hatchery.link)
        self.assertIsNone(self.hatchery.battery)

    def test_link_and_battery_beside_spawn(self):
        structures = [
            Structure("link-far", pos(40, 40), structure_type=StructureType.LINK, store_capacity=800),
            Structure("link1", pos(26, 27), structure_type=StructureType.LINK, store_capacity=800),
            Structure("mine", pos(25, 23), structure_type=StructureType.CONTAINER, store_capacity=2000,
                      tag="miningSite"),
            Structure("box", pos(24, 27), structure_type=StructureType.CONTAINER, store_capacity=2000),
        ]
        hatchery = Hatchery("W1N1", make_room(structures=structures), events=self.events)
        self.assertEqual(hatchery.link.id, "link1")
        self.assertEqual(hatchery.battery.id, "box")

    def test_tagged_battery_wins(self):
        structures = [
            Structure("box", pos(24, 27), structure_type=StructureType.CONTAINER, store_capacity=2000),
            Structure("tagged", pos(30, 30), structure_type=StructureType.CONTAINER, store_capacity=2000,
                      tag=BATTERY_TAG),
        ]
        hatchery = Hatchery("W1N1", make_room(structures=structures), events=self.events)
        self.assertEqual(hatchery.battery.id, "tagged")


if __name__ == "__main__":
    unittest.main()
