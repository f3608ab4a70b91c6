"""Tests for task execution against the world."""
import unittest

from overmind.core.executor import TaskExecutor
from overmind.core.roles import CARRY, MOVE, WORK
from overmind.core.tasks import Task, TaskAction, TaskStatus
from overmind.core.world import ConstructionSite, Source, Structure, StructureType, World
from overmind.io.event_logger import EventLogger, EventType

from .helpers import make_creep, make_room, pos


class TestTaskExecutor(unittest.TestCase):

    def setUp(self):
        self.storage = Structure("storage", pos(25, 30), structure_type=StructureType.STORAGE,
                                 store={"energy": 500}, store_capacity=1000000)
        self.site = ConstructionSite("site1", pos(27, 22), structure_type=StructureType.EXTENSION,
                                     progress_total=10)
        self.source = Source("src1", pos(10, 10))
        self.box = Structure("box", pos(11, 11), structure_type=StructureType.CONTAINER, store_capacity=2000)
        self.world = World([make_room(structures=[self.storage, self.box], construction_sites=[self.site],
                                      sources=[self.source])])
        self.events = EventLogger()
        self.executor = TaskExecutor(self.world, events=self.events)

    def bind(self, creep, action, target):
        task = Task(creep.name, action, target.id, target.pos, created_tick=0)
        task.activate()
        creep.task = task
        self.world.add_creep(creep)
        return task

    def test_idle_creep(self):
        creep = make_creep("c1", "worker")
        self.assertEqual(self.executor.execute(creep, self.world.snapshot()), "idle")

    def test_moves_until_in_range(self):
        creep = make_creep("c1", "queen", x=25, y=25)
        self.bind(creep, TaskAction.WITHDRAW, self.storage)
        self.assertEqual(self.executor.execute(creep, self.world.snapshot()), "moved")
        self.assertEqual((creep.pos.x, creep.pos.y), (25, 26))

    def test_withdraw_fills_creep(self):
        creep = make_creep("c1", "queen", x=25, y=29)
        task = self.bind(creep, TaskAction.WITHDRAW, self.storage)
        self.assertEqual(self.executor.execute(creep, self.world.snapshot()), "applied")
        self.assertEqual(creep.carried(), 50)
        self.assertEqual(self.storage.energy, 450)
        self.assertEqual(task.status, TaskStatus.COMPLETED)
        self.assertEqual(len(self.events.events_of(EventType.INTENT_EXECUTION)), 1)

    def test_build_finishes_site(self):
        creep = make_creep("c1", "worker", x=26, y=22, carry={"energy": 50}, body=[WORK, WORK, CARRY, MOVE])
        task = self.bind(creep, TaskAction.BUILD, self.site)
        self.executor.execute(creep, self.world.snapshot())
        room = self.world.rooms["W1N1"]
        self.assertTrue(self.site.destroyed)
        self.assertIn("site1-built", [s.id for s in room.extensions])
        self.assertEqual(creep.carried(), 40)
        self.assertEqual(task.status, TaskStatus.COMPLETED)

    def test_harvest_overflow_goes_to_container(self):
        creep = make_creep("m1", "miner", x=11, y=11, carry={"energy": 48}, body=[WORK, WORK, CARRY, MOVE])
        task = self.bind(creep, TaskAction.HARVEST, self.source)
        self.assertEqual(self.executor.execute(creep, self.world.snapshot()), "applied")
        self.assertEqual(self.source.energy, 2996)
        self.assertEqual(creep.carried(), 50)
        self.assertEqual(self.box.energy, 2)
        self.assertTrue(task.is_active)

    def test_missing_target_rejected(self):
        creep = make_creep("c1", "worker", carry={"energy": 50})
        task = self.bind(creep, TaskAction.BUILD, self.site)
        self.world.remove_object(self.site)
        self.assertEqual(self.executor.execute(creep, self.world.snapshot()), "rejected")
        self.assertEqual(task.reason, "target_missing")


if __name__ == "__main__":
    unittest.main()
