"""Tests for role behaviors choosing the next task."""
import unittest

from overmind.core.colony import Colony
from overmind.core.overlord import Overlord
from overmind.core.roles import CARRY, MOVE
from overmind.core.tasks import TaskAction
from overmind.core.world import Structure, StructureType, World
from overmind.io.event_logger import EventLogger

from .helpers import make_creep, make_room, pos

QUEEN_BODY = [CARRY, CARRY, MOVE]


def link(energy):
    return Structure("link1", pos(26, 27), structure_type=StructureType.LINK,
                     store={"energy": energy} if energy else {}, store_capacity=800)


def battery(energy):
    return Structure("battery", pos(24, 27), structure_type=StructureType.CONTAINER,
                     store={"energy": energy} if energy else {}, store_capacity=2000)


def storage(energy=10000):
    return Structure("storage", pos(25, 30), structure_type=StructureType.STORAGE,
                     store={"energy": energy}, store_capacity=1000000)


class TestQueenBehavior(unittest.TestCase):

    def request(self, structures, carry=None, spawn_energy=300):
        world = World([make_room(spawn_energy=spawn_energy, structures=structures)])
        overlord = Overlord(Colony("W1N1"), events=EventLogger())
        queen = make_creep("q1", "queen", x=25, y=26, carry=carry, body=QUEEN_BODY)
        world.add_creep(queen)
        ctx = world.snapshot()
        overlord.init(ctx)
        return overlord.request_task(queen, ctx)

    def test_empty_queen_draws_from_link_first(self):
        task = self.request([link(400), battery(500), storage()])
        self.assertEqual((task.action, task.target_id), (TaskAction.WITHDRAW, "link1"))

    def test_battery_before_storage(self):
        task = self.request([link(0), battery(500), storage()])
        self.assertEqual((task.action, task.target_id), (TaskAction.WITHDRAW, "battery"))

    def test_storage_last(self):
        task = self.request([storage()])
        self.assertEqual((task.action, task.target_id), (TaskAction.RECHARGE, "storage"))

    def test_loaded_queen_fills_demand_first(self):
        task = self.request([link(400), storage()], carry={"energy": 50}, spawn_energy=100)
        self.assertEqual((task.action, task.target_id), (TaskAction.TRANSFER, "W1N1-spawn1"))

    def test_loaded_queen_tops_up_without_demand(self):
        task = self.request([link(400), battery(500), storage()], carry={"energy": 50})
        self.assertEqual((task.action, task.target_id), (TaskAction.WITHDRAW, "link1"))

    def test_full_queen_moves_link_energy_to_battery(self):
        task = self.request([link(400), battery(500), storage()], carry={"energy": 100})
        self.assertEqual((task.action, task.target_id), (TaskAction.TRANSFER, "battery"))

    def test_full_queen_without_work_stays_idle(self):
        # Battery full and nothing to supply; storage is not a deposit target
        self.assertIsNone(self.request([link(400), battery(2000), storage()], carry={"energy": 100}))
        self.assertIsNone(self.request([storage()], carry={"energy": 100}))


if __name__ == "__main__":
    unittest.main()
