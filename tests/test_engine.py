"""End-to-end runs of the demo colony."""
import logging
import unittest
from collections import Counter

from overmind.app.main import main, run_demo
from overmind.app.scenario import build_demo_engine
from overmind.core.colony import Colony
from overmind.core.creeps import HaulerBehavior
from overmind.core.engine import ColonyEngine
from overmind.core.world import DroppedResource, Position, World
from overmind.io.config_loader import load_config
from overmind.io.event_logger import EventLogger, EventType
from overmind.registry.manager import PluginManager

from .helpers import make_creep, make_room


def demo_engine(events=None):
    config = load_config("simulation:\n  ticks: 40\n")
    return build_demo_engine(config, plugin_manager=PluginManager(entry_points=False),
                             events=events or EventLogger())


class TestColonyEngine(unittest.TestCase):

    def test_runs_and_assigns(self):
        engine = demo_engine()
        summaries = engine.run(5)
        self.assertEqual([s["tick"] for s in summaries], [0, 1, 2, 3, 4])
        self.assertGreater(summaries[0]["assigned"], 0)
        self.assertEqual(engine.world.tick, 5)

    def test_deterministic(self):
        first, second = demo_engine(), demo_engine()
        for _ in range(30):
            first.tick()
            second.tick()
            self.assertEqual(first.assignments(), second.assignments())

    def test_exclusive_targets_never_shared(self):
        engine = demo_engine()
        for _ in range(60):
            engine.tick()
            targets = [c.task.target_id for c in engine.world.creeps.values()
                       if c.task is not None and c.task.is_active and c.task.exclusive]
            duplicates = [t for t, n in Counter(targets).items() if n > 1]
            self.assertEqual(duplicates, [], f"tick {engine.world.tick}")

    def test_events_flushed_to_handlers(self):
        events = EventLogger()
        seen = []
        events.add_handler(seen.extend)
        engine = demo_engine(events=events)
        engine.tick()
        types = {e.type for e in seen}
        self.assertIn(EventType.TASK_ASSIGNED, types)
        self.assertIn(EventType.PERFORMANCE, types)
        self.assertEqual(events.buffer, [])

    def test_duplicate_colony_rejected(self):
        engine = demo_engine()
        with self.assertRaises(ValueError):
            engine.add_colony(engine.colonies["W1N1"])

    def test_work_gets_done(self):
        engine = demo_engine()
        room = engine.world.rooms["W1N1"]
        engine.run(80)
        # The queen refills the empty extensions
        self.assertGreater(sum(e.energy for e in room.extensions), 0)
        self.assertGreater(room.controller.progress + sum(s.progress for s in room.construction_sites), 0)


class TestSharedOutposts(unittest.TestCase):

    def setUp(self):
        pile = DroppedResource("pile1", Position(20, 20, "W3N1"), amount=500)
        self.world = World([make_room("W1N1"), make_room("W2N1"),
                            make_room("W3N1", with_spawn=False, controller=None, dropped_resources=[pile])])
        self.engine = ColonyEngine(self.world, plugin_manager=PluginManager(entry_points=False),
                                   events=EventLogger())
        self.engine.add_colony(Colony("a", "W1N1", ["W3N1"]))

    def test_overlap_warned(self):
        with self.assertLogs("overmind.core.engine", level="WARNING") as cm:
            self.engine.add_colony(Colony("b", "W2N1", ["W3N1"]))
        self.assertTrue(any("W3N1" in line for line in cm.output))

    def test_target_claimed_once_across_colonies(self):
        self.engine.add_colony(Colony("b", "W2N1", ["W3N1"]))
        self.world.add_creep(make_creep("wa", "worker", room="W1N1", colony="a"))
        self.world.add_creep(make_creep("wb", "worker", room="W2N1", colony="b"))
        self.engine.tick()
        targets = {name: c.task.target_id for name, c in self.world.creeps.items() if c.task is not None}
        self.assertEqual(targets, {"wa": "pile1"})

    def test_hauler_ignores_piles_outside_its_colony(self):
        overlord = self.engine.overlords["a"]
        hauler = make_creep("h1", "hauler", x=9, y=9, room="W2N1", colony="a")
        self.world.rooms["W2N1"].dropped_resources.append(
            DroppedResource("pile2", Position(10, 10, "W2N1"), amount=50))
        self.world.add_creep(hauler)
        ctx = self.world.snapshot()
        overlord.init(ctx)
        self.assertIsNone(HaulerBehavior._pickup_adjacent(hauler, overlord, ctx))


class TestRunner(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self._handlers, self._level = list(root.handlers), root.level

    def tearDown(self):
        root = logging.getLogger()
        root.handlers[:] = self._handlers
        root.setLevel(self._level)

    def test_run_demo_summary(self):
        result = run_demo(load_config("simulation:\n  ticks: 3\n  summary_every: 1\n"), 3)
        self.assertEqual(result["ticks"], 3)
        self.assertEqual(result["overlords"][0]["colony"], "W1N1")
        self.assertIn("init", result["performance"])

    def test_main_bad_ticks(self):
        self.assertEqual(main(["--ticks", "many"]), 2)

    def test_main_runs(self):
        self.assertEqual(main(["--ticks", "2"]), 0)


if __name__ == "__main__":
    unittest.main()
