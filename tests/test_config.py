"""Tests for configuration loading and validation."""
import tempfile
import unittest
from pathlib import Path

from overmind.core.objectives import DEFAULT_OBJECTIVE_PRIORITIES, ObjectiveType
from overmind.io.config_loader import (
    OvermindConfig,
    load_config,
    load_raw_config,
    parse_config,
)


class TestConfigLoader(unittest.TestCase):

    def test_defaults(self):
        cfg = load_config(None)
        self.assertEqual(cfg.scheduler.objective_priorities, DEFAULT_OBJECTIVE_PRIORITIES)
        self.assertEqual(cfg.overlord.incubation_workers_to_send, 3)
        self.assertEqual(cfg.overlord.storage_buffer["worker"], 50000)
        self.assertEqual(cfg.thresholds.emergency_energy_threshold, 1300)
        self.assertIn(ObjectiveType.UPGRADE, cfg.scheduler.capability_table()["worker"])

    def test_yaml_text_overrides(self):
        cfg = load_config(
            "thresholds:\n"
            "  fortify_count: 2\n"
            "overlord:\n"
            "  worker_pattern_repetition_limit: 4\n"
            "scheduler:\n"
            "  objective_priorities: [supply, build, upgrade]\n"
            "logging:\n"
            "  level: debug\n"
        )
        self.assertEqual(cfg.thresholds.fortify_count, 2)
        self.assertEqual(cfg.overlord.worker_pattern_repetition_limit, 4)
        self.assertEqual(cfg.scheduler.objective_priorities, ["supply", "build", "upgrade"])
        self.assertEqual(cfg.logging.level, "DEBUG")

    def test_json_text(self):
        cfg = load_config('{"simulation": {"ticks": 12, "outpost_rooms": []}}')
        self.assertEqual(cfg.simulation.ticks, 12)
        self.assertEqual(cfg.simulation.outpost_rooms, [])

    def test_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "overmind.yaml"
            path.write_text("scheduler:\n  room_crossing_penalty: 10\n", encoding="utf-8")
            self.assertEqual(load_config(str(path)).scheduler.room_crossing_penalty, 10.0)
            self.assertEqual(load_config(path).scheduler.room_crossing_penalty, 10.0)

    def test_unknown_objective_rejected(self):
        with self.assertRaises(ValueError) as cm:
            load_config("scheduler:\n  objective_priorities: [build, teleport]\n")
        self.assertIn("teleport", str(cm.exception))

    def test_duplicate_priority_rejected(self):
        with self.assertRaises(ValueError):
            parse_config({"scheduler": {"objective_priorities": ["build", "build"]}})

    def test_unknown_capability_rejected(self):
        with self.assertRaises(ValueError):
            parse_config({"scheduler": {"capabilities": {"worker": ["dance"]}}})

    def test_bad_values_rejected(self):
        with self.assertRaises(ValueError):
            parse_config({"thresholds": {"repair_fraction": 2.0}})
        with self.assertRaises(ValueError):
            parse_config({"logging": {"level": "LOUD"}})

    def test_top_level_must_be_mapping(self):
        with self.assertRaises(ValueError):
            load_raw_config("- a\n- b\n")

    def test_parse_error(self):
        with self.assertRaises(ValueError):
            load_raw_config("thresholds: [unclosed\n")

    def test_empty_text_gives_defaults(self):
        self.assertEqual(load_raw_config("\n"), {})

    def test_settings_frozen(self):
        cfg = OvermindConfig()
        with self.assertRaises(ValueError):
            cfg.thresholds.fortify_count = 9

    def test_unknown_buffer_role_warns(self):
        with self.assertLogs("overmind.io.config_loader", level="WARNING"):
            parse_config({"overlord": {"storage_buffer": {"nobody": 5}}})


if __name__ == "__main__":
    unittest.main()
