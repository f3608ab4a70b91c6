"""Tests for the central logging setup."""
import io
import json
import logging
import unittest

from overmind.io.logging_setup import set_namespace_levels, setup_logging


class TestLoggingSetup(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self._handlers, self._level = list(root.handlers), root.level

    def tearDown(self):
        root = logging.getLogger()
        root.handlers[:] = self._handlers
        root.setLevel(self._level)

    def test_idempotent(self):
        setup_logging("INFO", stream=io.StringIO())
        handler = setup_logging("INFO", stream=io.StringIO())
        self.assertEqual(logging.getLogger().handlers, [handler])

    def test_json_lines_with_extras(self):
        stream = io.StringIO()
        setup_logging("DEBUG", json_lines=True, stream=stream)
        logging.getLogger("overmind.core.test").info("assigned", extra={"tick": 3, "creep": "w1"})
        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        self.assertEqual(record["message"], "assigned")
        self.assertEqual(record["tick"], 3)
        self.assertEqual(record["creep"], "w1")
        self.assertEqual(record["level"], "INFO")

    def test_key_value_format(self):
        stream = io.StringIO()
        setup_logging(logging.INFO, stream=stream)
        logging.getLogger("overmind.app").info("hello", extra={"colony": "W1N1"})
        line = stream.getvalue().strip()
        self.assertIn("hello", line)
        self.assertIn("'colony': 'W1N1'", line)

    def test_namespace_levels(self):
        set_namespace_levels({"overmind.core.executor": "WARNING"})
        self.assertEqual(logging.getLogger("overmind.core.executor").level, logging.WARNING)
        set_namespace_levels({"overmind.core.executor": logging.NOTSET})


if __name__ == "__main__":
    unittest.main()
