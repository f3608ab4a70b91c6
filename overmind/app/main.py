# overmind/app/main.py
"""Demo runner for the colony scheduler.

Starts a demo run:
- Configuration from YAML/JSON (CLI --config or ENV OVERMIND_CONFIG), defaults otherwise
- PluginManager loads built-in and entry-point plugins (directives, objective producers)
- ColonyEngine drives the demo colony: snapshot -> overlord.init -> task requests
  -> execution -> overlord.run -> spawning -> world commands

Usage: python -m overmind [--config PATH] [--ticks N] [--json-logs]
"""

import json
import logging
import os
import sys
from typing import List, Optional

from ..io.config_loader import OvermindConfig, load_config
from ..io.event_logger import configure_event_logger
from ..io.logging_setup import add_file_handler, set_namespace_levels, setup_logging
from ..registry.manager import PluginManager
from .scenario import build_demo_engine

log = logging.getLogger(__name__)


def _arg_value(argv: List[str], flag: str) -> Optional[str]:
    if flag not in argv:
        return None
    idx = argv.index(flag)
    if idx + 1 >= len(argv):
        log.error("%s given without a value", flag)
        sys.exit(2)
    return argv[idx + 1]


def _resolve_config(argv: List[str]) -> OvermindConfig:
    """
    Priority:
      1) CLI: --config <path>
      2) ENV: OVERMIND_CONFIG=<path>
      3) built-in defaults
    """
    path = _arg_value(argv, "--config") or os.environ.get("OVERMIND_CONFIG")
    if not path:
        return load_config(None)
    try:
        return load_config(path)
    except (OSError, ValueError) as e:
        log.error("Failed to load config '%s': %s", path, e, exc_info=True)
        sys.exit(3)


def run_demo(config: OvermindConfig, ticks: int) -> dict:
    pm = PluginManager()
    pm.discover_and_register()
    engine = build_demo_engine(config, plugin_manager=pm)
    every = config.simulation.summary_every
    for _ in range(ticks):
        summary = engine.tick()
        if summary["tick"] % every == 0:
            log.info("tick=%d creeps=%d assigned=%d spawned=%d executed=%s",
                     summary["tick"], summary["creeps"], summary["assigned"],
                     summary["spawned"], summary["executed"])
    return {
        "ticks": ticks,
        "creeps": len(engine.world.creeps),
        "overlords": [o.summary() for o in engine.overlords.values()],
        "performance": {k: round(v["mean"] * 1000, 3) for k, v in engine.perf.get_stats().items()},
    }


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    # Logging first with defaults so config errors are visible
    setup_logging(level=logging.INFO, json_lines="--json-logs" in argv)
    config = _resolve_config(argv)

    json_lines = "--json-logs" in argv or config.logging.json_lines
    setup_logging(level=config.logging.level, json_lines=json_lines)
    if config.logging.namespaces:
        set_namespace_levels(config.logging.namespaces)
    if config.logging.file:
        add_file_handler(config.logging.file, level=logging.getLevelName(config.logging.level))

    configure_event_logger(buffer_size=5000, auto_flush_interval=50, enabled_types=None)

    ticks_arg = _arg_value(argv, "--ticks")
    try:
        ticks = int(ticks_arg) if ticks_arg is not None else config.simulation.ticks
    except ValueError:
        log.error("--ticks must be an integer, got '%s'", ticks_arg)
        return 2
    log.info("Simulation starts with %d ticks", ticks)

    result = run_demo(config, ticks)
    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
