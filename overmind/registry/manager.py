# overmind/registry/manager.py
"""Plugin management system for overmind."""
import logging
from importlib import metadata
from typing import Any, Dict, List, Optional

import pluggy

from . import hookspecs

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "overmind.plugins"


class PluginManager:
    """Manages plugin discovery, loading and access."""

    def __init__(self, builtins: bool = True, entry_points: bool = True):
        """Initialize plugin manager.

        Args:
            builtins: Register the plugins shipped in overmind.plugins
            entry_points: Load third-party plugins from the `overmind.plugins` entry point group
        """
        self.builtins = builtins
        self.entry_points = entry_points
        self.pm = self._new_pm()
        self._directives: Dict[str, type] = {}
        self._extra: List[Any] = []
        self.discovered = False
        logger.info("PluginManager initialized (builtins=%s, entry_points=%s)", builtins, entry_points)

    @staticmethod
    def _new_pm() -> pluggy.PluginManager:
        pm = pluggy.PluginManager("overmind")
        pm.add_hookspecs(hookspecs)
        return pm

    def register(self, plugin: Any) -> None:
        """Register an extra plugin object/module; kept across rediscovery."""
        self._extra.append(plugin)
        self.pm.register(plugin)
        if self.discovered:
            self._collect_components()

    def discover_and_register(self) -> None:
        """Discover and register all available plugins (idempotent)."""
        self._directives.clear()
        self.pm = self._new_pm()

        if self.builtins:
            self._load_builtin_plugins()
        if self.entry_points:
            self._load_entry_point_plugins()
        for plugin in self._extra:
            self.pm.register(plugin)

        self._collect_components()
        self.discovered = True
        logger.info("Plugin discovery complete: %d directives, %d objective producers",
                    len(self._directives), len(self.pm.hook.register_objectives.get_hookimpls()))

    def _load_builtin_plugins(self) -> None:
        from ..plugins import colony_objectives, core_directives

        for module in (core_directives, colony_objectives):
            self.pm.register(module)
            logger.debug("Loaded builtin plugin: %s", module.__name__)

    def _load_entry_point_plugins(self) -> None:
        """Load plugins from package entry points."""
        try:
            eps = metadata.entry_points(group=ENTRY_POINT_GROUP)
        except Exception as e:
            logger.error("Entry point discovery failed: %s", e, exc_info=True)
            return
        for ep in eps:
            try:
                plugin = ep.load()
                self.pm.register(plugin)
                logger.info("Loaded plugin from entry point: %s", ep.name)
            except Exception as e:
                logger.error("Failed to load plugin %s: %s", ep.name, e, exc_info=True)

    @staticmethod
    def _origin_of(obj: Any) -> str:
        """Resolve origin of a class/function for clearer collision errors."""
        mod = getattr(obj, "__module__", "unknown")
        qual = getattr(obj, "__qualname__", getattr(obj, "__name__", "unknown"))
        return f"{mod}:{qual}"

    def _register_items(self, registry_map: Dict[str, Any], items: Dict[str, Any], kind: str) -> None:
        """
        Register items into a registry map with duplicate detection.
        Raises ValueError with detailed origin info on collisions.
        """
        for name, obj in items.items():
            if name in registry_map:
                existing = registry_map[name]
                msg = (
                    f"Duplicate {kind} registration detected for '{name}'. "
                    f"Existing: {self._origin_of(existing)}; New: {self._origin_of(obj)}. "
                    f"Names must be unique across all plugins."
                )
                logger.error(msg)
                raise ValueError(msg)
            registry_map[name] = obj
            logger.debug("Registered %s: %s (from %s)", kind, name, self._origin_of(obj))

    def _collect_components(self) -> None:
        self._directives.clear()
        for directive_dict in self.pm.hook.register_directives():
            if not directive_dict:
                continue
            self._register_items(self._directives, directive_dict, kind="directive")

    # ---------- Access ----------

    def get_directive(self, name: str) -> Optional[type]:
        return self._directives.get(name)

    def list_directives(self) -> List[str]:
        return list(self._directives.keys())

    def directive_classes(self) -> List[type]:
        return list(self._directives.values())

    def collect_objectives(self, overlord: Any, ctx: Any) -> List[List[Any]]:
        """Call every objective producer; a failing plugin is logged and skipped."""
        out: List[List[Any]] = []
        for impl in self.pm.hook.register_objectives.get_hookimpls():
            try:
                result = impl.function(overlord=overlord, ctx=ctx)
            except Exception as e:
                logger.error("Objective producer %s failed colony=%s tick=%d: %s",
                             impl.plugin_name, overlord.name, ctx.tick, e, exc_info=True)
                continue
            if result:
                out.extend(result)
        return out
