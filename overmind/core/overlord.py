# overmind/core/overlord.py
"""
Overlord: per-colony orchestrator of the scheduler.

Goals:
- init phase: directive init hooks -> fresh claims -> resource requests ->
  objectives (own producers plus plugins) -> homeostatic creep requests.
- run phase: directive run hooks -> safe mode trigger -> directive placement.
- Delegate worker queries to the ObjectiveGroup / ResourceRequestGroup.

Notes:
- Missing infrastructure (no hatchery, controller or storage) skips the
  sub-step that needs it; nothing here raises for an incomplete colony.
- World changes (flags, safe mode) go through ctx.commands only.
- Phases are timed explicitly with a PerformanceTracker.
"""

import logging
from typing import Any, Dict, List, Optional

from .claims import ClaimSet
from .colony import Colony
from .creeps import request_task as behavior_request_task
from .directives import Directive, DirectiveEmergency, DirectiveGuard
from .hatchery import PRIORITY_CORE, PRIORITY_WORKER
from .objective_group import ObjectiveGroup
from .objectives import Objective, ObjectiveType, make_objective
from .resource_requests import ResourceRequestGroup, TransportMode
from .roles import MineralSupplierSetup, Role, WorkerSetup
from .tasks import Task
from .world import INVADER_USERNAME, RESOURCE_ENERGY, StructureType, TickContext
from ..io.config_loader import OvermindConfig
from ..io.event_logger import EventLogger, PerformanceTracker, get_event_logger

log = logging.getLogger(__name__)


class Overlord:
    """Task assignment and spawn direction for one colony."""

    def __init__(self, colony: Colony, config: Optional[OvermindConfig] = None,
                 plugin_manager: Any = None, events: Optional[EventLogger] = None,
                 claims: Optional[ClaimSet] = None):
        """
        Args:
            colony: Colony this overlord runs
            config: Validated configuration (defaults if omitted)
            plugin_manager: Source of directive classes and objective producers
            events: Structured event sink
            claims: Claim set shared with other overlords. Its owner resets and
                seeds it each tick; without one the overlord keeps its own.
        """
        config = config or OvermindConfig()
        self.name = colony.name
        self.colony = colony
        colony.overlord = self
        self.settings = config.overlord
        self.thresholds = config.thresholds
        self.scheduler = config.scheduler
        self.plugin_manager = plugin_manager
        self.events = events or get_event_logger()

        self._owns_claims = claims is None
        self.claims = claims if claims is not None else ClaimSet(
            stale_warn_threshold=self.scheduler.stale_target_warn_threshold)
        self.objective_group = ObjectiveGroup(
            self.scheduler.objective_priorities,
            self.scheduler.capability_table(),
            claims=self.claims,
            room_penalty=self.scheduler.room_crossing_penalty,
            events=self.events,
        )
        self.resource_requests = ResourceRequestGroup(
            claims=self.claims, room_penalty=self.scheduler.room_crossing_penalty, events=self.events,
        )
        self.directives: List[Directive] = []
        self.perf = PerformanceTracker()

    @property
    def room(self):
        return self.colony.room

    # ---------- Directives ----------

    def _directive_classes(self) -> List[type]:
        if self.plugin_manager is not None:
            return self.plugin_manager.directive_classes()
        return [DirectiveGuard, DirectiveEmergency]

    def _build_directives(self) -> None:
        classes = self._directive_classes()
        directives = []
        for flag in sorted(self.colony.flags, key=lambda f: f.name):
            for cls in classes:
                if cls.filter(flag):
                    directives.append(cls(flag, self.colony))
                    break
        self.directives = directives

    def _run_directive_hook(self, phase: str, ctx: TickContext) -> None:
        for directive in self.directives:
            try:
                getattr(directive, phase)(ctx, self)
            except Exception as e:
                log.error("Directive %s %s failed colony=%s tick=%d: %s",
                          directive.name, phase, self.name, ctx.tick, e, exc_info=True)

    # ---------- Objectives ----------

    def _register_requests(self) -> int:
        count = 0
        for room in self.colony.rooms:
            count += self.resource_requests.register_from_room(room, self.thresholds, self.settings)
        return count

    def _register_objectives(self, ctx: TickContext) -> int:
        """Register objectives from across the colony in the objective group."""
        requests = self.resource_requests
        group = self.objective_group
        t = self.thresholds

        # Collect from sites that asked for a withdrawal, deposit to containers asking for a refill
        collect = [
            make_objective(ObjectiveType.COLLECT_ENERGY_MINING_SITE, ctx.get(r.target_id))
            for r in requests.resource_out[TransportMode.HAUL]
            if r.resource_type == RESOURCE_ENERGY and r.exclusive and ctx.get(r.target_id) is not None
        ]
        deposit = [
            make_objective(ObjectiveType.DEPOSIT_CONTAINER, ctx.get(r.target_id))
            for r in requests.resource_in[TransportMode.HAUL]
            if r.resource_type == RESOURCE_ENERGY and ctx.get(r.target_id) is not None
        ]
        count = group.register_objectives(collect, deposit, strict=False)

        for room in self.colony.rooms:
            pickup = [make_objective(ObjectiveType.PICKUP_ENERGY, d)
                      for d in room.dropped_energy if d.amount > t.dropped_energy_min]

            repair = [
                make_objective(ObjectiveType.REPAIR, s) for s in room.repairables
                if s.hits < s.hits_max
                and (s.structure_type not in (StructureType.CONTAINER, StructureType.ROAD)
                     or s.hits < t.repair_fraction * s.hits_max)
            ]

            build = [make_objective(ObjectiveType.BUILD, site) for site in room.structure_sites]
            build_road = [make_objective(ObjectiveType.BUILD_ROAD, site) for site in room.road_sites]

            fortify: List[Objective] = []
            if self.colony.incubator is None and t.fortify_count > 0:
                weakest = sorted(room.barriers, key=lambda b: b.hits)[:t.fortify_count]
                fortify = [make_objective(ObjectiveType.FORTIFY, b) for b in weakest]

            upgrade: List[Objective] = []
            if room.controller is not None and not room.controller.destroyed:
                upgrade = [make_objective(ObjectiveType.UPGRADE, room.controller)]

            count += group.register_objectives(pickup, repair, build, build_road, fortify, upgrade,
                                               strict=False)
        return count

    def _register_plugin_objectives(self, ctx: TickContext) -> int:
        if self.plugin_manager is None:
            return 0
        sets = self.plugin_manager.collect_objectives(self, ctx)
        # Types outside the configured buckets are dropped one by one, not per batch
        return self.objective_group.register_objectives(*sets, strict=False)

    def assign_task(self, creep: Any, ctx: TickContext) -> Optional[Task]:
        """Assign a task using the default ObjectiveGroup logic."""
        return self.objective_group.assign_task(creep, ctx)

    def request_task(self, creep: Any, ctx: TickContext) -> Optional[Task]:
        """Role behavior decides between requests, objectives and fallbacks."""
        return behavior_request_task(creep, self, ctx)

    # ---------- Spawning ----------

    def _register_creep_requests(self, ctx: TickContext) -> None:
        """Homeostatic spawn requests not handled by other colony structures."""
        hatchery = self.colony.hatchery
        room = self.colony.room
        if hatchery is None or room is None:
            return

        # A mineral supplier for the labs
        if room.terminal is not None and room.labs:
            if not self.colony.get_creeps_by_role(Role.MINERAL_SUPPLIER):
                spec = MineralSupplierSetup().create(self.colony, assignment=room.terminal,
                                                     pattern_repetition_limit=1)
                hatchery.enqueue(spec, PRIORITY_CORE, tick=ctx.tick)

        # Workers, once containers or storage are up
        needed = self.settings.incubation_workers_to_send if self.colony.incubator is not None else 1
        have = len(self.colony.get_creeps_by_role(Role.WORKER))
        if have < needed and room.storage_units:
            spec = WorkerSetup().create(self.colony, assignment=room.controller,
                                        pattern_repetition_limit=self.settings.worker_pattern_repetition_limit)
            hatchery.enqueue(spec, PRIORITY_WORKER, tick=ctx.tick)

    # ---------- Reactions ----------

    def _place_directives(self, ctx: TickContext) -> None:
        """Place flags for directives that should exist from the next tick on."""
        # Guard outposts and every room of colonies this one incubates
        rooms = list(self.colony.outposts)
        for colony in self.colony.incubating_colonies:
            rooms.extend(colony.rooms)
        for room in rooms:
            hostiles = room.live_hostiles
            if not hostiles:
                continue
            if any(DirectiveGuard.filter(f) for f in room.live_flags):
                continue
            if DirectiveGuard.create(hostiles[0].pos, ctx.commands):
                self.events.log_directive_placed(ctx.tick, self.name, DirectiveGuard.directive_name,
                                                 hostiles[0].pos.to_dict())

        # Emergency: catastrophic crash of a colony that is not being incubated
        hatchery = self.colony.hatchery
        room = self.colony.room
        if self.colony.is_incubating or hatchery is None or room is None:
            return
        threshold = self.thresholds.emergency_energy_threshold
        has_energy = room.energy_available >= threshold
        has_supply = (room.storage is not None and room.storage.energy > threshold
                      and bool(self.colony.get_creeps_by_role(Role.SUPPLIER)))
        has_miners = bool(self.colony.get_creeps_by_role(Role.MINER))
        flagged = any(DirectiveEmergency.filter(f) for f in room.live_flags)
        if not has_energy and not has_supply and not has_miners and not flagged:
            if DirectiveEmergency.create(hatchery.pos, ctx.commands):
                self.events.log_directive_placed(ctx.tick, self.name, DirectiveEmergency.directive_name,
                                                 hatchery.pos.to_dict())

    def _handle_safe_mode(self, ctx: TickContext) -> bool:
        """Safe mode when barriers are about to be breached by non-NPC hostiles."""
        room = self.colony.room
        if room is None or room.controller is None:
            return False
        critical = [b for b in room.barriers if b.hits < self.thresholds.critical_barrier_hits]
        hostiles = [h for h in room.live_hostiles if h.owner != INVADER_USERNAME]
        if critical and hostiles and self.colony.incubator is None:
            if room.controller.safe_mode_active:
                return False
            ctx.commands.activate_safe_mode(room.name)
            log.warning("safe mode requested colony=%s room=%s critical_barriers=%d hostiles=%d tick=%d",
                        self.name, room.name, len(critical), len(hostiles), ctx.tick)
            self.events.log_safe_mode(ctx.tick, self.name, room.name, len(critical), len(hostiles))
            return True
        return False

    # ---------- Phases ----------

    def init(self, ctx: TickContext) -> None:
        self.perf.start("init")
        self.colony.refresh(ctx)
        if self.colony.hatchery is not None:
            self.colony.hatchery.reset()

        # Directives first, so their effects are visible to this tick's matching
        self._build_directives()
        self._run_directive_hook("init", ctx)

        if self._owns_claims:
            self.claims.reset(ctx.tick)
            self.claims.seed(c.task for c in self.colony.creeps)
        self.objective_group.reset(self.claims)
        self.resource_requests.reset(self.claims)

        n_requests = self._register_requests()
        n_objectives = self._register_objectives(ctx) + self._register_plugin_objectives(ctx)
        self._register_creep_requests(ctx)
        duration = self.perf.end("init")
        log.debug("overlord init colony=%s requests=%d objectives=%d directives=%d tick=%d dur=%.2fms",
                  self.name, n_requests, n_objectives, len(self.directives), ctx.tick, duration * 1000)

    def run(self, ctx: TickContext) -> None:
        self.perf.start("run")
        self._run_directive_hook("run", ctx)
        self._handle_safe_mode(ctx)
        self._place_directives(ctx)
        self.perf.end("run")

    def summary(self) -> Dict[str, Any]:
        return {
            "colony": self.name,
            "objectives": self.objective_group.summary(),
            "requests": self.resource_requests.summary(),
            "claims": len(self.claims),
            "stale": self.claims.stale_count,
            "directives": [d.name for d in self.directives],
            "queued_spawns": self.colony.hatchery.queued_roles() if self.colony.hatchery else [],
        }

    def __repr__(self) -> str:
        return f"Overlord({self.name})"
