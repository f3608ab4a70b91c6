# overmind/core/executor.py
"""Reference task execution against the World.

Provides:
- TaskExecutor: one step of movement or one action per creep per tick
- Action handlers returning (applied, details) for structured logging

Notes:
- Behaviors only bind tasks; all creep/world mutations happen here.
- Movement is a straight step toward the target; pathfinding is not modeled.
"""

import logging
import math
from typing import Any, Dict, Optional, Tuple

from .roles import WORK
from .tasks import TaskAction
from .world import (
    ConstructionSite,
    DroppedResource,
    RESOURCE_ENERGY,
    Structure,
    StructureType,
    TickContext,
    World,
)
from ..io.event_logger import EventLogger, get_event_logger

log = logging.getLogger(__name__)

BUILD_POWER = 5
REPAIR_POWER = 100
UPGRADE_CONTROLLER_POWER = 1
HARVEST_POWER = 2

# hits_max / store capacity of structures finished from construction sites
BUILT_STRUCTURE_STATS: Dict[StructureType, Tuple[int, int]] = {
    StructureType.SPAWN: (5000, 300),
    StructureType.EXTENSION: (1000, 50),
    StructureType.TOWER: (3000, 1000),
    StructureType.CONTAINER: (250000, 2000),
    StructureType.STORAGE: (10000, 1000000),
    StructureType.ROAD: (5000, 0),
    StructureType.WALL: (300000000, 0),
    StructureType.RAMPART: (300000000, 0),
}


class TaskExecutor:
    """Applies bound tasks and reports per-creep results."""

    def __init__(self, world: World, events: Optional[EventLogger] = None):
        self.world = world
        self._events = events or get_event_logger()
        self._handlers = {
            TaskAction.WITHDRAW: self._apply_withdraw,
            TaskAction.RECHARGE: self._apply_withdraw,
            TaskAction.PICKUP: self._apply_pickup,
            TaskAction.TRANSFER: self._apply_transfer,
            TaskAction.BUILD: self._apply_build,
            TaskAction.REPAIR: self._apply_repair,
            TaskAction.FORTIFY: self._apply_repair,
            TaskAction.UPGRADE: self._apply_upgrade,
            TaskAction.HARVEST: self._apply_harvest,
            TaskAction.GO_TO: self._apply_go_to,
        }

    def execute(self, creep: Any, ctx: TickContext) -> str:
        """Run one tick of the creep's task. Returns idle | moved | applied | rejected."""
        task = creep.task
        if task is None or not task.is_active:
            return "idle"
        target = ctx.get(task.target_id)
        if target is None:
            task.invalidate("target_missing")
            self._finished(creep, ctx)
            return "rejected"

        if not creep.pos.in_range_to(target.pos, task.range):
            creep.pos = creep.pos.step_toward(target.pos)
            if task.action == TaskAction.GO_TO and creep.pos.in_range_to(target.pos, task.range):
                task.complete()
                self._finished(creep, ctx)
            return "moved"

        applied, details = self._handlers[task.action](creep, target, task.resource_type)
        status = "applied" if applied else "rejected"
        self._events.log_intent_execution(ctx.tick, creep.name, task.action.value, status, details)
        if not applied:
            log.debug("action rejected creep=%s action=%s target=%s details=%s",
                      creep.name, task.action.value, task.target_id, details)
            task.invalidate(details.get("reason", "rejected"))
        else:
            task.finish_after_action(creep, None if getattr(target, "destroyed", False) else target)
        if task.is_finished:
            self._finished(creep, ctx)
        return status

    def _finished(self, creep: Any, ctx: TickContext) -> None:
        self._events.log_task_finished(ctx.tick, creep.name, creep.task.to_dict())

    # ---------- Handlers ----------

    @staticmethod
    def _move_resource(src: Dict[str, int], dst: Dict[str, int], resource: str, amount: int) -> None:
        src[resource] = src.get(resource, 0) - amount
        if src[resource] <= 0:
            src.pop(resource, None)
        dst[resource] = dst.get(resource, 0) + amount

    def _apply_withdraw(self, creep: Any, target: Any, resource: str) -> Tuple[bool, Dict[str, Any]]:
        amount = min(creep.free_capacity, target.store.get(resource, 0))
        if amount <= 0:
            return False, {"reason": "nothing_to_withdraw"}
        self._move_resource(target.store, creep.carry, resource, amount)
        return True, {"amount": amount, "resource": resource}

    def _apply_pickup(self, creep: Any, target: Any, resource: str) -> Tuple[bool, Dict[str, Any]]:
        amount = min(creep.free_capacity, target.amount)
        if amount <= 0:
            return False, {"reason": "nothing_to_pickup"}
        target.amount -= amount
        creep.carry[target.resource_type] = creep.carried(target.resource_type) + amount
        if target.amount <= 0:
            self.world.remove_object(target)
        return True, {"amount": amount, "resource": target.resource_type}

    def _apply_transfer(self, creep: Any, target: Any, resource: str) -> Tuple[bool, Dict[str, Any]]:
        amount = min(creep.carried(resource), target.free_capacity)
        if amount <= 0:
            return False, {"reason": "target_full_or_creep_empty"}
        self._move_resource(creep.carry, target.store, resource, amount)
        return True, {"amount": amount, "resource": resource}

    def _apply_build(self, creep: Any, target: ConstructionSite, resource: str) -> Tuple[bool, Dict[str, Any]]:
        amount = min(BUILD_POWER * creep.get_active_bodyparts(WORK), creep.carried(RESOURCE_ENERGY), target.remaining)
        if amount <= 0:
            return False, {"reason": "cannot_build"}
        creep.carry[RESOURCE_ENERGY] = creep.carried(RESOURCE_ENERGY) - amount
        target.progress += amount
        details: Dict[str, Any] = {"progress": target.progress, "total": target.progress_total}
        if target.remaining == 0:
            details["built"] = self._finish_site(target)
        return True, details

    def _finish_site(self, site: ConstructionSite) -> str:
        room = self.world.rooms[site.pos.room]
        hits_max, capacity = BUILT_STRUCTURE_STATS.get(site.structure_type, (1000, 0))
        # Barriers start at 1 hit, everything else at full health
        hits = 1 if site.structure_type in (StructureType.WALL, StructureType.RAMPART) else hits_max
        structure = Structure(f"{site.id}-built", site.pos, structure_type=site.structure_type,
                              hits=hits, hits_max=hits_max, store_capacity=capacity)
        self.world.remove_object(site)
        room.structures.append(structure)
        log.info("structure built id=%s type=%s room=%s", structure.id, site.structure_type.value, room.name)
        return structure.id

    def _apply_repair(self, creep: Any, target: Structure, resource: str) -> Tuple[bool, Dict[str, Any]]:
        missing = target.hits_max - target.hits
        energy = min(creep.get_active_bodyparts(WORK), creep.carried(RESOURCE_ENERGY),
                     math.ceil(missing / REPAIR_POWER))
        if energy <= 0:
            return False, {"reason": "cannot_repair"}
        creep.carry[RESOURCE_ENERGY] = creep.carried(RESOURCE_ENERGY) - energy
        target.hits = min(target.hits_max, target.hits + energy * REPAIR_POWER)
        return True, {"hits": target.hits, "energy": energy}

    def _apply_upgrade(self, creep: Any, target: Any, resource: str) -> Tuple[bool, Dict[str, Any]]:
        energy = min(UPGRADE_CONTROLLER_POWER * creep.get_active_bodyparts(WORK), creep.carried(RESOURCE_ENERGY))
        if energy <= 0:
            return False, {"reason": "cannot_upgrade"}
        creep.carry[RESOURCE_ENERGY] = creep.carried(RESOURCE_ENERGY) - energy
        target.progress += energy
        if target.progress >= target.progress_total:
            target.level += 1
            target.progress -= target.progress_total
            target.progress_total *= 2
            log.info("controller upgraded id=%s level=%d", target.id, target.level)
        return True, {"progress": target.progress, "level": target.level}

    def _apply_harvest(self, creep: Any, target: Any, resource: str) -> Tuple[bool, Dict[str, Any]]:
        amount = min(HARVEST_POWER * creep.get_active_bodyparts(WORK), target.energy)
        if amount <= 0:
            return False, {"reason": "source_empty"}
        target.energy -= amount
        creep.carry[RESOURCE_ENERGY] = creep.carried(RESOURCE_ENERGY) + amount
        if creep.carry_capacity == 0:
            self._unload_miner(creep, creep.carried(RESOURCE_ENERGY))
        elif creep.carry_total > creep.carry_capacity:
            self._unload_miner(creep, creep.carry_total - creep.carry_capacity)
        return True, {"amount": amount}

    def _unload_miner(self, creep: Any, amount: int) -> None:
        """Miners drop their output into an adjacent container, else onto the floor."""
        room = self.world.rooms.get(creep.pos.room)
        if room is None or amount <= 0:
            return
        for container in room.containers:
            if creep.pos.in_range_to(container.pos, 1) and container.free_capacity > 0:
                moved = min(amount, container.free_capacity)
                self._move_resource(creep.carry, container.store, RESOURCE_ENERGY, moved)
                amount -= moved
                if amount <= 0:
                    return
        creep.carry[RESOURCE_ENERGY] = creep.carried(RESOURCE_ENERGY) - amount
        for pile in room.dropped_energy:
            if pile.pos == creep.pos:
                pile.amount += amount
                return
        pile_id = f"drop-{creep.pos.room}-{creep.pos.x}-{creep.pos.y}-{self.world.tick}"
        room.dropped_resources.append(DroppedResource(pile_id, creep.pos, amount=amount))

    def _apply_go_to(self, creep: Any, target: Any, resource: str) -> Tuple[bool, Dict[str, Any]]:
        return True, {"arrived": True}
