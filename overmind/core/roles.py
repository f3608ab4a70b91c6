# overmind/core/roles.py
"""Roles, the role -> objective capability table, and creep body setups."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from .objectives import ObjectiveType

logger = logging.getLogger(__name__)

WORK = "work"
CARRY = "carry"
MOVE = "move"
ATTACK = "attack"
RANGED_ATTACK = "ranged_attack"
HEAL = "heal"
TOUGH = "tough"
CLAIM = "claim"

BODYPART_COST: Dict[str, int] = {
    WORK: 100,
    CARRY: 50,
    MOVE: 50,
    ATTACK: 80,
    RANGED_ATTACK: 150,
    HEAL: 250,
    TOUGH: 10,
    CLAIM: 600,
}

CARRY_CAPACITY = 50
CREEP_LIFE_TIME = 1500
MAX_CREEP_SIZE = 50


class Role(str, Enum):
    HAULER = "hauler"
    QUEEN = "queen"
    SUPPLIER = "supplier"
    WORKER = "worker"
    UPGRADER = "upgrader"
    MANAGER = "manager"
    MINER = "miner"
    MINERAL_SUPPLIER = "mineralSupplier"
    GUARD = "guard"


DEFAULT_CAPABILITIES: Dict[str, FrozenSet[ObjectiveType]] = {
    Role.HAULER.value: frozenset({
        ObjectiveType.PICKUP_ENERGY,
        ObjectiveType.COLLECT_ENERGY_MINING_SITE,
        ObjectiveType.DEPOSIT_CONTAINER,
    }),
    Role.QUEEN.value: frozenset({
        ObjectiveType.SUPPLY_TOWER,
        ObjectiveType.SUPPLY,
    }),
    Role.SUPPLIER.value: frozenset({
        ObjectiveType.SUPPLY_TOWER,
        ObjectiveType.SUPPLY,
        ObjectiveType.PICKUP_ENERGY,
        ObjectiveType.COLLECT_ENERGY_CONTAINER,
    }),
    Role.WORKER.value: frozenset({
        ObjectiveType.PICKUP_ENERGY,
        ObjectiveType.COLLECT_ENERGY_CONTAINER,
        ObjectiveType.BUILD,
        ObjectiveType.REPAIR,
        ObjectiveType.BUILD_ROAD,
        ObjectiveType.FORTIFY,
        ObjectiveType.UPGRADE,
    }),
    Role.UPGRADER.value: frozenset({
        ObjectiveType.COLLECT_ENERGY_CONTAINER,
        ObjectiveType.UPGRADE,
    }),
    Role.MANAGER.value: frozenset({
        ObjectiveType.SUPPLY_TOWER,
    }),
    Role.MINER.value: frozenset(),
    Role.MINERAL_SUPPLIER.value: frozenset(),
    Role.GUARD.value: frozenset(),
}


@dataclass(frozen=True)
class CreepSpecification:
    """What the hatchery should spawn."""
    role: str
    colony: str
    body: List[str]
    assignment: Optional[str] = None
    memory: Dict[str, Any] = field(default_factory=dict)

    @property
    def cost(self) -> int:
        return sum(BODYPART_COST[p] for p in self.body)


class CreepSetup:
    """Body template for one role.

    The pattern is repeated as often as the colony's energy capacity and the
    repetition limit allow. With `proportional_prefix_suffix` the prefix and
    suffix are repeated alongside each pattern.
    """

    role: Role = Role.WORKER
    pattern: List[str] = [WORK, CARRY, MOVE]
    prefix: List[str] = []
    suffix: List[str] = []
    proportional_prefix_suffix: bool = False
    ordered: bool = True

    @staticmethod
    def cost_of(parts: List[str]) -> int:
        return sum(BODYPART_COST[p] for p in parts)

    def generate_body(self, available_energy: int, max_repeats: Optional[int] = None) -> List[str]:
        """Largest body affordable with `available_energy`; empty if even one pattern is not."""
        if self.proportional_prefix_suffix:
            unit = self.prefix + self.pattern + self.suffix
            fixed: List[str] = []
        else:
            unit = list(self.pattern)
            fixed = self.prefix + self.suffix
        unit_cost = self.cost_of(unit)
        budget = available_energy - self.cost_of(fixed)
        if unit_cost <= 0 or budget < unit_cost:
            return []
        repeats = budget // unit_cost
        repeats = min(repeats, (MAX_CREEP_SIZE - len(fixed)) // len(unit))
        if max_repeats is not None:
            repeats = min(repeats, max_repeats)
        if repeats <= 0:
            return []

        if self.proportional_prefix_suffix:
            body = unit * repeats
        else:
            body = self.prefix + self.pattern * repeats + self.suffix
        if self.ordered:
            order = {p: i for i, p in enumerate([TOUGH, CLAIM, WORK, CARRY, ATTACK, RANGED_ATTACK, HEAL, MOVE])}
            body = sorted(body, key=lambda p: order.get(p, len(order)))
        return body

    def create(self, colony: Any, assignment: Any = None,
               pattern_repetition_limit: Optional[int] = None) -> CreepSpecification:
        """Specification sized to the colony room's energy capacity."""
        capacity = colony.room.energy_capacity_available if colony.room is not None else 0
        body = self.generate_body(capacity, pattern_repetition_limit)
        if not body:
            # Always offer at least one pattern; the hatchery waits until it is affordable
            body = self.prefix + self.pattern + self.suffix
        assignment_id = getattr(assignment, "id", assignment)
        spec = CreepSpecification(
            role=self.role.value,
            colony=colony.name,
            body=body,
            assignment=assignment_id,
            memory={"role": self.role.value, "colony": colony.name, "assignment": assignment_id},
        )
        logger.debug("creep setup role=%s colony=%s parts=%d cost=%d",
                     spec.role, spec.colony, len(spec.body), spec.cost)
        return spec


class HaulerSetup(CreepSetup):
    role = Role.HAULER
    pattern = [CARRY, CARRY, MOVE]
    suffix = [WORK, MOVE]
    proportional_prefix_suffix = False


class QueenSetup(CreepSetup):
    role = Role.QUEEN
    pattern = [CARRY, CARRY, MOVE]


class SupplierSetup(CreepSetup):
    role = Role.SUPPLIER
    pattern = [CARRY, CARRY, MOVE]


class WorkerSetup(CreepSetup):
    role = Role.WORKER
    pattern = [WORK, CARRY, MOVE]


class UpgraderSetup(CreepSetup):
    role = Role.UPGRADER
    pattern = [WORK, WORK, CARRY, MOVE]


class MinerSetup(CreepSetup):
    role = Role.MINER
    pattern = [WORK, WORK, MOVE]
    prefix = [CARRY]


class EmergencyMinerSetup(CreepSetup):
    """Smallest miner that still fills a spawn on its own."""
    role = Role.MINER
    pattern = [WORK, WORK, CARRY, MOVE]
    ordered = False


class MineralSupplierSetup(CreepSetup):
    role = Role.MINERAL_SUPPLIER
    pattern = [CARRY, CARRY, MOVE]


class GuardSetup(CreepSetup):
    role = Role.GUARD
    pattern = [ATTACK, MOVE]
    prefix = [TOUGH, MOVE]


SETUPS: Dict[str, CreepSetup] = {
    s.role.value: s for s in (
        HaulerSetup(), QueenSetup(), SupplierSetup(), WorkerSetup(), UpgraderSetup(),
        MinerSetup(), MineralSupplierSetup(), GuardSetup(),
    )
}
