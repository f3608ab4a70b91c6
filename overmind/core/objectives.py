# overmind/core/objectives.py
"""Objectives: per-tick descriptors of assignable work."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .tasks import Task, TaskAction
from .world import Position, RESOURCE_ENERGY

log = logging.getLogger(__name__)


class ObjectiveType(str, Enum):
    SUPPLY_TOWER = "supplyTower"
    SUPPLY = "supply"
    PICKUP_ENERGY = "pickupEnergy"
    COLLECT_ENERGY_MINING_SITE = "collectEnergyMiningSite"
    COLLECT_ENERGY_CONTAINER = "collectEnergyContainer"
    DEPOSIT_CONTAINER = "depositContainer"
    BUILD = "build"
    REPAIR = "repair"
    BUILD_ROAD = "buildRoad"
    FORTIFY = "fortify"
    UPGRADE = "upgrade"


# Order objectives are worked in, highest first
DEFAULT_OBJECTIVE_PRIORITIES: List[str] = [
    ObjectiveType.SUPPLY_TOWER.value,
    ObjectiveType.SUPPLY.value,
    ObjectiveType.PICKUP_ENERGY.value,
    ObjectiveType.COLLECT_ENERGY_MINING_SITE.value,
    ObjectiveType.COLLECT_ENERGY_CONTAINER.value,
    ObjectiveType.DEPOSIT_CONTAINER.value,
    ObjectiveType.BUILD.value,
    ObjectiveType.REPAIR.value,
    ObjectiveType.BUILD_ROAD.value,
    ObjectiveType.FORTIFY.value,
    ObjectiveType.UPGRADE.value,
]

OBJECTIVE_ACTIONS: Dict[ObjectiveType, TaskAction] = {
    ObjectiveType.SUPPLY_TOWER: TaskAction.TRANSFER,
    ObjectiveType.SUPPLY: TaskAction.TRANSFER,
    ObjectiveType.PICKUP_ENERGY: TaskAction.PICKUP,
    ObjectiveType.COLLECT_ENERGY_MINING_SITE: TaskAction.WITHDRAW,
    ObjectiveType.COLLECT_ENERGY_CONTAINER: TaskAction.WITHDRAW,
    ObjectiveType.DEPOSIT_CONTAINER: TaskAction.TRANSFER,
    ObjectiveType.BUILD: TaskAction.BUILD,
    ObjectiveType.REPAIR: TaskAction.REPAIR,
    ObjectiveType.BUILD_ROAD: TaskAction.BUILD,
    ObjectiveType.FORTIFY: TaskAction.FORTIFY,
    ObjectiveType.UPGRADE: TaskAction.UPGRADE,
}


@dataclass(eq=False)
class Objective:
    """One unit of assignable work. Rebuilt every tick, never persisted."""
    type: ObjectiveType
    target_id: str
    pos: Position
    urgency: float = 0.0
    resource_type: str = RESOURCE_ENERGY
    # Filled in by ObjectiveGroup on registration / assignment
    priority: float = 0.0
    claimed_by: Optional[str] = None

    @property
    def action(self) -> TaskAction:
        return OBJECTIVE_ACTIONS[self.type]

    @property
    def is_claimed(self) -> bool:
        return self.claimed_by is not None

    def to_task(self, owner: str, tick: int) -> Task:
        return Task(
            owner=owner,
            action=self.action,
            target_id=self.target_id,
            target_pos=self.pos,
            created_tick=tick,
            objective=self.type.value,
            resource_type=self.resource_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "target": self.target_id,
            "pos": self.pos.to_dict(),
            "priority": self.priority,
            "claimed_by": self.claimed_by,
        }


def make_objective(objective_type: Union[ObjectiveType, str], target: Any, urgency: float = 0.0) -> Objective:
    """Build an objective for a world entity (anything with `id` and `pos`)."""
    if not 0.0 <= urgency < 1.0:
        raise ValueError(f"urgency must be in [0, 1), got {urgency}")
    return Objective(
        type=ObjectiveType(objective_type),
        target_id=target.id,
        pos=target.pos,
        urgency=float(urgency),
    )
