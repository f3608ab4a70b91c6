# plugins/colony_objectives.py
"""Objectives produced by colony structures rather than the Overlord itself.

- supply: spawns and extensions with free capacity (via the hatchery)
- supplyTower: towers that are not full
- collectEnergyContainer: energy parked in upgrade-site containers
"""
import logging
from typing import Any, List

from pluggy import HookimplMarker

from ..core.objectives import Objective, ObjectiveType, make_objective

hookimpl = HookimplMarker("overmind")
logger = logging.getLogger(__name__)


def tower_objectives(room: Any) -> List[Objective]:
    out = []
    for tower in room.towers:
        if tower.store_capacity and tower.free_capacity > 0:
            urgency = min(0.99, tower.free_capacity / tower.store_capacity)
            out.append(make_objective(ObjectiveType.SUPPLY_TOWER, tower, urgency=urgency))
    return out


def container_objectives(room: Any) -> List[Objective]:
    return [make_objective(ObjectiveType.COLLECT_ENERGY_CONTAINER, c)
            for c in room.containers if c.tag == "upgradeSite" and c.energy > 0]


@hookimpl
def register_objectives(overlord: Any, ctx: Any) -> List[List[Objective]]:
    colony = overlord.colony
    sets: List[List[Objective]] = []
    if colony.hatchery is not None:
        sets.append(colony.hatchery.supply_objectives())
    if colony.room is not None:
        sets.append(tower_objectives(colony.room))
        sets.append(container_objectives(colony.room))
    logger.debug("colony objectives colony=%s count=%d tick=%d",
                 colony.name, sum(len(s) for s in sets), ctx.tick)
    return sets
