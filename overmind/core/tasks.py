# overmind/core/tasks.py
"""Task: a stateful binding of one action/target to one creep.

States: unassigned -> active -> {completed, invalidated}. A finished task is
dropped by its owner, which re-queries on the next tick. There is no
cancellation API; invalidation is detected by refresh() at the start of a tick.

Validity and completion rules are looked up per TaskAction in the tables below.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .world import Position, RESOURCE_ENERGY, TickContext

log = logging.getLogger(__name__)


class TaskAction(str, Enum):
    WITHDRAW = "withdraw"
    TRANSFER = "transfer"
    PICKUP = "pickup"
    GO_TO = "goTo"
    REPAIR = "repair"
    BUILD = "build"
    FORTIFY = "fortify"
    UPGRADE = "upgrade"
    RECHARGE = "recharge"
    HARVEST = "harvest"


class TaskStatus(str, Enum):
    UNASSIGNED = "unassigned"
    ACTIVE = "active"
    COMPLETED = "completed"
    INVALIDATED = "invalidated"


ACTION_RANGES: Dict[TaskAction, int] = {
    TaskAction.WITHDRAW: 1,
    TaskAction.TRANSFER: 1,
    TaskAction.PICKUP: 1,
    TaskAction.GO_TO: 1,
    TaskAction.REPAIR: 3,
    TaskAction.BUILD: 3,
    TaskAction.FORTIFY: 3,
    TaskAction.UPGRADE: 3,
    TaskAction.RECHARGE: 1,
    TaskAction.HARVEST: 1,
}

ACQUIRE_ACTIONS = frozenset({TaskAction.WITHDRAW, TaskAction.PICKUP, TaskAction.RECHARGE})
SPEND_ACTIONS = frozenset({TaskAction.TRANSFER, TaskAction.REPAIR, TaskAction.BUILD,
                           TaskAction.FORTIFY, TaskAction.UPGRADE})


# ---------- Creep-side rules ----------

def _creep_can_acquire(creep: Any, task: "Task") -> bool:
    return creep.free_capacity > 0


def _creep_can_spend(creep: Any, task: "Task") -> bool:
    return creep.carried(task.resource_type) > 0


def _creep_can_harvest(creep: Any, task: "Task") -> bool:
    return creep.get_active_bodyparts("work") > 0


def _always(creep: Any, task: "Task") -> bool:
    return True


_CREEP_CHECKS: Dict[TaskAction, Callable[[Any, "Task"], bool]] = {
    TaskAction.WITHDRAW: _creep_can_acquire,
    TaskAction.PICKUP: _creep_can_acquire,
    TaskAction.RECHARGE: _creep_can_acquire,
    TaskAction.TRANSFER: _creep_can_spend,
    TaskAction.REPAIR: _creep_can_spend,
    TaskAction.BUILD: _creep_can_spend,
    TaskAction.FORTIFY: _creep_can_spend,
    TaskAction.UPGRADE: _creep_can_spend,
    TaskAction.HARVEST: _creep_can_harvest,
    TaskAction.GO_TO: _always,
}


# ---------- Target-side rules ----------

def _target_has_stock(target: Any, task: "Task") -> bool:
    store = getattr(target, "store", None)
    return bool(store) and store.get(task.resource_type, 0) > 0


def _target_has_amount(target: Any, task: "Task") -> bool:
    return getattr(target, "amount", 0) > 0


def _target_has_room(target: Any, task: "Task") -> bool:
    return getattr(target, "free_capacity", 0) > 0


def _target_damaged(target: Any, task: "Task") -> bool:
    hits = getattr(target, "hits", None)
    return hits is not None and hits < getattr(target, "hits_max", 0)


def _target_unfinished(target: Any, task: "Task") -> bool:
    return getattr(target, "remaining", 0) > 0


def _target_is_controller(target: Any, task: "Task") -> bool:
    return hasattr(target, "progress_total") and hasattr(target, "level")


def _target_has_energy(target: Any, task: "Task") -> bool:
    return getattr(target, "energy", 0) > 0


def _target_exists(target: Any, task: "Task") -> bool:
    return target is not None


_TARGET_CHECKS: Dict[TaskAction, Callable[[Any, "Task"], bool]] = {
    TaskAction.WITHDRAW: _target_has_stock,
    TaskAction.RECHARGE: _target_has_stock,
    TaskAction.PICKUP: _target_has_amount,
    TaskAction.TRANSFER: _target_has_room,
    TaskAction.REPAIR: _target_damaged,
    TaskAction.FORTIFY: _target_damaged,
    TaskAction.BUILD: _target_unfinished,
    TaskAction.UPGRADE: _target_is_controller,
    TaskAction.HARVEST: _target_has_energy,
    TaskAction.GO_TO: _target_exists,
}


class Task:
    """Unit of work owned exclusively by one creep."""

    def __init__(
        self,
        owner: str,
        action: TaskAction,
        target_id: str,
        target_pos: Position,
        created_tick: int,
        objective: Optional[str] = None,
        resource_type: str = RESOURCE_ENERGY,
        exclusive: bool = True,
    ):
        """
        Args:
            owner: Name of the creep holding the task
            action: What the creep does at the target
            target_id: Id of the target entity
            target_pos: Target position at creation time
            created_tick: Tick the task was bound
            objective: ObjectiveType value the task was derived from, if any
            resource_type: Resource moved by withdraw/transfer/pickup
            exclusive: Whether the target is claimed (shared sinks like storage are not)
        """
        self.owner = owner
        self.action = TaskAction(action)
        self.target_id = target_id
        self.target_pos = target_pos
        self.created_tick = created_tick
        self.objective = objective
        self.resource_type = resource_type
        self.exclusive = exclusive
        self.status = TaskStatus.UNASSIGNED
        self.reason: Optional[str] = None

    @property
    def range(self) -> int:
        return ACTION_RANGES[self.action]

    @property
    def is_active(self) -> bool:
        return self.status == TaskStatus.ACTIVE

    @property
    def is_finished(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.INVALIDATED)

    # ---------- Transitions ----------

    def activate(self) -> None:
        if self.status != TaskStatus.UNASSIGNED:
            raise ValueError(f"Cannot activate task in state {self.status.value}")
        self.status = TaskStatus.ACTIVE

    def complete(self) -> None:
        if self.status != TaskStatus.ACTIVE:
            raise ValueError(f"Cannot complete task in state {self.status.value}")
        self.status = TaskStatus.COMPLETED
        log.debug("task completed owner=%s action=%s target=%s", self.owner, self.action.value, self.target_id)

    def invalidate(self, reason: str) -> None:
        if self.status != TaskStatus.ACTIVE:
            raise ValueError(f"Cannot invalidate task in state {self.status.value}")
        self.status = TaskStatus.INVALIDATED
        self.reason = reason
        log.debug("task invalidated owner=%s action=%s target=%s reason=%s",
                  self.owner, self.action.value, self.target_id, reason)

    # ---------- Checks ----------

    def is_valid_creep(self, creep: Any) -> bool:
        return _CREEP_CHECKS[self.action](creep, self)

    def is_valid_target(self, target: Any) -> bool:
        return target is not None and _TARGET_CHECKS[self.action](target, self)

    def is_valid(self, creep: Any, ctx: TickContext) -> bool:
        return self.is_valid_creep(creep) and self.is_valid_target(ctx.get(self.target_id))

    def refresh(self, creep: Any, ctx: TickContext) -> TaskStatus:
        """Start-of-tick re-validation of an active task."""
        if not self.is_active:
            return self.status
        target = ctx.get(self.target_id)
        if target is None:
            self.invalidate("target_missing")
        elif self.action == TaskAction.GO_TO and creep.pos.in_range_to(target.pos, self.range):
            self.complete()
        elif not self.is_valid_creep(creep):
            self.invalidate("creep_state")
        elif not self.is_valid_target(target):
            self.invalidate("target_state")
        return self.status

    def finish_after_action(self, creep: Any, target: Optional[Any]) -> TaskStatus:
        """Completion check once the action has been applied this tick."""
        if not self.is_active:
            return self.status
        if self.action in ACQUIRE_ACTIONS:
            if creep.free_capacity == 0 or not self.is_valid_target(target):
                self.complete()
        elif self.action in SPEND_ACTIONS:
            if creep.carried(self.resource_type) == 0:
                self.complete()
            elif not self.is_valid_target(target):
                self.complete()
        elif self.action == TaskAction.HARVEST:
            if not self.is_valid_target(target):
                self.complete()
        elif self.action == TaskAction.GO_TO:
            if target is None or creep.pos.in_range_to(target.pos, self.range):
                self.complete()
        return self.status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "action": self.action.value,
            "target": self.target_id,
            "pos": self.target_pos.to_dict(),
            "created_tick": self.created_tick,
            "objective": self.objective,
            "resource_type": self.resource_type,
            "status": self.status.value,
            "reason": self.reason,
        }

    def __repr__(self) -> str:
        return f"Task({self.action.value}->{self.target_id}, owner={self.owner}, status={self.status.value})"
