# overmind/core/objective_group.py
"""ObjectiveGroup: the ranked pool of assignable work for one colony tick.

Buckets are exactly the configured priority list and are always walked in that
order. Inside a bucket the nearest unclaimed objective wins; equal distances
fall back to registration order (first registered first).
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set

from .claims import ClaimSet, DoubleClaimError
from .objectives import Objective, ObjectiveType
from .tasks import Task
from .world import TickContext, nearest_index, ROOM_SIZE
from ..io.event_logger import EventLogger, get_event_logger

log = logging.getLogger(__name__)


class ObjectiveGroup:
    """Priority-bucketed objectives plus the assignment query."""

    def __init__(
        self,
        priorities: Sequence[str],
        capabilities: Mapping[str, FrozenSet[ObjectiveType]],
        claims: Optional[ClaimSet] = None,
        room_penalty: float = float(ROOM_SIZE),
        events: Optional[EventLogger] = None,
    ):
        """
        Args:
            priorities: Objective type names, highest priority first
            capabilities: Role name -> objective types that role may take
            claims: Shared per-tick claim set (a private one is created if omitted)
            room_penalty: Distance added when a target sits in another room
            events: Structured event sink
        """
        order: List[ObjectiveType] = []
        for name in priorities:
            otype = ObjectiveType(name)
            if otype in order:
                raise ValueError(f"Duplicate objective priority '{name}'")
            order.append(otype)
        self.priorities: List[ObjectiveType] = order
        self.capabilities = {getattr(k, "value", k): frozenset(v) for k, v in capabilities.items()}
        self.claims = claims if claims is not None else ClaimSet()
        self.room_penalty = room_penalty
        self._events = events or get_event_logger()
        self._buckets: Dict[ObjectiveType, List[Objective]] = {t: [] for t in self.priorities}
        self._issued: Set[int] = set()

    # ---------- Registration ----------

    def reset(self, claims: Optional[ClaimSet] = None) -> None:
        """Empty every bucket for a new tick."""
        if claims is not None:
            self.claims = claims
        for bucket in self._buckets.values():
            bucket.clear()
        self._issued.clear()

    def register_objectives(self, *objective_sets: Iterable[Objective], strict: bool = True) -> int:
        """Append objectives to their buckets; returns the number registered.

        With strict=False, objectives whose type has no configured bucket are
        skipped instead of raising ValueError.
        """
        count = 0
        skipped: Dict[str, int] = {}
        n = len(self.priorities)
        for objective_set in objective_sets:
            for objective in objective_set:
                bucket = self._buckets.get(objective.type)
                if bucket is None:
                    if strict:
                        raise ValueError(
                            f"Objective type '{objective.type.value}' is not in the configured priorities"
                        )
                    skipped[objective.type.value] = skipped.get(objective.type.value, 0) + 1
                    continue
                rank = self.priorities.index(objective.type)
                objective.priority = (n - rank) + objective.urgency
                bucket.append(objective)
                count += 1
        if skipped:
            log.debug("objectives skipped, no priority bucket: %s", skipped)
        return count

    # ---------- Queries ----------

    def objectives_of(self, objective_type: ObjectiveType) -> List[Objective]:
        return list(self._buckets.get(ObjectiveType(objective_type), []))

    def ranked(self) -> List[Objective]:
        """All objectives in bucket order (registration order inside a bucket)."""
        return [o for t in self.priorities for o in self._buckets[t]]

    def can_perform(self, role: str, objective_type: ObjectiveType) -> bool:
        return objective_type in self.capabilities.get(getattr(role, "value", role), frozenset())

    def _candidates(self, creep: Any, bucket: List[Objective], ctx: TickContext) -> List[tuple]:
        out = []
        for objective in bucket:
            if objective.is_claimed or self.claims.is_claimed(objective.target_id):
                continue
            target = ctx.get(objective.target_id)
            if target is None:
                count = self.claims.note_stale(objective.target_id, source="objective")
                self._events.log_stale_target(ctx.tick, getattr(creep, "colony", "?"), objective.target_id, count)
                continue
            task = objective.to_task(creep.name, ctx.tick)
            if not task.is_valid_creep(creep) or not task.is_valid_target(target):
                continue
            out.append((objective, task))
        return out

    def assign_task(self, creep: Any, ctx: TickContext) -> Optional[Task]:
        """Bind the best compatible objective to `creep`; None leaves it idle."""
        for otype in self.priorities:
            if not self.can_perform(creep.role, otype):
                continue
            bucket = self._buckets[otype]
            if not bucket:
                continue
            candidates = self._candidates(creep, bucket, ctx)
            if not candidates:
                continue
            idx = nearest_index(creep.pos, [o.pos for o, _ in candidates], self.room_penalty)
            objective, task = candidates[idx]
            self._bind(objective, task, creep, ctx)
            return task
        log.debug("assign_task no_match creep=%s role=%s tick=%d", creep.name, creep.role, ctx.tick)
        return None

    def _bind(self, objective: Objective, task: Task, creep: Any, ctx: TickContext) -> None:
        if id(objective) in self._issued:
            raise DoubleClaimError(
                f"Objective {objective.type.value}:{objective.target_id} returned twice in tick {ctx.tick}"
            )
        self.claims.claim(objective.target_id, creep.name)
        self._issued.add(id(objective))
        objective.claimed_by = creep.name
        task.activate()
        creep.task = task
        log.info("task_assigned creep=%s role=%s objective=%s target=%s tick=%d",
                 creep.name, creep.role, objective.type.value, objective.target_id, ctx.tick)
        self._events.log_task_assigned(ctx.tick, creep.name, task.to_dict(), via="objective")

    # ---------- Introspection ----------

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {
            t.value: {
                "total": len(self._buckets[t]),
                "claimed": sum(1 for o in self._buckets[t] if o.is_claimed),
            }
            for t in self.priorities
        }

    def __len__(self) -> int:
        return sum(len(b) for b in self._buckets.values())

    def __repr__(self) -> str:
        return f"ObjectiveGroup(buckets={len(self.priorities)}, objectives={len(self)})"
