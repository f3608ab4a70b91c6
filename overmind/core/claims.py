# overmind/core/claims.py
"""Per-tick claim bookkeeping shared by the objective and resource request paths."""

import logging
from typing import Dict, Iterable, Optional

log = logging.getLogger(__name__)


class DoubleClaimError(AssertionError):
    """A target was handed to a second owner within one tick."""


class ClaimSet:
    """Target id -> owning creep for the current tick.

    Claims are advisory: producers and queries cooperate through this set,
    nothing locks the target itself.
    """

    def __init__(self, tick: int = 0, stale_warn_threshold: int = 3):
        self.tick = tick
        self.stale_warn_threshold = stale_warn_threshold
        self._holders: Dict[str, str] = {}
        self._stale: Dict[str, int] = {}
        self._stale_total = 0

    def reset(self, tick: int) -> None:
        self.tick = tick
        self._holders.clear()
        self._stale.clear()
        self._stale_total = 0

    def claim(self, target_id: str, owner: str) -> None:
        """Claim a target; raises DoubleClaimError if someone else holds it."""
        holder = self._holders.get(target_id)
        if holder is not None and holder != owner:
            raise DoubleClaimError(
                f"Target {target_id} already claimed by {holder}; refused for {owner} (tick {self.tick})"
            )
        self._holders[target_id] = owner

    def holder(self, target_id: str) -> Optional[str]:
        return self._holders.get(target_id)

    def is_claimed(self, target_id: str) -> bool:
        return target_id in self._holders

    def seed(self, tasks: Iterable) -> int:
        """Re-claim targets of tasks that stay active from earlier ticks."""
        count = 0
        for task in tasks:
            if task is None or not task.is_active or not task.exclusive:
                continue
            self.claim(task.target_id, task.owner)
            count += 1
        if count:
            log.debug("claims seeded=%d tick=%d", count, self.tick)
        return count

    def note_stale(self, target_id: str, source: str = "objective") -> int:
        """Record a target that vanished between registration and use."""
        self._stale[target_id] = self._stale.get(target_id, 0) + 1
        self._stale_total += 1
        if self._stale_total == self.stale_warn_threshold + 1:
            log.warning(
                "stale targets exceed threshold tick=%d count=%d threshold=%d source=%s "
                "(registration/claim bookkeeping out of sync)",
                self.tick, self._stale_total, self.stale_warn_threshold, source,
            )
        return self._stale_total

    @property
    def stale_count(self) -> int:
        return self._stale_total

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._holders

    def __len__(self) -> int:
        return len(self._holders)

    def __repr__(self) -> str:
        return f"ClaimSet(tick={self.tick}, claims={len(self._holders)}, stale={self._stale_total})"
