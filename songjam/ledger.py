# in-memory vote accounting, no I/O
from typing import Dict, Iterable, Optional

from .log import get_logger
from .models import LedgerSnapshot, VoteRecord, VotingLimits

log = get_logger("ledger")


class VoteLedger:
    """
    Committed and pending votes of one user, with budget enforcement.

    committed[entry_id] = points already persisted remotely (never lowered)
    pending[entry_id] = points accepted locally, not yet submitted (never 0)

    Caps are checked before every mutation, so add/remove can never move
    the ledger into a state that breaks the per-entry or per-user budget.
    """

    def __init__(self, limits: VotingLimits):
        self.limits = limits
        self.user_id: Optional[str] = None
        self.committed: Dict[str, int] = {}
        self.pending: Dict[str, int] = {}
        # bumped on every reset; lets in-flight submissions notice a new identity
        self.epoch = 0

    # ----------- queries -----------

    def remaining_budget(self) -> int:
        return (
            self.limits.max_votes_per_user
            - sum(self.committed.values())
            - sum(self.pending.values())
        )

    def display_remaining(self) -> int:
        remaining = self.remaining_budget()
        if remaining < 0:
            log.warning(
                f"Ledger over budget for user={self.user_id}: remaining={remaining}"
            )
            return 0
        return remaining

    def votes_for(self, entry_id: str) -> int:
        return self.committed.get(entry_id, 0) + self.pending.get(entry_id, 0)

    def can_add(self, entry_id: str) -> bool:
        return (
            self.remaining_budget() > 0
            and self.votes_for(entry_id) < self.limits.max_votes_per_entry
        )

    def can_remove(self, entry_id: str) -> bool:
        return self.pending.get(entry_id, 0) > 0

    # ----------- mutations -----------

    def add(self, entry_id: str) -> bool:
        if not self.can_add(entry_id):
            return False
        self.pending[entry_id] = self.pending.get(entry_id, 0) + 1
        return True

    def remove(self, entry_id: str) -> bool:
        if not self.can_remove(entry_id):
            return False
        left = self.pending[entry_id] - 1
        if left:
            self.pending[entry_id] = left
        else:
            del self.pending[entry_id]
        return True

    def reset(self) -> None:
        self.user_id = None
        self.committed = {}
        self.pending = {}
        self.epoch += 1

    def seed(self, user_id: str, records: Iterable[VoteRecord]) -> None:
        """
        Start a fresh ledger for user_id with committed counts from stored rows.
        Several rows for the same entry are summed.
        """
        self.reset()
        self.user_id = user_id
        for rec in records:
            if rec.points <= 0:
                continue
            self.committed[rec.entry_id] = self.committed.get(rec.entry_id, 0) + rec.points
            if self.committed[rec.entry_id] > self.limits.max_votes_per_entry:
                log.warning(
                    f"Stored votes exceed per-entry cap: user={user_id} "
                    f"entry={rec.entry_id} points={self.committed[rec.entry_id]}"
                )
        if self.remaining_budget() < 0:
            log.warning(f"Stored votes exceed user budget: user={user_id}")

    def commit_pending(self, entry_id: str, points: int) -> None:
        """
        Move confirmed points from pending to committed in one step.
        Committed counts only grow; pending never goes below 0.
        """
        if points <= 0:
            return
        self.committed[entry_id] = self.committed.get(entry_id, 0) + points
        left = self.pending.get(entry_id, 0) - points
        if left > 0:
            self.pending[entry_id] = left
        else:
            self.pending.pop(entry_id, None)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            user_id=self.user_id,
            committed=dict(self.committed),
            pending=dict(self.pending),
            remaining=self.display_remaining(),
            max_votes_per_user=self.limits.max_votes_per_user,
            max_votes_per_entry=self.limits.max_votes_per_entry,
        )
