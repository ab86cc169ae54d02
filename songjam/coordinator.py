# pending -> committed through the remote store
import asyncio
from typing import Optional, Tuple

from .errors import NotAuthenticatedError
from .ledger import VoteLedger
from .log import get_logger
from .models import CoordinatorState, RetryPolicy, SubmitFailure, SubmitResult
from .retry import with_retry
from .store import VoteStore

log = get_logger("coordinator")


class SubmissionCoordinator:
    """
    Moves the ledger's pending votes into committed votes, one store
    operation per entry.

    Entries are independent rows: a failure leaves that entry pending for a
    later resubmission and never rolls back entries that already succeeded.
    A submit_all() issued while another one is in flight is rejected.
    """

    def __init__(self, ledger: VoteLedger, store: VoteStore, retry_policy: RetryPolicy):
        self.ledger = ledger
        self.store = store
        self.retry_policy = retry_policy
        self.state = CoordinatorState.IDLE

    @property
    def submitting(self) -> bool:
        return self.state is CoordinatorState.SUBMITTING

    async def submit_all(self) -> Optional[SubmitResult]:
        """
        Submit every pending entry. Returns None when a submission is
        already running, otherwise the aggregate result.
        """
        if self.state is CoordinatorState.SUBMITTING:
            log.info("submit_all rejected: submission already in flight")
            return None
        self.state = CoordinatorState.SUBMITTING
        try:
            return await self._submit_snapshot()
        finally:
            self.state = CoordinatorState.IDLE

    async def _submit_snapshot(self) -> SubmitResult:
        user_id = self.ledger.user_id
        if user_id is None:
            raise NotAuthenticatedError("cannot submit votes without a user")

        epoch = self.ledger.epoch
        snapshot = dict(self.ledger.pending)
        if not snapshot:
            return SubmitResult()

        log.info(f"Submitting {len(snapshot)} entries for user={user_id}")
        outcomes = await asyncio.gather(
            *(self._submit_entry(user_id, entry_id, count, epoch) for entry_id, count in snapshot.items())
        )

        if self.ledger.epoch != epoch:
            log.info(f"Identity changed during submission; discarding result for user={user_id}")
            return SubmitResult(discarded=True)

        result = SubmitResult()
        for entry_id, error in outcomes:
            if error is None:
                result.success_count += 1
            else:
                result.failures.append(SubmitFailure(entry_id=entry_id, error=error))
        return result

    async def _submit_entry(self, user_id: str, entry_id: str, count: int, epoch: int) -> Tuple[str, Optional[str]]:
        committed = self.ledger.committed.get(entry_id, 0)
        if committed > 0:
            total = committed + count
            op = lambda: self.store.update_vote(user_id, entry_id, total)
        else:
            op = lambda: self.store.insert_vote(user_id, entry_id, count)

        try:
            await with_retry(op, self.retry_policy)
        except Exception as exc:
            # failures stay per entry
            log.warning(f"Vote submission failed for entry={entry_id} user={user_id}: {exc!r}")
            return entry_id, str(exc) or type(exc).__name__

        if self.ledger.epoch == epoch:
            self.ledger.commit_pending(entry_id, count)
        return entry_id, None
