# identity + catalog, one explicit context object per running client
import random
from typing import List, Optional

from .errors import NotAuthenticatedError
from .coordinator import SubmissionCoordinator
from .ledger import VoteLedger
from .log import get_logger
from .models import Entry, EntryView, RetryPolicy, SubmitResult, VotingLimits
from .retry import with_retry
from .store import VoteStore

log = get_logger("session")


class VotingSession:
    """
    Ties one ledger and one coordinator to the current identity and the
    entry catalog.

    Every identity change (login, logout, switch) fully resets the ledger
    before re-seeding committed votes for the new user.
    """

    def __init__(
        self,
        store: VoteStore,
        limits: VotingLimits,
        retry_policy: RetryPolicy,
        *,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.retry_policy = retry_policy
        self.ledger = VoteLedger(limits)
        self.coordinator = SubmissionCoordinator(self.ledger, store, retry_policy)
        self.user_id: Optional[str] = None
        self.entries: List[Entry] = []
        self._rng = rng or random.Random()

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None and self.ledger.user_id == self.user_id

    async def load_catalog(self) -> List[Entry]:
        """Fetch the entries and shuffle them into a fresh display order."""
        entries = await with_retry(self.store.fetch_entries, self.retry_policy)
        self._rng.shuffle(entries)
        self.entries = entries
        log.info(f"Loaded {len(entries)} entries")
        return entries

    def find_entry(self, entry_id: str) -> Optional[Entry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    async def set_identity(self, user_id: Optional[str]) -> None:
        if user_id == self.user_id:
            return

        log.info(f"Identity change: {self.user_id} -> {user_id}")
        self.user_id = user_id
        self.ledger.reset()
        if user_id is None:
            return

        epoch = self.ledger.epoch
        records = await with_retry(lambda: self.store.fetch_votes(user_id), self.retry_policy)
        if self.ledger.epoch != epoch:
            # another identity change landed while votes were loading
            return
        self.ledger.seed(user_id, records)
        log.info(f"Seeded {len(records)} stored votes for user={user_id}")

    async def login(self, access_token: str) -> Optional[str]:
        """
        Resolve the token to a user and switch to it. None when the token is
        rejected or another identity change overtook this login.
        """
        user_id = await with_retry(lambda: self.store.fetch_user(access_token), self.retry_policy)
        if user_id is None:
            return None
        try:
            await self.set_identity(user_id)
        except Exception:
            # seeding failed: do not stay half-logged-in
            if self.user_id == user_id:
                self.user_id = None
                self.ledger.reset()
            raise
        if not self.authenticated or self.user_id != user_id:
            # another identity change landed while votes were loading
            return None
        return user_id

    async def logout(self) -> None:
        self.store.forget_user()
        await self.set_identity(None)

    async def submit(self) -> Optional[SubmitResult]:
        if not self.authenticated:
            raise NotAuthenticatedError("login required")
        return await self.coordinator.submit_all()

    def entry_views(self) -> List[EntryView]:
        return [
            EntryView(
                entry=entry,
                votes=self.ledger.votes_for(entry.id),
                can_add=self.authenticated and self.ledger.can_add(entry.id),
                can_remove=self.authenticated and self.ledger.can_remove(entry.id),
            )
            for entry in self.entries
        ]
