import pytest

from songjam.errors import TransientStoreError
from songjam.ledger import VoteLedger
from songjam.models import Entry, RetryPolicy, VotingLimits
from songjam.store import InMemoryVoteStore


class FlakyStore(InMemoryVoteStore):
    """
    In-memory store whose writes can fail or block per entry.

    fail_entries: entry ids whose insert/update always raise TransientStoreError
    broken_entries: entry id -> exception raised instead of writing
    gate: when set, every write waits for it before touching the rows
    holds: entry id -> event that write waits for
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_entries = set()
        self.broken_entries = {}
        self.gate = None
        self.holds = {}
        self.calls = []

    async def _write(self, kind, user_id, entry_id, points):
        self.calls.append((kind, entry_id, points))
        if self.gate is not None:
            await self.gate.wait()
        if entry_id in self.holds:
            await self.holds[entry_id].wait()
        if entry_id in self.broken_entries:
            raise self.broken_entries[entry_id]
        if entry_id in self.fail_entries:
            raise TransientStoreError(f"{kind} {entry_id} unreachable", 503)

    async def insert_vote(self, user_id, entry_id, points):
        await self._write("insert", user_id, entry_id, points)
        await super().insert_vote(user_id, entry_id, points)

    async def update_vote(self, user_id, entry_id, new_points):
        await self._write("update", user_id, entry_id, new_points)
        await super().update_vote(user_id, entry_id, new_points)


@pytest.fixture
def limits():
    return VotingLimits(max_votes_per_user=10, max_votes_per_entry=3)


@pytest.fixture
def fast_retry():
    return RetryPolicy(attempts=2, initial_delay_ms=0)


@pytest.fixture
def ledger(limits):
    return VoteLedger(limits)


@pytest.fixture
def entries():
    return [
        Entry(id="A", title="Alpha", artist="Ann"),
        Entry(id="B", title="Bravo", artist="Ben"),
        Entry(id="C", title="Charlie", artist="Cat"),
        Entry(id="D", title="Delta", artist="Dee"),
    ]


@pytest.fixture
def store(entries):
    return FlakyStore(entries, tokens={"tok-u1": "u1", "tok-u2": "u2"})
