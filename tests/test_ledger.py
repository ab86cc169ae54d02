import random

from songjam.ledger import VoteLedger
from songjam.models import VoteRecord, VotingLimits


def _check_invariants(ledger):
    limits = ledger.limits
    for entry_id in set(ledger.committed) | set(ledger.pending):
        assert ledger.votes_for(entry_id) <= limits.max_votes_per_entry
    assert sum(ledger.committed.values()) + sum(ledger.pending.values()) <= limits.max_votes_per_user
    assert all(v > 0 for v in ledger.pending.values())


def test_empty_ledger(ledger):
    assert ledger.remaining_budget() == 10
    assert ledger.votes_for("A") == 0
    assert ledger.can_add("A")
    assert not ledger.can_remove("A")


def test_fourth_add_on_same_entry_is_refused(ledger):
    assert [ledger.add("A") for _ in range(3)] == [True, True, True]
    assert ledger.add("A") is False
    assert ledger.votes_for("A") == 3
    assert ledger.pending == {"A": 3}


def test_add_then_remove_restores_pending(ledger):
    ledger.add("B")
    before = dict(ledger.pending)
    assert ledger.add("A")
    assert ledger.remove("A")
    assert ledger.pending == before
    assert "A" not in ledger.pending


def test_remove_without_pending_is_noop(ledger):
    ledger.seed("u1", [VoteRecord(entry_id="A", points=2)])
    assert ledger.remove("A") is False
    assert ledger.committed == {"A": 2}
    assert ledger.pending == {}


def test_committed_votes_count_against_caps(ledger):
    ledger.seed("u1", [VoteRecord(entry_id="A", points=2)])
    assert ledger.add("A")
    assert not ledger.can_add("A")
    assert ledger.votes_for("A") == 3


def test_seeded_budget_allows_exactly_remaining_adds(ledger):
    # A is over the per-entry cap; stored data is tolerated, not rejected
    ledger.seed("u1", [VoteRecord(entry_id="A", points=4), VoteRecord(entry_id="B", points=3)])
    assert ledger.remaining_budget() == 3

    results = [ledger.add(e) for e in ("C", "D", "C")]
    assert results == [True, True, True]
    assert ledger.add("E") is False
    assert ledger.remaining_budget() == 0


def test_can_add_false_everywhere_when_budget_spent(limits):
    ledger = VoteLedger(limits)
    for entry_id in ("A", "B", "C", "D"):
        while ledger.add(entry_id):
            pass
    assert ledger.remaining_budget() == 0
    for entry_id in ("A", "B", "C", "D", "Z"):
        assert not ledger.can_add(entry_id)


def test_reset_clears_everything(ledger):
    ledger.seed("u1", [VoteRecord(entry_id="A", points=1)])
    ledger.add("B")
    epoch = ledger.epoch

    ledger.reset()

    assert ledger.user_id is None
    assert ledger.votes_for("A") == 0
    assert ledger.votes_for("B") == 0
    assert ledger.remaining_budget() == 10
    assert ledger.epoch == epoch + 1


def test_seed_sums_duplicate_rows_and_skips_zero(ledger):
    ledger.seed("u1", [
        VoteRecord(entry_id="A", points=1),
        VoteRecord(entry_id="A", points=1),
        VoteRecord(entry_id="B", points=0),
    ])
    assert ledger.user_id == "u1"
    assert ledger.committed == {"A": 2}


def test_over_budget_data_is_clamped_for_display():
    ledger = VoteLedger(VotingLimits(max_votes_per_user=2, max_votes_per_entry=3))
    ledger.seed("u1", [VoteRecord(entry_id="A", points=3)])
    assert ledger.remaining_budget() == -1
    assert ledger.display_remaining() == 0
    assert ledger.snapshot().remaining == 0
    assert not ledger.can_add("B")


def test_commit_pending_moves_points_in_one_step(ledger):
    ledger.seed("u1", [VoteRecord(entry_id="A", points=1)])
    ledger.add("A")
    ledger.add("A")

    ledger.commit_pending("A", 2)

    assert ledger.committed == {"A": 3}
    assert ledger.pending == {}
    assert ledger.votes_for("A") == 3


def test_commit_pending_keeps_newer_pending_and_never_lowers(ledger):
    ledger.add("A")
    ledger.add("A")
    ledger.commit_pending("A", 1)
    ledger.commit_pending("A", 0)
    ledger.commit_pending("A", -1)

    assert ledger.committed == {"A": 1}
    assert ledger.pending == {"A": 1}


def test_snapshot_is_a_copy(ledger):
    ledger.add("A")
    snap = ledger.snapshot()
    snap.pending["A"] = 99
    assert ledger.pending == {"A": 1}
    assert snap.max_votes_per_entry == 3


def test_random_sequences_keep_invariants(limits):
    rng = random.Random(1234)
    for _ in range(50):
        ledger = VoteLedger(limits)
        ledger.seed("u1", [VoteRecord(entry_id="A", points=rng.randint(0, 3))])
        for _ in range(60):
            entry_id = rng.choice("ABCDE")
            if rng.random() < 0.6:
                ledger.add(entry_id)
            else:
                ledger.remove(entry_id)
            _check_invariants(ledger)
