from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from . import config


class VotingLimits(BaseModel):
    max_votes_per_user: int = Field(config.MAX_VOTES_PER_USER, ge=0)
    max_votes_per_entry: int = Field(config.MAX_VOTES_PER_ENTRY, ge=0)


class RetryPolicy(BaseModel):
    """
    attempts: retries allowed after the first call.
    initial_delay_ms: wait before the first retry, doubled for each later one.
    """
    attempts: int = Field(config.RETRY_ATTEMPTS, ge=0)
    initial_delay_ms: int = Field(config.RETRY_DELAY_MS, ge=0)


class Entry(BaseModel):
    id: str = Field(..., examples=["song-1"])
    title: str = ""
    artist: str = ""
    audio_url: Optional[str] = None
    image_url: Optional[str] = None


class VoteRecord(BaseModel):
    """One persisted row: total points a user gave to one entry."""
    entry_id: str
    points: int = Field(..., ge=0)


class LedgerSnapshot(BaseModel):
    """
    Read-only copy of the ledger for rendering:
    committed[entry_id] = points already stored remotely
    pending[entry_id] = points accepted locally, not yet submitted
    """
    user_id: Optional[str]
    committed: Dict[str, int]
    pending: Dict[str, int]
    remaining: int
    max_votes_per_user: int
    max_votes_per_entry: int


class SubmitFailure(BaseModel):
    entry_id: str
    error: str


class SubmitResult(BaseModel):
    success_count: int = 0
    failures: List[SubmitFailure] = Field(default_factory=list)
    # identity changed while the batch was in flight; nothing was merged
    discarded: bool = False


class CoordinatorState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"


class EntryView(BaseModel):
    entry: Entry
    votes: int
    can_add: bool
    can_remove: bool


class SessionIn(BaseModel):
    access_token: str = Field(..., min_length=1)
