# remote row store: votes, catalog and identity over the REST API
from typing import Dict, List, Optional, Protocol, Tuple
from urllib.parse import urlencode

import httpx

from . import config
from .errors import StoreError, TransientStoreError, VoteConflictError
from .log import get_logger
from .models import Entry, VoteRecord

log = get_logger("store")


class VoteStore(Protocol):
    def login_url(self, provider: str = ..., redirect_to: str = ...) -> str: ...

    def forget_user(self) -> None: ...

    async def fetch_entries(self) -> List[Entry]: ...

    async def fetch_user(self, access_token: str) -> Optional[str]: ...

    async def fetch_votes(self, user_id: str) -> List[VoteRecord]: ...

    async def insert_vote(self, user_id: str, entry_id: str, points: int) -> None: ...

    async def update_vote(self, user_id: str, entry_id: str, new_points: int) -> None: ...


def _raise_for_status(resp: httpx.Response, what: str) -> None:
    if resp.status_code < 400:
        return
    detail = f"{what} failed: HTTP {resp.status_code} {resp.text[:200]}"
    if resp.status_code == 409:
        raise VoteConflictError(detail, resp.status_code)
    if resp.status_code == 429 or resp.status_code >= 500:
        raise TransientStoreError(detail, resp.status_code)
    raise StoreError(detail, resp.status_code)


class RestVoteStore:
    """
    Supabase/PostgREST backed store.

    votes table rows: {user_id, song_id, points}
    songs table rows: {id, title, artist, audio_url, image_url}
    """

    ENTRY_COLUMN = "song_id"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str = config.STORE_URL,
        api_key: str = config.STORE_ANON_KEY,
        entries_table: str = config.ENTRIES_TABLE,
        votes_table: str = config.VOTES_TABLE,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.entries_table = entries_table
        self.votes_table = votes_table
        self.access_token: Optional[str] = None

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }
        headers.update(extra)
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    async def _request(self, method: str, url: str, what: str, **kwargs) -> httpx.Response:
        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransientStoreError(f"{what} failed: {exc!r}") from exc
        _raise_for_status(resp, what)
        return resp

    def login_url(self, provider: str = config.AUTH_PROVIDER, redirect_to: str = config.REDIRECT_URL) -> str:
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"{self.base_url}/auth/v1/authorize?{query}"

    async def fetch_user(self, access_token: str) -> Optional[str]:
        """Resolve an access token to the user id, None when the token is rejected."""
        try:
            resp = await self.client.get(
                f"{self.base_url}/auth/v1/user",
                headers={"apikey": self.api_key, "Authorization": f"Bearer {access_token}"},
            )
        except httpx.TransportError as exc:
            raise TransientStoreError(f"fetch_user failed: {exc!r}") from exc
        if resp.status_code in (401, 403):
            log.info(f"Access token rejected by store (HTTP {resp.status_code})")
            return None
        _raise_for_status(resp, "fetch_user")
        user_id = resp.json().get("id")
        if user_id:
            self.access_token = access_token
        return user_id

    def forget_user(self) -> None:
        self.access_token = None

    async def fetch_entries(self) -> List[Entry]:
        resp = await self._request(
            "GET",
            self._table_url(self.entries_table),
            "fetch_entries",
            params={"select": "*"},
            headers=self._headers(),
        )
        return [Entry(**{**row, "id": str(row["id"])}) for row in resp.json()]

    async def fetch_votes(self, user_id: str) -> List[VoteRecord]:
        resp = await self._request(
            "GET",
            self._table_url(self.votes_table),
            "fetch_votes",
            params={"select": f"{self.ENTRY_COLUMN},points", "user_id": f"eq.{user_id}"},
            headers=self._headers(),
        )
        return [
            VoteRecord(entry_id=str(row[self.ENTRY_COLUMN]), points=row["points"])
            for row in resp.json()
        ]

    async def insert_vote(self, user_id: str, entry_id: str, points: int) -> None:
        await self._request(
            "POST",
            self._table_url(self.votes_table),
            "insert_vote",
            json={"user_id": user_id, self.ENTRY_COLUMN: entry_id, "points": points},
            headers=self._headers(Prefer="return=minimal"),
        )

    async def update_vote(self, user_id: str, entry_id: str, new_points: int) -> None:
        resp = await self._request(
            "PATCH",
            self._table_url(self.votes_table),
            "update_vote",
            params={"user_id": f"eq.{user_id}", self.ENTRY_COLUMN: f"eq.{entry_id}"},
            json={"points": new_points},
            headers=self._headers(Prefer="return=representation"),
        )
        if not resp.json():
            raise StoreError(f"update_vote failed: no row for user={user_id} entry={entry_id}")


class InMemoryVoteStore:
    """
    Process-local store with the same contract as RestVoteStore.

    rows[(user_id, entry_id)] = points
    tokens[access_token] = user_id
    """

    def __init__(self, entries: Optional[List[Entry]] = None, tokens: Optional[Dict[str, str]] = None):
        self.entries: List[Entry] = list(entries or [])
        self.tokens: Dict[str, str] = dict(tokens or {})
        self.rows: Dict[Tuple[str, str], int] = {}

    def login_url(self, provider: str = config.AUTH_PROVIDER, redirect_to: str = config.REDIRECT_URL) -> str:
        return redirect_to

    async def fetch_user(self, access_token: str) -> Optional[str]:
        return self.tokens.get(access_token)

    def forget_user(self) -> None:
        pass

    async def fetch_entries(self) -> List[Entry]:
        return [e.model_copy() for e in self.entries]

    async def fetch_votes(self, user_id: str) -> List[VoteRecord]:
        return [
            VoteRecord(entry_id=entry_id, points=points)
            for (uid, entry_id), points in self.rows.items()
            if uid == user_id
        ]

    async def insert_vote(self, user_id: str, entry_id: str, points: int) -> None:
        key = (user_id, entry_id)
        if key in self.rows:
            raise VoteConflictError(f"vote for user={user_id} entry={entry_id} already exists", 409)
        self.rows[key] = points

    async def update_vote(self, user_id: str, entry_id: str, new_points: int) -> None:
        key = (user_id, entry_id)
        if key not in self.rows:
            raise StoreError(f"update_vote failed: no row for user={user_id} entry={entry_id}")
        self.rows[key] = new_points
