from contextlib import asynccontextmanager
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from . import config
from .announcement import AwardShowInfo
from .errors import NotAuthenticatedError, StoreError
from .log import get_logger
from .models import RetryPolicy, SessionIn, VotingLimits
from .session import VotingSession
from .store import RestVoteStore

log = get_logger("main")


def create_app(session: Optional[VotingSession] = None, *, voting_open: bool = config.VOTING_OPEN) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: store client + session, unless one was injected
        client = None
        if app.state.session is None:
            client = httpx.AsyncClient(timeout=config.STORE_TIMEOUT)
            store = RestVoteStore(client)
            app.state.session = VotingSession(store, VotingLimits(), RetryPolicy())
            try:
                await app.state.session.load_catalog()
            except StoreError as exc:
                log.warning(f"Catalog not loaded at startup: {exc}")
        yield
        # Shutdown
        if client is not None:
            await client.aclose()

    app = FastAPI(title="SONGJAM voting client", lifespan=lifespan)
    app.state.session = session
    app.state.voting_open = voting_open

    @app.exception_handler(NotAuthenticatedError)
    async def not_authenticated(request: Request, exc: NotAuthenticatedError):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def store_unavailable(request: Request, exc: StoreError):
        log.warning(f"Store failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    def get_session(request: Request) -> VotingSession:
        return request.app.state.session

    def require_open(request: Request) -> None:
        if not request.app.state.voting_open:
            raise HTTPException(status_code=403, detail="Voting has ended")

    def require_entry(entry_id: str, session: VotingSession) -> None:
        if session.find_entry(entry_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown entry {entry_id}")
        if not session.authenticated:
            raise NotAuthenticatedError("login required")
        if session.coordinator.submitting:
            raise HTTPException(status_code=409, detail="Submission in progress")

    @app.get("/")
    def root(request: Request):
        if request.app.state.voting_open:
            return RedirectResponse(url="/entries")
        return RedirectResponse(url="/award-show")

    @app.get("/login", dependencies=[Depends(require_open)])
    def login_redirect(session: VotingSession = Depends(get_session)):
        return RedirectResponse(url=session.store.login_url())

    @app.post("/session", dependencies=[Depends(require_open)])
    async def login(body: SessionIn, session: VotingSession = Depends(get_session)):
        user_id = await session.login(body.access_token)
        if user_id is None:
            raise HTTPException(status_code=401, detail="Login failed")
        return {"ok": True, "user_id": user_id, "ledger": session.ledger.snapshot().model_dump()}

    @app.delete("/session")
    async def logout(session: VotingSession = Depends(get_session)):
        await session.logout()
        return {"ok": True}

    @app.get("/entries", dependencies=[Depends(require_open)])
    async def entries(session: VotingSession = Depends(get_session)):
        if not session.entries:
            await session.load_catalog()
        return {
            "entries": [view.model_dump() for view in session.entry_views()],
            "remaining": session.ledger.display_remaining(),
        }

    @app.get("/ledger")
    def ledger(session: VotingSession = Depends(get_session)):
        return {
            "ledger": session.ledger.snapshot().model_dump(),
            "state": session.coordinator.state.value,
        }

    @app.post("/entries/{entry_id}/votes", dependencies=[Depends(require_open)])
    def add_vote(entry_id: str, session: VotingSession = Depends(get_session)):
        require_entry(entry_id, session)
        if not session.ledger.add(entry_id):
            raise HTTPException(status_code=409, detail="Vote limit reached")
        return {
            "ok": True,
            "entry_id": entry_id,
            "votes": session.ledger.votes_for(entry_id),
            "remaining": session.ledger.display_remaining(),
        }

    @app.delete("/entries/{entry_id}/votes", dependencies=[Depends(require_open)])
    def remove_vote(entry_id: str, session: VotingSession = Depends(get_session)):
        require_entry(entry_id, session)
        if not session.ledger.remove(entry_id):
            raise HTTPException(status_code=409, detail="No pending vote to remove")
        return {
            "ok": True,
            "entry_id": entry_id,
            "votes": session.ledger.votes_for(entry_id),
            "remaining": session.ledger.display_remaining(),
        }

    @app.post("/submit", dependencies=[Depends(require_open)])
    async def submit(session: VotingSession = Depends(get_session)):
        result = await session.submit()
        if result is None:
            raise HTTPException(status_code=409, detail="Submission in progress")
        return {"result": result.model_dump(), "ledger": session.ledger.snapshot().model_dump()}

    @app.get("/award-show")
    def award_show(tz: Optional[str] = None):
        zone = None
        if tz:
            try:
                zone = ZoneInfo(tz)
            except (ZoneInfoNotFoundError, ValueError):
                raise HTTPException(status_code=400, detail=f"Unknown timezone {tz}")
        return AwardShowInfo.from_config().to_document(zone)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("songjam.main:app", host="0.0.0.0", port=config.PORT, log_level=config.LOG_LEVEL.lower())
