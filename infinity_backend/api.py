import asyncio
import functools
import logging
import secrets
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from infinity_backend import settings
from infinity_backend.database import SessionLocal, create_all_tables
from infinity_backend.leaderboard_db import get_overall_leaderboard, get_weekly_leaderboard
from infinity_backend.players_db import PlayerNotFoundError, PlayerRepository
from infinity_backend.progression import MatchReport

logger = logging.getLogger(__name__)

# Upper bound for the store work of a single request, in seconds
REQUEST_TIMEOUT_SECONDS: float = settings.REQUEST_TIMEOUT_SECONDS


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Idempotent; Alembic is the authoritative source for PostgreSQL
    create_all_tables()
    logger.info("[startup] tables ready")
    yield


app = FastAPI(title="Dota Infinity Backend", lifespan=lifespan)


# The game client calls this API directly, so CORS is left open
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException):
    """Every error goes out as {"error": "..."}, which is what the game client parses."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=422, content={"error": f"Invalid request: {problems}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(_request: Request, exc: Exception):
    logger.exception("[error] unhandled %s", type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


# ========== Dependencies ==========

def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_api_key() -> str | None:
    return settings.API_KEY


def require_api_key(
    x_api_key: str | None = Header(default=None),
    expected: str | None = Depends(get_api_key),
) -> None:
    """Rejects the request unless x-api-key matches the server's API_KEY exactly."""
    if not x_api_key or not expected:
        raise HTTPException(status_code=403, detail="Unauthorized")
    if not secrets.compare_digest(x_api_key.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Unauthorized")


async def run_store_call(func: Callable, *args):
    """Runs blocking store work in a worker thread, bounded by REQUEST_TIMEOUT_SECONDS.

    Store errors become 500 with the underlying message; the deadline becomes 504.
    Each call owns its session, so an abandoned call still commits or rolls back
    as a whole.
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, functools.partial(func, *args)),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "[timeout] %s exceeded %.1fs", getattr(func, "__name__", func), REQUEST_TIMEOUT_SECONDS
        )
        raise HTTPException(status_code=504, detail="Request timed out")
    except PlayerNotFoundError:
        raise
    except SQLAlchemyError as e:
        logger.exception("[store] %s failed", getattr(func, "__name__", func))
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        # Driver-level errors SQLAlchemy doesn't wrap (e.g. OverflowError from sqlite3)
        logger.exception("[store] %s failed", getattr(func, "__name__", func))
        raise HTTPException(status_code=500, detail=str(e) or type(e).__name__)


# ========== Pydantic Models ==========

class SaveRequest(BaseModel):
    """Legacy whole-record save. Fields left out of the body are not touched."""
    prestige: int | None = None
    gold: int | None = None
    experience: int | None = None
    items: list | None = None


class MatchReportRequest(BaseModel):
    win: bool = False
    prestige: int = 0
    kills: int = 0
    damage: int = 0
    hero: str = ""
    expGain: int = 0
    isMvp: bool = False
    nickname: str | None = None

    def to_report(self) -> MatchReport:
        return MatchReport(
            win=self.win,
            prestige=self.prestige,
            kills=self.kills,
            damage=self.damage,
            hero=self.hero,
            exp_gain=self.expGain,
            is_mvp=self.isMvp,
            nickname=self.nickname,
        )


# ========== API Endpoints ==========

@app.get("/", response_class=PlainTextResponse)
async def health():
    return "Dota Infinity Backend is running!"


@app.get("/player/{player_id}", dependencies=[Depends(require_api_key)])
async def load_player(
    player_id: str,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Returns the player's record, creating a fresh one on first visit."""
    repo = PlayerRepository(session_factory)
    record = await run_store_call(repo.get_or_create, player_id)
    return record.to_dict()


@app.post("/player/{player_id}/save", dependencies=[Depends(require_api_key)])
async def save_player(
    player_id: str,
    data: SaveRequest,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Overwrites prestige / gold / experience / items (legacy endpoint)."""
    repo = PlayerRepository(session_factory)
    fields = data.model_dump(exclude_unset=True)
    record = await run_store_call(repo.replace_fields, player_id, fields)
    return {"success": True, "player": record.to_dict()}


@app.post("/player/{player_id}/report-match", dependencies=[Depends(require_api_key)])
async def report_match(
    player_id: str,
    data: MatchReportRequest,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Applies one finished match to an existing player."""
    repo = PlayerRepository(session_factory)
    try:
        record = await run_store_call(repo.report_match, player_id, data.to_report())
    except PlayerNotFoundError:
        logger.info("[report_match] unknown player id=%s", player_id)
        raise HTTPException(status_code=404, detail="Player not found")
    return {"success": True, "player": record.to_dict()}


@app.get("/leaderboard/overall", dependencies=[Depends(require_api_key)])
async def leaderboard_overall(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    return await run_store_call(get_overall_leaderboard, session_factory)


@app.get("/leaderboard/weekly", dependencies=[Depends(require_api_key)])
async def leaderboard_weekly(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    return await run_store_call(get_weekly_leaderboard, session_factory)
