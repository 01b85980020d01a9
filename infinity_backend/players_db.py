"""
players_db.py — Player repository: typed access to the `players` table.

Public API (used by api.py):
  PlayerRepository.get_or_create(player_id)        — lazy create on first read
  PlayerRepository.fetch(player_id)                — strict, raises PlayerNotFoundError
  PlayerRepository.replace_fields(player_id, ...)  — legacy save (upsert)
  PlayerRepository.report_match(player_id, ...)    — fetch + apply + persist

Every method opens its own session and commits before returning; there is no
write-behind and no cache.

Concurrency: writes for one player id are serialized inside the process by a
per-id lock. Across processes the row's `version` column (SQLAlchemy
optimistic versioning) turns a lost update into StaleDataError, and the write
is redone from a fresh read.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from infinity_backend.config import INITIAL_RATING, MAX_REPORT_ATTEMPTS
from infinity_backend.database import SessionLocal
from infinity_backend.match_history import MatchHistory
from infinity_backend.models import Player, utcnow
from infinity_backend.progression import (
    MatchReport,
    PlayerRecord,
    apply_match_report,
    level_for_experience,
)

logger = logging.getLogger(__name__)

# Fields the legacy save endpoint is allowed to overwrite
SAVE_FIELDS: frozenset[str] = frozenset({"prestige", "gold", "experience", "items"})


class PlayerNotFoundError(LookupError):
    """Raised when an operation requires an existing player and there is none."""

    def __init__(self, player_id: str):
        super().__init__(f"Player {player_id!r} not found")
        self.player_id = player_id


# ---------------------------------------------------------------------------
# Per-player serialization point
# ---------------------------------------------------------------------------

class PlayerLocks:
    """One threading.Lock per player id, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # player_id -> [lock, number of holders + waiters]
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, player_id: str) -> Iterator[None]:
        with self._guard:
            slot = self._locks.setdefault(player_id, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[player_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_player_locks = PlayerLocks()


# ---------------------------------------------------------------------------
# Row <-> record mapping
# ---------------------------------------------------------------------------

def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we write is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: Player) -> PlayerRecord:
    return PlayerRecord(
        id=row.id,
        nickname=row.nickname,
        level=row.level,
        experience=row.experience,
        games_played=row.games_played,
        wins=row.wins,
        mvp_count=row.mvp_count,
        rating=row.rating,
        match_history=MatchHistory.from_list(row.match_history),
        prestige=row.prestige,
        gold=row.gold,
        items=list(row.items or []),
        created_at=_as_utc(row.created_at),
        last_updated=_as_utc(row.last_updated),
    )


def _write_record(row: Player, record: PlayerRecord) -> None:
    """Copies every mutable field of `record` onto the ORM row."""
    row.nickname = record.nickname
    row.level = record.level
    row.experience = record.experience
    row.games_played = record.games_played
    row.wins = record.wins
    row.mvp_count = record.mvp_count
    row.rating = record.rating
    # Always a fresh list object, so the JSON column is marked dirty
    row.match_history = record.match_history.to_list()
    row.prestige = record.prestige
    row.gold = record.gold
    row.items = list(record.items)
    row.last_updated = record.last_updated


def _new_player(player_id: str, now: datetime) -> Player:
    return Player(
        id=player_id,
        nickname=None,
        level=1,
        experience=0,
        games_played=0,
        wins=0,
        mvp_count=0,
        rating=INITIAL_RATING,
        match_history=[],
        prestige=0,
        gold=0,
        items=[],
        created_at=now,
        last_updated=now,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class PlayerRepository:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def fetch(self, player_id: str) -> PlayerRecord:
        with self._session_factory() as session:
            row = session.get(Player, player_id)
            if row is None:
                raise PlayerNotFoundError(player_id)
            return _to_record(row)

    def get_or_create(self, player_id: str, now: datetime | None = None) -> PlayerRecord:
        """Returns the player, creating a default record on first access."""
        with self._session_factory() as session:
            row = session.get(Player, player_id)
            if row is not None:
                return _to_record(row)

        with _player_locks.hold(player_id):
            with self._session_factory() as session:
                # Another request may have created it while we waited
                row = session.get(Player, player_id)
                if row is not None:
                    return _to_record(row)

                row = _new_player(player_id, now or utcnow())
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    # Lost the insert race to another process: read the winner's row
                    session.rollback()
                    row = session.get(Player, player_id)
                    if row is None:
                        raise
                    return _to_record(row)

                logger.info("[players] created player id=%s", player_id)
                return _to_record(row)

    def replace_fields(
        self,
        player_id: str,
        fields: dict,
        now: datetime | None = None,
    ) -> PlayerRecord:
        """Legacy save: overwrites the given fields wholesale, creating the player if needed.

        Only keys from SAVE_FIELDS are honoured. `level` is recomputed from the
        saved experience so the level invariant holds on this path too.
        """
        unknown = set(fields) - SAVE_FIELDS
        if unknown:
            raise ValueError(f"cannot save fields: {sorted(unknown)}")

        with _player_locks.hold(player_id):
            last_exc: Exception | None = None
            for attempt in range(1, MAX_REPORT_ATTEMPTS + 1):
                stamp = now or utcnow()
                with self._session_factory() as session:
                    row = session.get(Player, player_id)
                    if row is None:
                        row = _new_player(player_id, stamp)
                        session.add(row)

                    if "prestige" in fields:
                        row.prestige = int(fields["prestige"] or 0)
                    if "gold" in fields:
                        row.gold = int(fields["gold"] or 0)
                    if "experience" in fields:
                        row.experience = max(int(fields["experience"] or 0), 0)
                        row.level = level_for_experience(row.experience)
                    if "items" in fields:
                        row.items = list(fields["items"] or [])
                    row.last_updated = stamp

                    try:
                        session.commit()
                    except (IntegrityError, StaleDataError) as exc:
                        session.rollback()
                        last_exc = exc
                        logger.warning(
                            "[save] concurrent write for player id=%s (attempt %d/%d): %s",
                            player_id, attempt, MAX_REPORT_ATTEMPTS, exc,
                        )
                        continue

                    return _to_record(row)

            raise last_exc

    def report_match(
        self,
        player_id: str,
        report: MatchReport,
        now: datetime | None = None,
    ) -> PlayerRecord:
        """Applies one match report to an existing player and persists it.

        Raises PlayerNotFoundError for an unknown id; nothing is created then.
        """
        with _player_locks.hold(player_id):
            last_exc: Exception | None = None
            for attempt in range(1, MAX_REPORT_ATTEMPTS + 1):
                with self._session_factory() as session:
                    row = session.get(Player, player_id)
                    if row is None:
                        raise PlayerNotFoundError(player_id)

                    updated = apply_match_report(_to_record(row), report, now)
                    _write_record(row, updated)

                    try:
                        session.commit()
                    except StaleDataError as exc:
                        # Another process wrote this row between our read and write
                        session.rollback()
                        last_exc = exc
                        logger.warning(
                            "[report_match] stale version for player id=%s (attempt %d/%d)",
                            player_id, attempt, MAX_REPORT_ATTEMPTS,
                        )
                        continue

                    logger.info(
                        "[report_match] id=%s win=%s games=%d rating=%d level=%d",
                        player_id, report.win, updated.games_played, updated.rating, updated.level,
                    )
                    return updated

            raise last_exc
