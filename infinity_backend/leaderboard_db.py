"""
leaderboard_db.py — Read-only leaderboard queries over the `players` table.

  get_overall_leaderboard  — top players by rating (all time)
  get_weekly_leaderboard   — top players by wins over the trailing 7 days

Neither query takes locks; they see whatever was last committed.

Weekly numbers come from the per-player match history, which only holds the
last MATCH_HISTORY_LIMIT matches. Players with more matches than that in the
window are undercounted; this follows from the retention policy.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.orm import Session

from infinity_backend.config import LEADERBOARD_SIZE, WEEKLY_WINDOW_DAYS
from infinity_backend.database import SessionLocal
from infinity_backend.match_history import MatchHistory
from infinity_backend.models import Player

logger = logging.getLogger(__name__)


def get_overall_leaderboard(
    session_factory: Callable[[], Session] = SessionLocal,
    limit: int = LEADERBOARD_SIZE,
) -> list[dict]:
    """Players with at least one game, by rating descending.

    Equal ratings are ordered by id ascending so the result doesn't depend on
    the database's physical row order.
    """
    with session_factory() as session:
        rows = (
            session.query(Player)
            .filter(Player.games_played >= 1)
            .order_by(Player.rating.desc(), Player.id.asc())
            .limit(limit)
            .all()
        )
        return [
            {
                "id": r.id,
                "nickname": r.nickname,
                "rating": r.rating,
                "gamesPlayed": r.games_played,
                "wins": r.wins,
                "level": r.level,
            }
            for r in rows
        ]


def count_weekly_matches(history: MatchHistory, window_start: datetime, now: datetime) -> tuple[int, int]:
    """Returns (games, wins) among history entries recorded in [window_start, now)."""
    games = 0
    wins = 0
    for entry in history:
        if window_start <= entry.recorded_at < now:
            games += 1
            if entry.win:
                wins += 1
    return games, wins


def get_weekly_leaderboard(
    session_factory: Callable[[], Session] = SessionLocal,
    limit: int = LEADERBOARD_SIZE,
    now: datetime | None = None,
) -> list[dict]:
    """Players ranked by wins, then games, within the trailing week.

    Players without any match in the window are left out, whatever their rating.
    """
    now = now or datetime.now(timezone.utc)
    window_start = now - timedelta(days=WEEKLY_WINDOW_DAYS)

    with session_factory() as session:
        # Any match in the window stamped last_updated inside it too, so this
        # narrows the scan without dropping anyone.
        rows = (
            session.query(Player)
            .filter(Player.games_played >= 1)
            .filter(Player.last_updated >= window_start)
            .all()
        )

        entries: list[dict] = []
        for r in rows:
            games, wins = count_weekly_matches(
                MatchHistory.from_list(r.match_history), window_start, now
            )
            if games == 0:
                continue
            entries.append({
                "id": r.id,
                "nickname": r.nickname,
                "rating": r.rating,
                "level": r.level,
                "weeklyGames": games,
                "weeklyWins": wins,
            })

    entries.sort(key=lambda e: (-e["weeklyWins"], -e["weeklyGames"], e["id"]))

    logger.debug(
        "[leaderboard] weekly window=%s..%s candidates=%d ranked=%d",
        window_start.isoformat(), now.isoformat(), len(rows), len(entries),
    )
    return entries[:limit]
