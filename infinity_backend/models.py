"""
models.py — SQLAlchemy ORM models for the Dota Infinity backend.

Importing this module registers all models with Base (from database.py),
so Alembic can detect the full schema via Base.metadata.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from infinity_backend.config import INITIAL_RATING
from infinity_backend.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Player progression
# ---------------------------------------------------------------------------

class Player(Base):
    """One row per player, keyed by the external (Steam) id.

    The bounded match history lives in the same row as a JSON list, so a
    match report is a single-row, all-or-nothing write.
    """
    __tablename__ = "players"

    id = Column(String(64), primary_key=True)
    nickname = Column(String(64), nullable=True)

    level = Column(Integer, nullable=False, default=1)
    experience = Column(Integer, nullable=False, default=0)
    games_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    mvp_count = Column(Integer, nullable=False, default=0)
    rating = Column(Integer, nullable=False, default=INITIAL_RATING, index=True)

    # JSON: list of {hero, win, prestige, kills, damage, recordedAt}, newest first
    match_history = Column(JSON, nullable=False, default=list)

    # Legacy fields, written only by POST /player/{id}/save
    prestige = Column(Integer, nullable=False, default=0)
    gold = Column(Integer, nullable=False, default=0)
    items = Column(JSON, nullable=False, default=list)

    # DateTime(timezone=True) → TIMESTAMPTZ on PostgreSQL, naive text on SQLite
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_updated = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    # Optimistic locking: every UPDATE checks and bumps this counter
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
