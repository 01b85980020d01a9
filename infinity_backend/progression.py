"""
progression.py — Player record shape and the match-report state transition.

Everything here is pure: no database access, no clock reads unless the caller
omits `now`. players_db.py loads a PlayerRecord, calls apply_match_report()
and persists the result.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

from infinity_backend.config import (
    EXPERIENCE_PER_LEVEL,
    INITIAL_RATING,
    RATING_FLOOR,
    RATING_STEP,
)
from infinity_backend.match_history import MatchEntry, MatchHistory


def level_for_experience(experience: int) -> int:
    """level = floor(experience / 1000) + 1, never below 1."""
    return max(experience, 0) // EXPERIENCE_PER_LEVEL + 1


def adjust_rating(rating: int, win: bool) -> int:
    delta = RATING_STEP if win else -RATING_STEP
    return max(RATING_FLOOR, rating + delta)


@dataclass
class PlayerRecord:
    id: str
    nickname: Optional[str] = None
    level: int = 1
    experience: int = 0
    games_played: int = 0
    wins: int = 0
    mvp_count: int = 0
    rating: int = INITIAL_RATING
    match_history: MatchHistory = field(default_factory=MatchHistory)
    prestige: int = 0
    gold: int = 0
    items: list = field(default_factory=list)
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Wire-level JSON keys (camelCase), as returned by the API."""
        return {
            "id": self.id,
            "nickname": self.nickname,
            "level": self.level,
            "experience": self.experience,
            "gamesPlayed": self.games_played,
            "wins": self.wins,
            "mvpCount": self.mvp_count,
            "rating": self.rating,
            "matchHistory": self.match_history.to_list(),
            "prestige": self.prestige,
            "gold": self.gold,
            "items": list(self.items),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }


@dataclass(frozen=True)
class MatchReport:
    win: bool = False
    prestige: int = 0
    kills: int = 0
    damage: int = 0
    hero: str = ""
    exp_gain: int = 0
    is_mvp: bool = False
    nickname: Optional[str] = None


def apply_match_report(
    record: PlayerRecord,
    report: MatchReport,
    now: datetime | None = None,
) -> PlayerRecord:
    """Returns a new PlayerRecord with one match's outcome applied.

    The input record is left untouched, including its match history.
    """
    now = now or datetime.now(timezone.utc)

    nickname = record.nickname
    if report.nickname:
        nickname = report.nickname

    experience = record.experience + max(report.exp_gain or 0, 0)

    history = MatchHistory(record.match_history, capacity=record.match_history.capacity)
    history.push(
        MatchEntry(
            hero=report.hero,
            win=report.win,
            prestige=report.prestige,
            kills=report.kills,
            damage=report.damage,
            recorded_at=now,
        )
    )

    return replace(
        record,
        nickname=nickname,
        games_played=record.games_played + 1,
        wins=record.wins + (1 if report.win else 0),
        mvp_count=record.mvp_count + (1 if report.is_mvp else 0),
        experience=experience,
        rating=adjust_rating(record.rating, report.win),
        level=level_for_experience(experience),
        match_history=history,
        last_updated=now,
    )
