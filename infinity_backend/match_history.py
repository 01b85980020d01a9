"""
match_history.py — Bounded, newest-first log of a player's recent matches.

New entries go in at the head; once the buffer is full, every push drops the
oldest entry from the tail. Entries are never edited in place.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator

from infinity_backend.config import MATCH_HISTORY_LIMIT


@dataclass(frozen=True)
class MatchEntry:
    hero: str
    win: bool
    prestige: int
    kills: int
    damage: int
    recorded_at: datetime

    def to_dict(self) -> dict:
        """JSON-ready form, as stored in players.match_history."""
        return {
            "hero": self.hero,
            "win": self.win,
            "prestige": self.prestige,
            "kills": self.kills,
            "damage": self.damage,
            "recordedAt": self.recorded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict) -> "MatchEntry":
        recorded_at = datetime.fromisoformat(raw["recordedAt"])
        if recorded_at.tzinfo is None:
            recorded_at = recorded_at.replace(tzinfo=timezone.utc)
        return cls(
            hero=raw.get("hero") or "",
            win=bool(raw.get("win")),
            prestige=int(raw.get("prestige") or 0),
            kills=int(raw.get("kills") or 0),
            damage=int(raw.get("damage") or 0),
            recorded_at=recorded_at,
        )


class MatchHistory:
    """Fixed-capacity ring buffer of MatchEntry, newest first."""

    def __init__(self, entries: Iterable[MatchEntry] = (), capacity: int = MATCH_HISTORY_LIMIT):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        # `entries` is newest first; anything past capacity is the oldest and is dropped
        self._entries: deque[MatchEntry] = deque(maxlen=capacity)
        for entry in entries:
            if len(self._entries) == capacity:
                break
            self._entries.append(entry)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def push(self, entry: MatchEntry) -> MatchEntry | None:
        """Inserts `entry` at the head. Returns the evicted tail entry, if any."""
        evicted = None
        if len(self._entries) == self.capacity:
            evicted = self._entries[-1]
        # deque(maxlen) drops from the opposite end on appendleft
        self._entries.appendleft(entry)
        return evicted

    def __iter__(self) -> Iterator[MatchEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> MatchEntry:
        return self._entries[index]

    def to_list(self) -> list[dict]:
        return [entry.to_dict() for entry in self._entries]

    @classmethod
    def from_list(cls, raw: list[dict] | None, capacity: int = MATCH_HISTORY_LIMIT) -> "MatchHistory":
        return cls((MatchEntry.from_dict(item) for item in raw or []), capacity=capacity)
