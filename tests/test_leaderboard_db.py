from datetime import datetime, timedelta, timezone

from infinity_backend.leaderboard_db import (
    count_weekly_matches,
    get_overall_leaderboard,
    get_weekly_leaderboard,
)
from infinity_backend.match_history import MatchEntry, MatchHistory
from infinity_backend.progression import MatchReport

NOW = datetime(2026, 10, 19, 18, 30, tzinfo=timezone.utc)


def _play(repo, player_id: str, results: list[bool], when: datetime = NOW, nickname: str | None = None):
    repo.get_or_create(player_id, now=when)
    for win in results:
        repo.report_match(
            player_id,
            MatchReport(win=win, hero="Lina", exp_gain=100, nickname=nickname),
            now=when,
        )


def test_overall_orders_by_rating(repo, session_factory):
    _play(repo, "low", [False])
    _play(repo, "high", [True, True])
    _play(repo, "mid", [True])

    board = get_overall_leaderboard(session_factory)

    assert [e["id"] for e in board] == ["high", "mid", "low"]
    assert board[0] == {
        "id": "high",
        "nickname": None,
        "rating": 1550,
        "gamesPlayed": 2,
        "wins": 2,
        "level": 1,
    }


def test_overall_skips_players_without_games(repo, session_factory):
    repo.get_or_create("idle")
    _play(repo, "active", [False])

    board = get_overall_leaderboard(session_factory)

    assert [e["id"] for e in board] == ["active"]


def test_overall_breaks_rating_ties_by_id(repo, session_factory):
    for player_id in ["c", "a", "b"]:
        _play(repo, player_id, [True])

    assert [e["id"] for e in get_overall_leaderboard(session_factory)] == ["a", "b", "c"]


def test_overall_limited_to_ten(repo, session_factory):
    for n in range(12):
        _play(repo, f"p{n:02d}", [True])

    assert len(get_overall_leaderboard(session_factory)) == 10


def test_weekly_ranks_by_wins_then_games(repo, session_factory):
    _play(repo, "two_wins", [True, True], when=NOW - timedelta(days=1), nickname="Two")
    _play(repo, "one_win_more_games", [True, False, False], when=NOW - timedelta(days=2))
    _play(repo, "one_win", [True], when=NOW - timedelta(hours=3))

    board = get_weekly_leaderboard(session_factory, now=NOW)

    assert [e["id"] for e in board] == ["two_wins", "one_win_more_games", "one_win"]
    assert board[0] == {
        "id": "two_wins",
        "nickname": "Two",
        "rating": 1550,
        "level": 1,
        "weeklyGames": 2,
        "weeklyWins": 2,
    }


def test_weekly_excludes_players_inactive_this_week(repo, session_factory):
    # Strong all-time record, but nothing in the last 7 days
    _play(repo, "veteran", [True] * 8, when=NOW - timedelta(days=10))
    _play(repo, "newbie", [False], when=NOW - timedelta(days=1))

    board = get_weekly_leaderboard(session_factory, now=NOW)

    assert [e["id"] for e in board] == ["newbie"]
    assert board[0]["weeklyWins"] == 0


def test_weekly_counts_only_in_window_entries(repo, session_factory):
    _play(repo, "mixed", [True, True], when=NOW - timedelta(days=9))
    _play(repo, "mixed", [True, False], when=NOW - timedelta(days=1))

    board = get_weekly_leaderboard(session_factory, now=NOW)

    assert board[0]["weeklyGames"] == 2
    assert board[0]["weeklyWins"] == 1


def test_count_weekly_matches_window_is_half_open():
    start = NOW - timedelta(days=7)

    def entry(at: datetime, win: bool = True) -> MatchEntry:
        return MatchEntry(hero="Io", win=win, prestige=0, kills=0, damage=0, recorded_at=at)

    history = MatchHistory([
        entry(NOW),                                # at `now`: outside
        entry(NOW - timedelta(seconds=1), False),
        entry(start),                              # at window start: inside
        entry(start - timedelta(seconds=1)),
    ])

    assert count_weekly_matches(history, start, NOW) == (2, 1)
