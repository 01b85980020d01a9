"""
config.py — Gameplay constants for the Dota Infinity backend.

Unlike runtime settings (settings.py, read from environment variables), these
constants are part of the progression rules and are the same everywhere.
"""

# ---------------------------------------------------------------------------
# Player progression
# ---------------------------------------------------------------------------

# level = experience // EXPERIENCE_PER_LEVEL + 1
EXPERIENCE_PER_LEVEL: int = 1000

INITIAL_RATING: int = 1500
# Rating never drops below this, no matter how many losses in a row
RATING_FLOOR: int = 300
# Flat rating change per match: +RATING_STEP on a win, -RATING_STEP on a loss
RATING_STEP: int = 25

# ---------------------------------------------------------------------------
# Match history
#
# Only the most recent matches are kept on the player row (newest first).
# The weekly leaderboard is computed from this history, so a player with more
# than MATCH_HISTORY_LIMIT matches in a week is undercounted there.
# ---------------------------------------------------------------------------

MATCH_HISTORY_LIMIT: int = 10

# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------

LEADERBOARD_SIZE: int = 10
WEEKLY_WINDOW_DAYS: int = 7

# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

# How many times a match report is re-applied after losing an optimistic
# version check to a write from another process.
MAX_REPORT_ATTEMPTS: int = 3
