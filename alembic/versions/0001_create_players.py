"""Create players table.

Revision ID: 0001
Revises:
Create Date: 2026-10-19

One row per player (keyed by Steam id) holding progression counters, rating,
the last 10 matches as a JSON list, the legacy save fields, and the
optimistic-locking `version` counter.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("nickname", sa.String(64), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mvp_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Integer(), nullable=False, server_default="1500"),
        sa.Column("match_history", sa.JSON(), nullable=False),
        sa.Column("prestige", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_players_rating", "players", ["rating"])
    op.create_index("ix_players_last_updated", "players", ["last_updated"])


def downgrade() -> None:
    op.drop_index("ix_players_last_updated", table_name="players")
    op.drop_index("ix_players_rating", table_name="players")
    op.drop_table("players")
