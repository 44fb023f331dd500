"""Initial migration: create league, matchup, playoffbracketentry tables

Revision ID: 001_initial
Revises:
Create Date: 2025-11-02 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "league",
        sa.Column("league_id", sa.String(), nullable=False),
        sa.Column("season", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("previous_league_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("league_id"),
    )

    op.create_table(
        "matchup",
        sa.Column("league_id", sa.String(), nullable=False),
        sa.Column("roster_id", sa.Integer(), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("season", sa.String(), nullable=False),
        sa.Column("matchup_id", sa.Integer(), nullable=True),
        sa.Column("points", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("league_id", "roster_id", "week"),
    )
    op.create_index("ix_matchup_matchup_id", "matchup", ["matchup_id"])

    # is_bye arrives in 002
    op.create_table(
        "playoffbracketentry",
        sa.Column("league_id", sa.String(), nullable=False),
        sa.Column("bracket_type", sa.String(), nullable=False),
        sa.Column("slot_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("matchup_id", sa.Integer(), nullable=True),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("loser_id", sa.Integer(), nullable=True),
        sa.Column("place", sa.Integer(), nullable=True),
        sa.Column("team1", sa.Integer(), nullable=True),
        sa.Column("team2", sa.Integer(), nullable=True),
        sa.Column("team1_from_winner_of_slot", sa.Integer(), nullable=True),
        sa.Column("team1_from_loser_of_slot", sa.Integer(), nullable=True),
        sa.Column("team2_from_winner_of_slot", sa.Integer(), nullable=True),
        sa.Column("team2_from_loser_of_slot", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("league_id", "bracket_type", "slot_id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.league_id"]),
    )


def downgrade() -> None:
    op.drop_table("playoffbracketentry")
    op.drop_index("ix_matchup_matchup_id", table_name="matchup")
    op.drop_table("matchup")
    op.drop_table("league")
