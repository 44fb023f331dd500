"""add is_bye to playoffbracketentry for synthesized round-1 byes

Revision ID: 002_playoff_is_bye
Revises: 001_initial
Create Date: 2025-12-21 18:40:11.512204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '002_playoff_is_bye'
down_revision = '001_initial'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        'playoffbracketentry',
        sa.Column('is_bye', sa.Boolean(), nullable=False, server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_column('playoffbracketentry', 'is_bye')
