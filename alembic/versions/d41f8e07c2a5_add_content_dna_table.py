"""add content_dna table

Revision ID: d41f8e07c2a5
Revises: 7c1e2f4a9b30
Create Date: 2026-09-16 18:02:51.093114
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd41f8e07c2a5'
down_revision: Union[str, None] = '7c1e2f4a9b30'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Until this runs, DNA lookups read as "not found" and watchlist scans are skipped
    op.create_table(
        'content_dna',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tmdb_id', sa.Integer(), nullable=False),
        sa.Column('media_type', sa.String(10), nullable=False),
        sa.Column('tone', sa.JSON(), nullable=False),
        sa.Column('themes', sa.JSON(), nullable=False),
        sa.Column('setting', sa.JSON(), nullable=False),
        sa.Column('pacing', sa.JSON(), nullable=False),
        sa.Column('complexity', sa.JSON(), nullable=False),
        sa.Column('genres', sa.JSON(), nullable=False),
        sa.Column('directors', sa.JSON(), nullable=False),
        sa.Column('actors', sa.JSON(), nullable=False),
        sa.Column('keywords', sa.JSON(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('tmdb_id', 'media_type', name='uq_content_dna_title'),
    )
    op.create_index('ix_content_dna_tmdb_id', 'content_dna', ['tmdb_id'])


def downgrade() -> None:
    op.drop_index('ix_content_dna_tmdb_id', table_name='content_dna')
    op.drop_table('content_dna')
