"""create content, watchlist, affinity and taste profile tables

Revision ID: 7c1e2f4a9b30
Revises:
Create Date: 2026-09-02 10:14:37.512208
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c1e2f4a9b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'content',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tmdb_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.Enum('movie', 'tv', name='content_type'), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('genres', sa.JSON(), nullable=False),
        sa.Column('poster_path', sa.String(255), nullable=True),
        sa.Column('original_language', sa.String(10), nullable=True),
        sa.Column('origin_country', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('tmdb_id', 'type', name='uq_content_tmdb_type'),
    )

    op.create_table(
        'watchlist_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('content_id', sa.Integer(), sa.ForeignKey('content.id', ondelete='SET NULL'), nullable=True),
        sa.Column('tmdb_id', sa.String(32), nullable=True),
        sa.Column('media_type', sa.String(10), nullable=True),
        sa.Column(
            'status',
            sa.Enum('want_to_watch', 'watching', 'watched', name='watch_status'),
            nullable=False,
        ),
        sa.Column('rating', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_watchlist_items_user_id', 'watchlist_items', ['user_id'])
    op.create_index('ix_watchlist_user_status', 'watchlist_items', ['user_id', 'status'])

    op.create_table(
        'user_genre_affinity',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('genre_id', sa.Integer(), nullable=False),
        sa.Column('genre_name', sa.String(100), nullable=False),
        sa.Column('affinity_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('interaction_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_interaction_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'genre_id', name='uq_affinity_user_genre'),
    )
    op.create_index('ix_user_genre_affinity_user_id', 'user_genre_affinity', ['user_id'])

    op.create_table(
        'user_taste_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, unique=True),
        sa.Column('tone', sa.JSON(), nullable=False),
        sa.Column('themes', sa.JSON(), nullable=False),
        sa.Column('setting', sa.JSON(), nullable=False),
        sa.Column('pacing', sa.JSON(), nullable=False),
        sa.Column('complexity', sa.JSON(), nullable=False),
        sa.Column('top_genres', sa.JSON(), nullable=False),
        sa.Column('top_directors', sa.JSON(), nullable=False),
        sa.Column('top_actors', sa.JSON(), nullable=False),
        sa.Column('top_keywords', sa.JSON(), nullable=False),
        sa.Column('discovery_opportunities', sa.JSON(), nullable=False),
        sa.Column('watched_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_rating', sa.Float(), nullable=True),
        sa.Column('taste_signature', sa.String(100), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False, server_default='0'),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('user_taste_profiles')
    op.drop_index('ix_user_genre_affinity_user_id', table_name='user_genre_affinity')
    op.drop_table('user_genre_affinity')
    op.drop_index('ix_watchlist_user_status', table_name='watchlist_items')
    op.drop_index('ix_watchlist_items_user_id', table_name='watchlist_items')
    op.drop_table('watchlist_items')
    op.drop_table('content')
    sa.Enum(name='watch_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='content_type').drop(op.get_bind(), checkfirst=True)
