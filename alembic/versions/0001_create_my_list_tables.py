"""create my list tables

Revision ID: 0001_create_my_list_tables
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_create_my_list_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # Helper: create if not exists
    def create_if_missing(table_name, create_fn):
        if not inspector.has_table(table_name):
            create_fn()

    create_if_missing('movies', lambda: op.create_table(
        'movies',
        sa.Column('id', sa.String(length=50), primary_key=True, nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False, index=True),
        sa.Column('description', sa.String(length=2000), nullable=False),
        sa.Column('genres', sa.JSON, nullable=False),
        sa.Column('release_date', sa.DateTime, nullable=False),
        sa.Column('director', sa.String(length=100), nullable=False),
        sa.Column('actors', sa.JSON, nullable=False),
    ))

    create_if_missing('tv_shows', lambda: op.create_table(
        'tv_shows',
        sa.Column('id', sa.String(length=50), primary_key=True, nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False, index=True),
        sa.Column('description', sa.String(length=2000), nullable=False),
        sa.Column('genres', sa.JSON, nullable=False),
        sa.Column('episodes', sa.JSON, nullable=False),
    ))

    list_table_exists = inspector.has_table('my_list_items')
    create_if_missing('my_list_items', lambda: op.create_table(
        'my_list_items',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False, index=True),
        sa.Column('content_id', sa.String(length=50), nullable=False),
        sa.Column('content_type', sa.String(length=16), nullable=False),
        sa.Column('added_at', sa.DateTime, nullable=False),
        sa.Column('title', sa.String, nullable=False),
        sa.Column('description', sa.String, nullable=False),
        sa.Column('genres', sa.JSON, nullable=False),
        sa.Column('release_date', sa.DateTime, nullable=False),
        sa.Column('director', sa.String, nullable=True),
        sa.Column('actors', sa.JSON, nullable=False),
        sa.UniqueConstraint('user_id', 'content_id', name='uq_my_list_user_content'),
        sqlite_autoincrement=True,
    ))
    if not list_table_exists:
        op.create_index('ix_my_list_user_added_id', 'my_list_items', ['user_id', 'added_at', 'id'])


def downgrade() -> None:
    op.drop_index('ix_my_list_user_added_id', table_name='my_list_items')
    op.drop_table('my_list_items')
    op.drop_table('tv_shows')
    op.drop_table('movies')
