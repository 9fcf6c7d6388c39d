"""add listing indexes

Revision ID: 8e4b52d07c1a
Revises: 3c1f0a9d2b7e
Create Date: 2026-10-14 16:41:27.902115

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8e4b52d07c1a'
down_revision: Union[str, Sequence[str], None] = '3c1f0a9d2b7e'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _index_exists(table: str, name: str) -> bool:
    inspector = sa.inspect(op.get_bind())
    return any(index['name'] == name for index in inspector.get_indexes(table))


def upgrade() -> None:
    """Upgrade schema."""
    # Landing page sections: published posts of a type, newest first
    if not _index_exists('posts', 'idx_posts_listing'):
        op.create_index(
            'idx_posts_listing',
            'posts',
            ['status', 'type', sa.text('id DESC')],
            unique=False
        )

    # Questions under a category, in creation order
    if not _index_exists('questions', 'idx_questions_category_created'):
        op.create_index(
            'idx_questions_category_created',
            'questions',
            ['category_id', 'created_at'],
            unique=False
        )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_questions_category_created', table_name='questions')
    op.drop_index('idx_posts_listing', table_name='posts')
