"""create forum schema

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-12 10:14:03.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Shared by posts and questions; created once up front.
content_status = postgresql.ENUM('published', 'draft', 'archived', name='content_status', create_type=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _content_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('video', sa.String(length=255), nullable=True),
        sa.Column('type', sa.Integer(), nullable=False),
        sa.Column('likes_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('views_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('favorite_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_recommended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', content_status, nullable=False, server_default='published'),
    ]


def _reaction_table(name: str, content_table: str, content_column: str) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(content_column, sa.Integer(), sa.ForeignKey(f'{content_table}.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(content_column, 'user_id', name=f'uq_{name}_pair'),
    )
    op.create_index(f'ix_{name}_user_id', name, ['user_id'])


def upgrade() -> None:
    """Upgrade schema."""
    content_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'schools',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('introduce', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('number > 0', name='ck_schools_number_positive'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=45), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('nickname', sa.String(length=45), nullable=False),
        sa.Column('sex', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('role', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('photo', sa.String(length=255), nullable=True),
        sa.Column('introduce', sa.String(length=255), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('original_school_id', sa.Integer(), nullable=True),
        sa.Column(
            'target_school_id', sa.Integer(),
            sa.ForeignKey('schools.id', ondelete='SET NULL', onupdate='CASCADE'), nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint('sex IN (0, 1, 2)', name='ck_users_sex'),
        sa.CheckConstraint('role IN (0, 1, 2)', name='ck_users_role'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'])

    op.create_table(
        'school_categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id', ondelete='CASCADE'), nullable=False),
        sa.Column('exam_frequency', sa.Integer(), nullable=False, server_default='3'),
        *_timestamps(),
        sa.UniqueConstraint('category_id', 'school_id', name='uq_school_categories_pair'),
        sa.CheckConstraint('exam_frequency BETWEEN 1 AND 5', name='ck_school_categories_frequency'),
    )
    op.create_index('ix_school_categories_school_id', 'school_categories', ['school_id'])

    op.create_table(
        'posts',
        *_content_columns(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id', ondelete='SET NULL'), nullable=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=True),
        sa.Column('cover_image', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('likes_count >= 0', name='ck_posts_likes_count'),
        sa.CheckConstraint('favorite_count >= 0', name='ck_posts_favorite_count'),
        sa.CheckConstraint('views_count >= 0', name='ck_posts_views_count'),
    )
    for column in ('user_id', 'school_id', 'parent_id'):
        op.create_index(f'ix_posts_{column}', 'posts', [column])

    op.create_table(
        'questions',
        *_content_columns(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=True),
        sa.Column('difficulty', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('likes_count >= 0', name='ck_questions_likes_count'),
        sa.CheckConstraint('favorite_count >= 0', name='ck_questions_favorite_count'),
        sa.CheckConstraint('views_count >= 0', name='ck_questions_views_count'),
    )
    for column in ('user_id', 'category_id', 'parent_id'):
        op.create_index(f'ix_questions_{column}', 'questions', [column])

    _reaction_table('post_likes', 'posts', 'post_id')
    _reaction_table('post_favorites', 'posts', 'post_id')
    _reaction_table('question_likes', 'questions', 'question_id')
    _reaction_table('question_favorites', 'questions', 'question_id')


def downgrade() -> None:
    """Downgrade schema."""
    for name in ('question_favorites', 'question_likes', 'post_favorites', 'post_likes'):
        op.drop_table(name)
    op.drop_table('questions')
    op.drop_table('posts')
    op.drop_table('school_categories')
    op.drop_table('categories')
    op.drop_table('users')
    op.drop_table('schools')
    content_status.drop(op.get_bind(), checkfirst=True)
