"""create_exam_tracker_tables

Revision ID: b7c41e9d2a10
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b7c41e9d2a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Usuarios, preguntas, progreso, artículos y pruebas simuladas."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('auth_provider', sa.String(20), server_default='password', nullable=False),
        sa.Column('is_admin', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'examtracker',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('topic', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('chapter', sa.String(255), nullable=True),
        sa.Column('chapter_key', sa.String(255), nullable=True),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('difficulty', sa.String(10), nullable=False),
        sa.Column('year', sa.String(100), nullable=True),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('option_a', sa.Text(), nullable=True),
        sa.Column('option_b', sa.Text(), nullable=True),
        sa.Column('option_c', sa.Text(), nullable=True),
        sa.Column('option_d', sa.Text(), nullable=True),
        sa.Column('correct_option', sa.String(4), nullable=True),
        sa.Column('solution', sa.Text(), nullable=True),
        sa.Column('solution_text', sa.Text(), nullable=True),
        sa.Column('question_image', sa.String(500), nullable=True),
        sa.Column('topic_list', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('topic', 'subject', 'chapter_key', 'category', 'difficulty'):
        op.create_index(f'ix_examtracker_{column}', 'examtracker', [column])

    op.create_table(
        'user_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('topic', sa.String(255), nullable=False),
        sa.Column('area', sa.String(100), nullable=False),
        sa.Column('completed_questions', postgresql.JSONB(), nullable=False),
        sa.Column('correct_answers', postgresql.JSONB(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'topic', 'area', name='uq_user_topic_area'),
    )
    op.create_index('ix_user_progress_id', 'user_progress', ['id'])
    op.create_index('ix_user_progress_user_id', 'user_progress', ['user_id'])
    op.create_index('ix_user_progress_topic', 'user_progress', ['topic'])
    op.create_index('ix_user_progress_area', 'user_progress', ['area'])

    op.create_table(
        'article_categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index('ix_article_categories_slug', 'article_categories', ['slug'], unique=True)

    op.create_table(
        'articles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('tags', postgresql.JSONB(), nullable=False),
        sa.Column('featured_image_url', sa.String(500), nullable=True),
        sa.Column('is_featured', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('social_media_embeds', postgresql.JSONB(), nullable=False),
        sa.Column('author_email', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), server_default='draft', nullable=False),
        sa.Column('view_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('published_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['category'], ['article_categories.slug'],
                                ondelete='RESTRICT', onupdate='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('title'),
    )
    op.create_index('ix_articles_slug', 'articles', ['slug'], unique=True)
    op.create_index('ix_articles_category', 'articles', ['category'])

    op.create_table(
        'subreddit_tracking',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('last_index', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'mock_tests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False),
        sa.Column('creation_mode', sa.String(10), nullable=False),
        sa.Column('weightage_config', postgresql.JSONB(), nullable=True),
        sa.Column('question_distribution', postgresql.JSONB(), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_mock_tests_category', 'mock_tests', ['category'])

    op.create_table(
        'mock_test_questions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('test_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('question_order', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('topic', sa.String(255), nullable=True),
        sa.Column('difficulty', sa.String(10), nullable=True),
        sa.ForeignKeyConstraint(['test_id'], ['mock_tests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['examtracker.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_mock_test_questions_test_id', 'mock_test_questions', ['test_id'])

    op.create_table(
        'mock_test_attempts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('test_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('answers', postgresql.JSONB(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('analytics', postgresql.JSONB(), nullable=True),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['test_id'], ['mock_tests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_mock_test_attempts_test_id', 'mock_test_attempts', ['test_id'])
    op.create_index('ix_mock_test_attempts_user_id', 'mock_test_attempts', ['user_id'])


def downgrade() -> None:
    """Drop all exam tracker tables."""
    op.drop_table('mock_test_attempts')
    op.drop_table('mock_test_questions')
    op.drop_table('mock_tests')
    op.drop_table('subreddit_tracking')
    op.drop_table('articles')
    op.drop_table('article_categories')
    op.drop_table('user_progress')
    op.drop_table('examtracker')
    op.drop_table('users')
