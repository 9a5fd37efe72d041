"""create spelling practice tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create word bank, learner, session, attempt, lock, mastery and custom list tables."""
    op.create_table('spelling_words',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('word', sa.String(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('definition', sa.Text(), nullable=True),
        sa.Column('example_sentence', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('word')
    )
    op.create_index('ix_spelling_words_level', 'spelling_words', ['level'])

    op.create_table('kids',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('parent_id', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=True, server_default='3'),
        sa.Column('rating', sa.Float(), nullable=True, server_default='1500'),
        sa.Column('total_attempts', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('successful_attempts', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_kids_parent_id', 'kids', ['parent_id'])

    op.create_table('practice_sessions',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('kid_id', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(), nullable=False),
        sa.Column('level_start', sa.Integer(), nullable=False),
        sa.Column('level_current', sa.Integer(), nullable=False),
        sa.Column('level_end', sa.Integer(), nullable=True),
        sa.Column('word_ids', sa.JSON(), nullable=True),
        sa.Column('word_index', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('mini_set_index', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('mini_sets_completed', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('current_prompt', sa.JSON(), nullable=True),
        sa.Column('attempts_total', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('correct_total', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('prompt_mode', sa.String(), nullable=True, server_default='audio'),
        sa.Column('list_id', sa.Integer(), nullable=True),
        sa.Column('assessment', sa.Boolean(), nullable=True, server_default='0'),
        sa.Column('assessment_max_level', sa.Integer(), nullable=True),
        sa.Column('assessment_suggested_level', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_practice_sessions_kid_id', 'practice_sessions', ['kid_id'])

    op.create_table('spelling_attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=32), nullable=False),
        sa.Column('kid_id', sa.Integer(), nullable=False),
        sa.Column('word_id', sa.Integer(), nullable=False),
        sa.Column('mini_set_index', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('word_presented', sa.String(), nullable=False),
        sa.Column('user_spelling', sa.String(), nullable=False),
        sa.Column('correct', sa.Boolean(), nullable=False),
        sa.Column('rating_before', sa.Float(), nullable=False),
        sa.Column('rating_after', sa.Float(), nullable=False),
        sa.Column('response_ms', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('replay_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('edit_count', sa.Integer(), nullable=True),
        sa.Column('input_mode', sa.String(), nullable=False),
        sa.Column('prompt_mode', sa.String(), nullable=True, server_default='audio'),
        sa.Column('prompt_id', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('prompt_id')
    )
    op.create_index('ix_spelling_attempts_session_id', 'spelling_attempts', ['session_id'])
    op.create_index('ix_spelling_attempts_kid_id', 'spelling_attempts', ['kid_id'])

    op.create_table('mini_set_summaries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=32), nullable=False),
        sa.Column('index', sa.Integer(), nullable=False),
        sa.Column('level_effective', sa.Integer(), nullable=False),
        sa.Column('correct_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('words_json', sa.JSON(), nullable=True),
        sa.Column('lesson_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'index')
    )
    op.create_index('ix_mini_set_summaries_session_id', 'mini_set_summaries', ['session_id'])

    op.create_table('session_locks',
        sa.Column('session_id', sa.String(length=32), nullable=False),
        sa.Column('lock_token', sa.String(length=32), nullable=False),
        sa.Column('locked_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('session_id')
    )

    op.create_table('spelling_mastery',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kid_id', sa.Integer(), nullable=False),
        sa.Column('word_id', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kid_id', 'word_id')
    )
    op.create_index('ix_spelling_mastery_kid_id', 'spelling_mastery', ['kid_id'])

    op.create_table('custom_lists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('parent_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_custom_lists_parent_id', 'custom_lists', ['parent_id'])

    op.create_table('custom_list_words',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('list_id', sa.Integer(), nullable=False),
        sa.Column('word_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=True, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('list_id', 'word_id')
    )
    op.create_index('ix_custom_list_words_list_id', 'custom_list_words', ['list_id'])


def downgrade() -> None:
    """Drop all spelling practice tables."""
    op.drop_table('custom_list_words')
    op.drop_table('custom_lists')
    op.drop_table('spelling_mastery')
    op.drop_table('session_locks')
    op.drop_table('mini_set_summaries')
    op.drop_table('spelling_attempts')
    op.drop_table('practice_sessions')
    op.drop_table('kids')
    op.drop_table('spelling_words')
