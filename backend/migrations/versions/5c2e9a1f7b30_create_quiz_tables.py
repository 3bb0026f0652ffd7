"""create user, question, quiz_session, response and leaderboard_entry tables

Revision ID: 5c2e9a1f7b30
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a1f7b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('email', sa.String(length=120), nullable=True),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('role', sa.String(length=16), nullable=False, server_default='student'),
            sa.Column('created_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)
        op.create_index('ix_user_email', 'user', ['email'], unique=True)

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('text', sa.Text(), nullable=False),
            sa.Column('options', sa.Text(), nullable=False),
            sa.Column('correct_answer', sa.Integer(), nullable=False),
            sa.Column('time_limit', sa.Integer(), nullable=False, server_default='60'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('created_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_question_is_active', 'question', ['is_active'])

    if 'quiz_session' not in existing_tables:
        op.create_table(
            'quiz_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('started_at', sa.Float(), nullable=False),
            sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('current_question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=True),
        )

    if 'response' not in existing_tables:
        op.create_table(
            'response',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('quiz_session.id'), nullable=False),
            sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=False),
            sa.Column('selected_answer', sa.Integer(), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=False),
            sa.Column('response_time_ms', sa.Integer(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.UniqueConstraint('user_id', 'question_id', name='uq_response_user_question'),
        )
        op.create_index('ix_response_user_id', 'response', ['user_id'])
        op.create_index('ix_response_session_id', 'response', ['session_id'])

    if 'leaderboard_entry' not in existing_tables:
        op.create_table(
            'leaderboard_entry',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('quiz_session.id'), nullable=False),
            sa.Column('total_score', sa.Integer(), nullable=False),
            sa.Column('correct_answers', sa.Integer(), nullable=False),
            sa.Column('total_questions', sa.Integer(), nullable=False),
            sa.Column('average_response_time_ms', sa.Float(), nullable=False),
            sa.UniqueConstraint('user_id', 'session_id', name='uq_leaderboard_user_session'),
        )
        op.create_index('ix_leaderboard_entry_session_id', 'leaderboard_entry', ['session_id'])


def downgrade():
    op.drop_table('leaderboard_entry')
    op.drop_table('response')
    op.drop_table('quiz_session')
    op.drop_table('question')
    op.drop_table('user')
