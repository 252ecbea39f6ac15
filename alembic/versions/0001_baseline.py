"""baseline

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # --- push_subscriptions ---
    op.create_table(
        'push_subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('endpoint', sa.String(), nullable=False),
        sa.Column('subscription_json', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_push_subscriptions_user_id', 'push_subscriptions', ['user_id'])
    op.create_index('ix_push_subscriptions_endpoint', 'push_subscriptions', ['endpoint'])

    # --- sessions ---
    op.create_table(
        'sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('context', sa.Text(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_sessions_status', 'sessions', ['status'])
    op.create_index('ix_sessions_created_by_id', 'sessions', ['created_by_id'])

    # --- user_vessels ---
    op.create_table(
        'user_vessels',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_user_vessels_user_id', 'user_vessels', ['user_id'])
    op.create_index('ix_user_vessels_session_id', 'user_vessels', ['session_id'])
    op.create_index('ix_vessel_user_session', 'user_vessels', ['user_id', 'session_id'], unique=True)

    # --- stage_progress ---
    op.create_table(
        'stage_progress',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stage', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('gates_satisfied', sa.JSON(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_stage_progress_session_id', 'stage_progress', ['session_id'])
    op.create_index('ix_stage_progress_user_id', 'stage_progress', ['user_id'])
    op.create_index(
        'ix_stage_progress_session_user_stage',
        'stage_progress',
        ['session_id', 'user_id', 'stage'],
        unique=True,
    )

    # --- emotional_readings ---
    op.create_table(
        'emotional_readings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('vessel_id', sa.Integer(), sa.ForeignKey('user_vessels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('intensity', sa.Integer(), nullable=False),
        sa.Column('context', sa.String(500), nullable=True),
        sa.Column('stage', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_emotional_readings_vessel_id', 'emotional_readings', ['vessel_id'])
    op.create_index('ix_emotional_readings_timestamp', 'emotional_readings', ['timestamp'])

    # --- emotional_exercise_completions ---
    op.create_table(
        'emotional_exercise_completions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('intensity_before', sa.Integer(), nullable=True),
        sa.Column('intensity_after', sa.Integer(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_emotional_exercise_completions_session_id', 'emotional_exercise_completions', ['session_id'])
    op.create_index('ix_emotional_exercise_completions_user_id', 'emotional_exercise_completions', ['user_id'])

    # --- invitations ---
    op.create_table(
        'invitations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('invited_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('recipient_email', sa.String(), nullable=False),
        sa.Column('recipient_name', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('declined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.Column('last_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_invitations_session_id', 'invitations', ['session_id'])
    op.create_index('ix_invitations_invited_by_id', 'invitations', ['invited_by_id'])
    op.create_index('ix_invitations_recipient_email', 'invitations', ['recipient_email'])

    # --- empathy ---
    op.create_table(
        'empathy_drafts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('ready_to_share', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_empathy_drafts_session_id', 'empathy_drafts', ['session_id'])
    op.create_index('ix_empathy_drafts_user_id', 'empathy_drafts', ['user_id'])
    op.create_index('ix_empathy_draft_session_user', 'empathy_drafts', ['session_id', 'user_id'], unique=True)

    op.create_table(
        'empathy_attempts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('source_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('draft_id', sa.String(36), sa.ForeignKey('empathy_drafts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('shared_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_empathy_attempts_session_id', 'empathy_attempts', ['session_id'])
    op.create_index('ix_empathy_attempts_source_user_id', 'empathy_attempts', ['source_user_id'])
    op.create_index(
        'ix_empathy_attempt_session_source',
        'empathy_attempts',
        ['session_id', 'source_user_id'],
        unique=True,
    )

    op.create_table(
        'empathy_validations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('attempt_id', sa.String(36), sa.ForeignKey('empathy_attempts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('validated', sa.Boolean(), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('feedback_shared', sa.Boolean(), nullable=False),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_empathy_validations_attempt_id', 'empathy_validations', ['attempt_id'])
    op.create_index('ix_empathy_validations_user_id', 'empathy_validations', ['user_id'])

    # --- needs & strategies ---
    op.create_table(
        'identified_needs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('confirmed', sa.Boolean(), nullable=False),
        sa.Column('correction', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_identified_needs_session_id', 'identified_needs', ['session_id'])
    op.create_index('ix_identified_needs_user_id', 'identified_needs', ['user_id'])

    op.create_table(
        'strategies',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('proposed_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('needs_addressed', sa.JSON(), nullable=False),
        sa.Column('duration', sa.String(), nullable=True),
        sa.Column('measure_of_success', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_strategies_session_id', 'strategies', ['session_id'])

    op.create_table(
        'strategy_rankings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ranked_ids', sa.JSON(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_strategy_rankings_session_id', 'strategy_rankings', ['session_id'])
    op.create_index(
        'ix_strategy_ranking_session_user',
        'strategy_rankings',
        ['session_id', 'user_id'],
        unique=True,
    )


def downgrade() -> None:
    op.drop_table('strategy_rankings')
    op.drop_table('strategies')
    op.drop_table('identified_needs')
    op.drop_table('empathy_validations')
    op.drop_table('empathy_attempts')
    op.drop_table('empathy_drafts')
    op.drop_table('invitations')
    op.drop_table('emotional_exercise_completions')
    op.drop_table('emotional_readings')
    op.drop_table('stage_progress')
    op.drop_table('user_vessels')
    op.drop_table('sessions')
    op.drop_table('push_subscriptions')
    op.drop_table('users')
