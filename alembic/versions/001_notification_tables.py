"""Create notification settings, delivery ledger and planner read tables

Revision ID: 001_notification_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_notification_tables'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade():
    op.create_table(
        'notification_settings',
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('profile_name', sa.String(120), nullable=True),
        sa.Column('profile_email', sa.String(320), nullable=True),
        sa.Column('whatsapp_reminders_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('whatsapp_phone_number', sa.String(32), nullable=True),
        sa.Column('whatsapp_task_created_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('whatsapp_task_start_reminder_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('whatsapp_weekly_review_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('whatsapp_weekly_review_time', sa.String(5), nullable=True, server_default='22:00'),
        sa.Column('whatsapp_task_created_template', sa.Text(), nullable=True),
        sa.Column('whatsapp_task_start_template', sa.Text(), nullable=True),
        sa.Column('whatsapp_weekly_review_template', sa.Text(), nullable=True),
        sa.Column('week_starts_on_monday', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('timezone', sa.String(120), nullable=True),
        sa.Column('settings_snapshot', JSON_TYPE, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_index(
        'ix_notification_settings_whatsapp_enabled', 'notification_settings', ['whatsapp_reminders_enabled']
    )

    op.create_table(
        'notification_deliveries',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('channel', sa.String(20), nullable=False, server_default='whatsapp'),
        sa.Column('event_key', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('meta', JSON_TYPE, nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    # At-most-once delivery hinges on this constraint
    op.create_unique_constraint(
        'uq_notification_deliveries_channel_event_key', 'notification_deliveries', ['channel', 'event_key']
    )
    op.create_index('ix_notification_deliveries_user_id', 'notification_deliveries', ['user_id'])
    op.create_index('ix_notification_deliveries_user_status', 'notification_deliveries', ['user_id', 'status'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('status', sa.String(20), nullable=False, server_default='todo'),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('project_id', sa.String(), nullable=True),
        sa.Column('project_ids', JSON_TYPE, nullable=True),
        sa.Column('goal_id', sa.String(), nullable=True),
        sa.Column('goal_ids', JSON_TYPE, nullable=True),
        sa.Column('tags', JSON_TYPE, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tasks_user_id', 'tasks', ['user_id'])
    op.create_index('ix_tasks_user_status_due', 'tasks', ['user_id', 'status', 'due_date'])

    op.create_table(
        'projects',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_projects_user_id', 'projects', ['user_id'])

    op.create_table(
        'goals',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=True),
        sa.Column('weekly_plan', JSON_TYPE, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_goals_user_id', 'goals', ['user_id'])


def downgrade():
    op.drop_index('ix_goals_user_id', table_name='goals')
    op.drop_table('goals')
    op.drop_index('ix_projects_user_id', table_name='projects')
    op.drop_table('projects')
    op.drop_index('ix_tasks_user_status_due', table_name='tasks')
    op.drop_index('ix_tasks_user_id', table_name='tasks')
    op.drop_table('tasks')
    op.drop_index('ix_notification_deliveries_user_status', table_name='notification_deliveries')
    op.drop_index('ix_notification_deliveries_user_id', table_name='notification_deliveries')
    op.drop_constraint(
        'uq_notification_deliveries_channel_event_key', 'notification_deliveries', type_='unique'
    )
    op.drop_table('notification_deliveries')
    op.drop_index('ix_notification_settings_whatsapp_enabled', table_name='notification_settings')
    op.drop_table('notification_settings')
