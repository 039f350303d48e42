"""Automation schema

Revision ID: 001
Revises:
Create Date: 2024-12-02 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create automations table
    op.create_table(
        'automations',
        sa.Column('id', mysql.CHAR(36), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('user_id', mysql.CHAR(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('trigger_type', sa.Enum('schedule', 'manual', name='trigger_type'), nullable=False),
        sa.Column('trigger_config', sa.JSON(), nullable=False),
        sa.Column('last_run_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('next_run_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_automations_user', 'automations', ['user_id'])
    # Due-automation sweep: is_active = true AND next_run_at <= now
    op.create_index('idx_automations_due', 'automations', ['is_active', 'next_run_at'])

    # Create automation_actions table
    op.create_table(
        'automation_actions',
        sa.Column('id', mysql.CHAR(36), nullable=False),
        sa.Column('automation_id', mysql.CHAR(36), nullable=False),
        sa.Column('action_type', sa.Enum('email', 'notification', name='action_type'), nullable=False),
        sa.Column('action_config', sa.JSON(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['automation_id'], ['automations.id'], ondelete='CASCADE')
    )
    op.create_index('idx_automation_actions_order', 'automation_actions', ['automation_id', 'sort_order'])

    # Create automation_runs table
    op.create_table(
        'automation_runs',
        sa.Column('id', mysql.CHAR(36), nullable=False),
        sa.Column('automation_id', mysql.CHAR(36), nullable=False),
        sa.Column('status', sa.Enum('running', 'success', 'failed', name='run_status'), nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['automation_id'], ['automations.id'], ondelete='CASCADE')
    )
    op.create_index('idx_automation_runs_automation', 'automation_runs', ['automation_id'])
    op.create_index('idx_automation_runs_status', 'automation_runs', ['status', 'started_at'])

    # Create notifications table
    op.create_table(
        'notifications',
        sa.Column('id', mysql.CHAR(36), nullable=False),
        sa.Column('user_id', mysql.CHAR(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('link', sa.String(2048), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('automation_run_id', mysql.CHAR(36), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['automation_run_id'], ['automation_runs.id'], ondelete='SET NULL')
    )
    op.create_index('idx_notifications_user', 'notifications', ['user_id', 'is_read'])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key constraints)
    op.drop_table('notifications')
    op.drop_table('automation_runs')
    op.drop_table('automation_actions')
    op.drop_table('automations')
