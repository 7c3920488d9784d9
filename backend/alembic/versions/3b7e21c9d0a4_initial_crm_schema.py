"""initial_crm_schema

Revision ID: 3b7e21c9d0a4
Revises:
Create Date: 2026-10-12 09:14:03.511207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b7e21c9d0a4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _created() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _updated() -> sa.Column:
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _user_fk(name: str = 'user_id', nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('exclude_from_reporting', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('hired_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('monthly_quota', sa.Numeric(18, 2), nullable=True),
        sa.Column('manager_email', sa.String(255), nullable=True),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'deals',
        _id(),
        _user_fk('owner_id'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('stage', sa.String(50), nullable=False, server_default='PROSPECTING'),
        sa.Column('amount_total', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint('id', name='pk_deals'),
    )
    op.create_index('ix_deals_owner_id', 'deals', ['owner_id'])
    op.create_index('ix_deals_stage', 'deals', ['stage'])

    op.create_table(
        'leads',
        _id(),
        _user_fk('owner_id'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='NEW'),
        sa.Column('is_converted', sa.Boolean(), nullable=False, server_default='false'),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint('id', name='pk_leads'),
    )
    op.create_index('ix_leads_owner_id', 'leads', ['owner_id'])

    op.create_table(
        'activities',
        _id(),
        _user_fk(),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('deal_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('deals.id'), nullable=True),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leads.id'), nullable=True),
        sa.Column('description', sa.String(1000), nullable=True),
        _created(),
        sa.PrimaryKeyConstraint('id', name='pk_activities'),
    )
    op.create_index('ix_activities_user_id', 'activities', ['user_id'])
    op.create_index('ix_activities_user_id_created_at', 'activities', ['user_id', 'created_at'])

    op.create_table(
        'tasks',
        _id(),
        _user_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leads.id'), nullable=True),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint('id', name='pk_tasks'),
    )
    op.create_index('ix_tasks_user_id', 'tasks', ['user_id'])

    op.create_table(
        'marketing_tasks',
        _id(),
        _user_fk(),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PLANNED'),
        sa.Column('outcome', sa.String(20), nullable=True),
        sa.Column('task_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('lead_generated', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_template', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('template_name', sa.String(255), nullable=True),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint('id', name='pk_marketing_tasks'),
    )
    op.create_index('ix_marketing_tasks_user_id', 'marketing_tasks', ['user_id'])
    op.create_index('ix_marketing_tasks_task_date', 'marketing_tasks', ['task_date'])

    op.create_table(
        'alert_records',
        _id(),
        _user_fk(),
        sa.Column('alert_kind', sa.String(50), nullable=False),
        sa.Column('period', sa.String(32), nullable=False),
        sa.Column('severity', sa.String(10), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        _created(),
        sa.PrimaryKeyConstraint('id', name='pk_alert_records'),
        sa.UniqueConstraint('user_id', 'alert_kind', 'period', name='uq_alert_records_user_kind_period'),
    )
    op.create_index('ix_alert_records_user_id', 'alert_records', ['user_id'])

    op.create_table(
        'alert_exclusions',
        _id(),
        _user_fk(),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.String(500), nullable=False),
        _user_fk('created_by', nullable=True),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint('id', name='pk_alert_exclusions'),
        sa.CheckConstraint('end_date > start_date', name='ck_alert_exclusions_end_after_start'),
    )
    op.create_index('ix_alert_exclusions_user_id', 'alert_exclusions', ['user_id'])

    op.create_table(
        'email_logs',
        _id(),
        _user_fk(),
        sa.Column('alert_kind', sa.String(50), nullable=False),
        sa.Column('severity', sa.String(10), nullable=False),
        sa.Column('period', sa.String(32), nullable=False),
        sa.Column('recipient_to', sa.String(255), nullable=False),
        sa.Column('recipients_cc', postgresql.ARRAY(sa.String(255)), nullable=False, server_default='{}'),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('provider_message_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        _created(),
        sa.PrimaryKeyConstraint('id', name='pk_email_logs'),
    )
    op.create_index('ix_email_logs_user_id', 'email_logs', ['user_id'])


def downgrade() -> None:
    op.drop_table('email_logs')
    op.drop_table('alert_exclusions')
    op.drop_table('alert_records')
    op.drop_table('marketing_tasks')
    op.drop_table('tasks')
    op.drop_table('activities')
    op.drop_table('leads')
    op.drop_table('deals')
    op.drop_table('users')
