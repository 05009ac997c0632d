"""Create toolsmith tables.

Revision ID: 20261018_001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers
revision = '20261018_001'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE = sa.text("status = 'active'")


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'packages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('display_name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('limits', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.String(100), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('ai_role', sa.String(200), nullable=True),
        sa.Column('ai_persona_description', sa.Text(), nullable=True),
        sa.Column('system_prompt', sa.Text(), nullable=False, server_default=''),
        sa.Column('header_title', sa.String(200), nullable=True),
        sa.Column('header_subtitle', sa.String(300), nullable=True),
        sa.Column('access_tier', sa.String(20), nullable=False, server_default='public'),
        sa.Column('required_package_id', sa.Uuid(),
                  sa.ForeignKey('packages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('subdomain', sa.String(50), nullable=True),
        sa.Column('deployed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_projects_owner_id', 'projects', ['owner_id'])
    op.create_index('ix_projects_subdomain', 'projects', ['subdomain'])
    op.create_index('idx_projects_owner_updated', 'projects', ['owner_id', 'updated_at'])

    op.create_table(
        'steps',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('page_title', sa.String(200), nullable=True),
        sa.Column('page_subtitle', sa.String(300), nullable=True),
        sa.Column('step_order', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_steps_project_id', 'steps', ['project_id'])

    op.create_table(
        'fields',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('step_id', sa.Uuid(), sa.ForeignKey('steps.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('label', sa.String(200), nullable=False),
        sa.Column('field_type', sa.String(20), nullable=False, server_default='text'),
        sa.Column('placeholder', sa.String(300), nullable=True),
        sa.Column('help_text', sa.Text(), nullable=True),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('field_order', sa.Integer(), nullable=False),
        sa.Column('validation', sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_fields_step_id', 'fields', ['step_id'])

    op.create_table(
        'choices',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('field_id', sa.Uuid(), sa.ForeignKey('fields.id', ondelete='CASCADE'), nullable=False),
        sa.Column('label', sa.String(200), nullable=False),
        sa.Column('value', sa.String(200), nullable=False),
        sa.Column('choice_order', sa.Integer(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_choices_field_id', 'choices', ['field_id'])

    op.create_table(
        'deployments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('slug', sa.String(50), nullable=False),
        sa.Column('bundle_location', sa.Text(), nullable=True),
        sa.Column('public_url', sa.String(300), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        *_timestamps(),
    )
    op.create_index('ix_deployments_project_id', 'deployments', ['project_id'])
    # At most one active deployment per slug and per project
    op.create_index(
        'uq_deployments_active_slug', 'deployments', ['slug'], unique=True,
        postgresql_where=ACTIVE, sqlite_where=ACTIVE,
    )
    op.create_index(
        'uq_deployments_active_project', 'deployments', ['project_id'], unique=True,
        postgresql_where=ACTIVE, sqlite_where=ACTIVE,
    )

    op.create_table(
        'tool_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_token', sa.String(64), nullable=False, unique=True),
        sa.Column('subject_id', sa.String(100), nullable=True),
        sa.Column('client_address', sa.String(64), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ai_response', sa.Text(), nullable=True),
        sa.Column('unattributed_inputs', sa.JSON(), nullable=False),
    )
    op.create_index('ix_tool_sessions_project_id', 'tool_sessions', ['project_id'])
    op.create_index('ix_tool_sessions_subject_id', 'tool_sessions', ['subject_id'])

    op.create_table(
        'responses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('tool_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('step_id', sa.Uuid(), sa.ForeignKey('steps.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_id', sa.Uuid(), sa.ForeignKey('fields.id', ondelete='CASCADE'), nullable=False),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_responses_session_id', 'responses', ['session_id'])
    op.create_index('ix_responses_step_id', 'responses', ['step_id'])
    op.create_index('ix_responses_field_id', 'responses', ['field_id'])

    op.create_table(
        'user_packages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('subject_id', sa.String(100), nullable=False),
        sa.Column('package_id', sa.Uuid(), sa.ForeignKey('packages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_user_packages_subject_id', 'user_packages', ['subject_id'])

    op.create_table(
        'usage_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('subject_id', sa.String(100), nullable=False),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('tool_sessions.id', ondelete='CASCADE'), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_usage_subject_time', 'usage_events', ['subject_id', 'occurred_at'])

    op.create_table(
        'ai_config_versions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, unique=True),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('model', sa.String(100), nullable=False),
        sa.Column('max_tokens', sa.Integer(), nullable=False),
        sa.Column('temperature', sa.Float(), nullable=False),
        sa.Column('timeout_seconds', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('ai_config_versions')
    op.drop_index('idx_usage_subject_time', table_name='usage_events')
    op.drop_table('usage_events')
    op.drop_table('user_packages')
    op.drop_table('responses')
    op.drop_table('tool_sessions')
    op.drop_index('uq_deployments_active_project', table_name='deployments')
    op.drop_index('uq_deployments_active_slug', table_name='deployments')
    op.drop_table('deployments')
    op.drop_table('choices')
    op.drop_table('fields')
    op.drop_table('steps')
    op.drop_table('projects')
    op.drop_table('packages')
