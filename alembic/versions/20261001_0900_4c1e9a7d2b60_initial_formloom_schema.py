"""initial_formloom_schema

Revision ID: 4c1e9a7d2b60
Revises:
Create Date: 2026-10-01 09:00:12.418203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1e9a7d2b60'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=True),
        sa.Column('username', sa.TEXT(), nullable=True),
        sa.Column('subscription_plan', sa.TEXT(), nullable=False, server_default='free'),
        sa.Column('subscription_status', sa.TEXT(), nullable=True),
        sa.Column('ai_usage_count', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('ai_usage_cost_usd_micros', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('credits', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'organizations',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('slug', sa.TEXT(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'organization_members',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('organization_id', sa.TEXT(), nullable=False),
        sa.Column('role', sa.TEXT(), nullable=False, server_default='VIEWER'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_org_members_user_org'),
    )
    op.create_index('idx_org_members_user_id', 'organization_members', ['user_id'])

    op.create_table(
        'workspaces',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('slug', sa.TEXT(), nullable=False),
        sa.Column('organization_id', sa.TEXT(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'slug', name='uq_workspaces_org_slug'),
    )

    op.create_table(
        'forms',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('slug', sa.TEXT(), nullable=False),
        sa.Column('workspace_id', sa.TEXT(), nullable=False),
        sa.Column('schema_json', sa.JSON(), nullable=False),
        sa.Column('status', sa.TEXT(), nullable=False, server_default='DRAFT'),
        sa.Column('published_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
        sa.UniqueConstraint('workspace_id', 'slug', name='uq_forms_workspace_slug'),
    )
    op.create_index('idx_forms_workspace_updated', 'forms', ['workspace_id', 'updated_at'])

    op.create_table(
        'form_responses',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('form_id', sa.TEXT(), nullable=False),
        sa.Column('response_json', sa.JSON(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_form_responses_form_created', 'form_responses', ['form_id', 'created_at'])

    op.create_table(
        'form_analytics',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('form_id', sa.TEXT(), nullable=False),
        sa.Column('views', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('submissions', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('completion_rate', sa.FLOAT(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('form_id'),
    )

    op.create_table(
        'ai_usage_events',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('operation', sa.TEXT(), nullable=False),
        sa.Column('charged_from', sa.TEXT(), nullable=False),
        sa.Column('plan_key', sa.TEXT(), nullable=False),
        sa.Column('prompt_tokens', sa.BIGINT(), nullable=True),
        sa.Column('completion_tokens', sa.BIGINT(), nullable=True),
        sa.Column('cost_usd_micros', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ai_usage_events_user_created', 'ai_usage_events', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_ai_usage_events_user_created', table_name='ai_usage_events')
    op.drop_table('ai_usage_events')
    op.drop_table('form_analytics')
    op.drop_index('idx_form_responses_form_created', table_name='form_responses')
    op.drop_table('form_responses')
    op.drop_index('idx_forms_workspace_updated', table_name='forms')
    op.drop_table('forms')
    op.drop_table('workspaces')
    op.drop_index('idx_org_members_user_id', table_name='organization_members')
    op.drop_table('organization_members')
    op.drop_table('organizations')
    op.drop_table('users')
