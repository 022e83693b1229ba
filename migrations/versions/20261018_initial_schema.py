"""
Initial schema: users and companies, contact list, broadcasts, API
providers, e-forms, workflows and audit logs.

Seeds the built-in API provider definitions.
"""
import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from wacrm.db.repositories.api_providers import DEFAULT_PROVIDER_DEFINITIONS


# revision identifiers, used by Alembic.
revision = 'initial_20261018'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, updated_default: bool = True):
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.func.now() if updated_default else None,
            nullable=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('is_superadmin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('auth_provider', sa.String(), nullable=True),
        sa.Column('last_seen_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'companies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('website', sa.String(255), nullable=True),
        sa.Column('logo_url', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('wa_phone_number_id', sa.String(100), nullable=True),
        sa.Column('wa_business_account_id', sa.String(100), nullable=True),
        sa.Column('wa_api_key_encrypted', sa.LargeBinary(), nullable=True),
        sa.Column('wa_verify_token', sa.String(255), nullable=True),
        sa.Column('wa_welcome_message', sa.Text(), nullable=True),
        sa.Column('wa_no_function_message', sa.Text(), nullable=True),
        sa.Column('wa_menu_title', sa.String(100), nullable=True),
        sa.Column('wa_menu_footer', sa.String(100), nullable=True),
        sa.Column('wa_menu_button', sa.String(50), nullable=True),
        sa.Column('wa_section_title', sa.String(100), nullable=True),
        sa.Column('wa_default_option_description', sa.String(200), nullable=True),
        sa.Column('wa_input_error_message', sa.Text(), nullable=True),
        sa.Column('wa_fallback_message', sa.Text(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'company_memberships',
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('can_read', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_write', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("role in ('owner','admin','editor','viewer')", name='ck_company_memberships_role'),
    )
    op.create_index('idx_company_memberships_user_id', 'company_memberships', ['user_id'])

    op.create_table(
        'broadcast_groups',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated_default=False),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('updated_by', sa.String(100), nullable=True),
    )
    op.create_index('idx_broadcast_groups_company_active', 'broadcast_groups', ['company_id', 'is_active'])

    op.create_table(
        'contacts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('title', sa.String(100), nullable=True),
        sa.Column('occupation', sa.String(100), nullable=True),
        sa.Column('whatsapp_number', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('company_name', sa.String(200), nullable=True),
        sa.Column('department', sa.String(100), nullable=True),
        sa.Column('position', sa.String(100), nullable=True),
        sa.Column('hashtags', sa.String(500), nullable=True),
        sa.Column('broadcast_group_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('broadcast_groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated_default=False),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('updated_by', sa.String(100), nullable=True),
    )
    op.create_index('idx_contacts_company_active', 'contacts', ['company_id', 'is_active'])
    op.create_index('idx_contacts_broadcast_group_id', 'contacts', ['broadcast_group_id'])
    op.create_index('idx_contacts_name', 'contacts', ['name'])

    op.create_table(
        'contact_hashtags',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('description', sa.String(300), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('created_by', sa.String(100), nullable=True),
    )
    op.create_index('idx_contact_hashtags_company_active', 'contact_hashtags', ['company_id', 'is_active'])

    op.create_table(
        'broadcast_sends',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('broadcast_group_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('broadcast_groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('hashtag_filter', sa.String(500), nullable=True),
        sa.Column('message_content', sa.Text(), nullable=True),
        sa.Column('template_name', sa.String(200), nullable=True),
        sa.Column('template_language', sa.String(20), nullable=True),
        sa.Column('total_contacts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sent_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
    )
    op.create_index('idx_broadcast_sends_company_started', 'broadcast_sends', ['company_id', 'started_at'])

    op.create_table(
        'broadcast_send_details',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('broadcast_send_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('broadcast_sends.id', ondelete='CASCADE'), nullable=False),
        sa.Column('contact_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('whatsapp_message_id', sa.String(200), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.String(500), nullable=True),
    )
    op.create_index('idx_broadcast_send_details_send_status', 'broadcast_send_details', ['broadcast_send_id', 'status'])

    definitions = op.create_table(
        'api_provider_definitions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('provider_key', sa.String(100), nullable=False, unique=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(200), nullable=False),
        sa.Column('icon_name', sa.String(100), nullable=True),
        sa.Column('default_api_url', sa.String(500), nullable=True),
        sa.Column('default_model', sa.String(200), nullable=True),
        sa.Column('supported_models', postgresql.JSONB(), nullable=True),
        sa.Column('auth_type', sa.String(50), nullable=False, server_default='apiKey'),
        sa.Column('default_settings_json', sa.Text(), nullable=True),
        sa.Column('enable_streaming', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('temperature_min', sa.Float(), nullable=True),
        sa.Column('temperature_max', sa.Float(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'company_api_provider_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider_key', sa.String(100), sa.ForeignKey('api_provider_definitions.provider_key'), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('api_url_override', sa.String(500), nullable=True),
        sa.Column('api_key_encrypted', sa.LargeBinary(), nullable=True),
        sa.Column('model_override', sa.String(200), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('top_p', sa.Float(), nullable=True),
        sa.Column('enable_streaming', sa.Boolean(), nullable=True),
        sa.Column('extra_headers_json', sa.Text(), nullable=True),
        sa.Column('auth_type', sa.String(50), nullable=True),
        sa.Column('auth_config_json', sa.Text(), nullable=True),
        sa.Column('settings_json', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'provider_key', name='uq_company_provider_setting'),
    )
    op.create_index('idx_company_provider_settings_category', 'company_api_provider_settings', ['company_id', 'category'])

    op.create_table(
        'eform_definitions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('html_code', sa.Text(), nullable=True),
        sa.Column('form_json', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.String(1), nullable=False, server_default='A'),
        sa.Column('rstatus', sa.String(1), nullable=False, server_default='A'),
        sa.Column('source_file_path', sa.String(500), nullable=True),
        sa.Column('field_display_settings', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.Column('created_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('updated_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
    )
    op.create_index('idx_eform_definitions_company_status', 'eform_definitions', ['company_id', 'status'])

    op.create_table(
        'workflow_definitions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('json', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        *_timestamps(),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('updated_by', sa.String(100), nullable=True),
    )
    op.create_index('idx_workflow_definitions_company', 'workflow_definitions', ['company_id', 'created_at'])

    op.create_table(
        'workflow_executions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workflow_definition_id', sa.Integer(), sa.ForeignKey('workflow_definitions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='Running'),
        sa.Column('current_step', sa.Integer(), nullable=True),
        sa.Column('input_json', postgresql.JSONB(), nullable=True),
        sa.Column('output_json', postgresql.JSONB(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('is_waiting', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('waiting_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_user_activity', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_waiting_step', sa.Integer(), nullable=True),
        sa.Column('waiting_for_user', sa.String(100), nullable=True),
    )
    op.create_index('idx_workflow_executions_definition', 'workflow_executions', ['workflow_definition_id'])
    op.create_index('idx_workflow_executions_started_at', 'workflow_executions', ['started_at'])

    op.create_table(
        'workflow_step_executions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workflow_execution_id', sa.Integer(), sa.ForeignKey('workflow_executions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('step_index', sa.Integer(), nullable=False),
        sa.Column('step_type', sa.String(100), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='Running'),
        sa.Column('input_json', postgresql.JSONB(), nullable=True),
        sa.Column('output_json', postgresql.JSONB(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_waiting', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('waiting_for_user', sa.String(100), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
    )
    op.create_index('idx_workflow_step_executions_execution', 'workflow_step_executions', ['workflow_execution_id', 'step_index'])

    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='SET NULL'), nullable=True),
        sa.Column('actor_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_company_id_created_at', 'audit_logs', ['company_id', 'created_at'])
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])

    op.bulk_insert(
        definitions,
        [{"id": uuid.uuid4(), **definition} for definition in DEFAULT_PROVIDER_DEFINITIONS],
    )


def downgrade() -> None:
    for table in (
        'audit_logs',
        'workflow_step_executions',
        'workflow_executions',
        'workflow_definitions',
        'eform_definitions',
        'company_api_provider_settings',
        'api_provider_definitions',
        'broadcast_send_details',
        'broadcast_sends',
        'contact_hashtags',
        'contacts',
        'broadcast_groups',
        'company_memberships',
        'companies',
        'users',
    ):
        op.drop_table(table)
