"""
Data sets: column definitions, data source settings and typed records.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'data_sets_20261018'
down_revision = 'initial_20261018'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'data_sets',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('data_source_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='Active'),
        sa.Column('is_scheduled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('update_interval_minutes', sa.Integer(), nullable=True),
        sa.Column('total_records', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_data_sync_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sync_status', sa.String(20), nullable=False, server_default='Idle'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('updated_by', sa.String(100), nullable=True),
    )
    op.create_index('idx_data_sets_company', 'data_sets', ['company_id', 'created_at'])

    op.create_table(
        'data_set_columns',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('data_set_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('data_sets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('column_name', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('data_type', sa.String(50), nullable=False),
        sa.Column('max_length', sa.Integer(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_primary_key', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_searchable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_sortable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_indexed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('default_value', sa.String(500), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('idx_data_set_columns_data_set', 'data_set_columns', ['data_set_id', 'sort_order'])

    op.create_table(
        'data_set_data_sources',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('data_set_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('data_sets.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('source_type', sa.String(50), nullable=False),
        sa.Column('database_connection_encrypted', sa.LargeBinary(), nullable=True),
        sa.Column('sql_query', sa.Text(), nullable=True),
        sa.Column('sql_parameters', sa.String(2000), nullable=True),
        sa.Column('excel_file_path', sa.String(1000), nullable=True),
        sa.Column('excel_sheet_name', sa.String(100), nullable=True),
        sa.Column('google_docs_url', sa.String(1000), nullable=True),
        sa.Column('google_docs_sheet_name', sa.String(100), nullable=True),
        sa.Column('authentication_config_encrypted', sa.LargeBinary(), nullable=True),
        sa.Column('last_update_time', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'data_set_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('data_set_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('data_sets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('primary_key_value', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_data_set_records_data_set', 'data_set_records', ['data_set_id', 'created_at'])
    op.create_index('idx_data_set_records_primary_key', 'data_set_records', ['data_set_id', 'primary_key_value'])

    op.create_table(
        'data_set_record_values',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('record_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('data_set_records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('column_name', sa.String(100), nullable=False),
        sa.Column('string_value', sa.String(500), nullable=True),
        sa.Column('text_value', sa.Text(), nullable=True),
        sa.Column('numeric_value', sa.Numeric(18, 4), nullable=True),
        sa.Column('date_value', sa.DateTime(timezone=True), nullable=True),
        sa.Column('boolean_value', sa.Boolean(), nullable=True),
    )
    op.create_index('idx_data_set_record_values_record_column', 'data_set_record_values', ['record_id', 'column_name'])


def downgrade() -> None:
    for table in (
        'data_set_record_values',
        'data_set_records',
        'data_set_data_sources',
        'data_set_columns',
        'data_sets',
    ):
        op.drop_table(table)
