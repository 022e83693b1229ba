import uuid
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, Index, LargeBinary, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class DataSet(Base):
    __tablename__ = 'data_sets'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)
    data_source_type = Column(String(50), nullable=False)  # SQL | EXCEL | GOOGLE_DOCS
    status = Column(String(50), nullable=False, default='Active')  # Active | Inactive | Error
    is_scheduled = Column(Boolean, nullable=False, default=False)
    update_interval_minutes = Column(Integer, nullable=True)
    total_records = Column(Integer, nullable=False, default=0)
    last_data_sync_time = Column(DateTime(timezone=True), nullable=True)
    sync_status = Column(String(20), nullable=False, default='Idle')
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)

    columns = relationship(
        "DataSetColumn",
        back_populates="data_set",
        cascade="all, delete-orphan",
        order_by="DataSetColumn.sort_order",
    )
    data_source = relationship(
        "DataSetDataSource",
        back_populates="data_set",
        cascade="all, delete-orphan",
        uselist=False,
    )
    records = relationship("DataSetRecord", back_populates="data_set", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_data_sets_company', 'company_id', 'created_at'),
    )


class DataSetColumn(Base):
    __tablename__ = 'data_set_columns'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    data_set_id = Column(UUID(as_uuid=True), ForeignKey('data_sets.id', ondelete='CASCADE'), nullable=False)
    column_name = Column(String(100), nullable=False)
    display_name = Column(String(100), nullable=True)
    data_type = Column(String(50), nullable=False)  # string | int | decimal | datetime | boolean
    max_length = Column(Integer, nullable=True)
    is_required = Column(Boolean, nullable=False, default=False)
    is_primary_key = Column(Boolean, nullable=False, default=False)
    is_searchable = Column(Boolean, nullable=False, default=False)
    is_sortable = Column(Boolean, nullable=False, default=False)
    is_indexed = Column(Boolean, nullable=False, default=False)
    default_value = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    data_set = relationship("DataSet", back_populates="columns")

    __table_args__ = (
        Index('idx_data_set_columns_data_set', 'data_set_id', 'sort_order'),
    )


class DataSetDataSource(Base):
    __tablename__ = 'data_set_data_sources'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    data_set_id = Column(UUID(as_uuid=True), ForeignKey('data_sets.id', ondelete='CASCADE'), nullable=False, unique=True)
    source_type = Column(String(50), nullable=False)
    # nonce || AES-GCM ciphertext, see wacrm.services.api_key_protector
    database_connection_encrypted = Column(LargeBinary, nullable=True)
    sql_query = Column(Text, nullable=True)
    sql_parameters = Column(String(2000), nullable=True)
    excel_file_path = Column(String(1000), nullable=True)
    excel_sheet_name = Column(String(100), nullable=True)
    google_docs_url = Column(String(1000), nullable=True)
    google_docs_sheet_name = Column(String(100), nullable=True)
    authentication_config_encrypted = Column(LargeBinary, nullable=True)
    last_update_time = Column(DateTime(timezone=True), nullable=True)

    data_set = relationship("DataSet", back_populates="data_source")

    @property
    def has_database_connection(self) -> bool:
        return bool(self.database_connection_encrypted)

    @property
    def has_authentication_config(self) -> bool:
        return bool(self.authentication_config_encrypted)


class DataSetRecord(Base):
    __tablename__ = 'data_set_records'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    data_set_id = Column(UUID(as_uuid=True), ForeignKey('data_sets.id', ondelete='CASCADE'), nullable=False)
    # String form of the primary key column's value, e.g. an invoice number
    primary_key_value = Column(String(255), nullable=True)
    status = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    data_set = relationship("DataSet", back_populates="records")
    values = relationship("DataSetRecordValue", back_populates="record", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_data_set_records_data_set', 'data_set_id', 'created_at'),
        Index('idx_data_set_records_primary_key', 'data_set_id', 'primary_key_value'),
    )


class DataSetRecordValue(Base):
    __tablename__ = 'data_set_record_values'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    record_id = Column(UUID(as_uuid=True), ForeignKey('data_set_records.id', ondelete='CASCADE'), nullable=False)
    column_name = Column(String(100), nullable=False)
    # Exactly one typed slot is filled, chosen by the column's data_type
    string_value = Column(String(500), nullable=True)
    text_value = Column(Text, nullable=True)
    numeric_value = Column(Numeric(18, 4), nullable=True)
    date_value = Column(DateTime(timezone=True), nullable=True)
    boolean_value = Column(Boolean, nullable=True)

    record = relationship("DataSetRecord", back_populates="values")

    __table_args__ = (
        Index('idx_data_set_record_values_record_column', 'record_id', 'column_name'),
    )
