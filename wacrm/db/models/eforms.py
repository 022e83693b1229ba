import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class EFormDefinition(Base):
    __tablename__ = 'eform_definitions'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    html_code = Column(Text, nullable=True)
    # WhatsApp Flow (MetaFlow) document authored in the designer
    form_json = Column(JSONB, nullable=True)
    status = Column(String(1), nullable=False, default='A')  # 'A' active | 'I' inactive
    rstatus = Column(String(1), nullable=False, default='A')
    source_file_path = Column(String(500), nullable=True)
    field_display_settings = Column(JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
    created_user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    updated_user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)

    __table_args__ = (
        Index('idx_eform_definitions_company_status', 'company_id', 'status'),
    )
