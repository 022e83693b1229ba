import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Float, LargeBinary, Text, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class ApiProviderDefinition(Base):
    __tablename__ = 'api_provider_definitions'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_key = Column(String(100), nullable=False, unique=True)
    category = Column(String(50), nullable=False)  # 'ai'|'email'
    display_name = Column(String(200), nullable=False)
    icon_name = Column(String(100), nullable=True)
    default_api_url = Column(String(500), nullable=True)
    default_model = Column(String(200), nullable=True)
    supported_models = Column(JSONB, nullable=True)
    auth_type = Column(String(50), nullable=False, default='apiKey')
    default_settings_json = Column(Text, nullable=True)
    enable_streaming = Column(Boolean, nullable=False, default=False)
    temperature_min = Column(Float, nullable=True)
    temperature_max = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class CompanyApiProviderSetting(Base):
    __tablename__ = 'company_api_provider_settings'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    provider_key = Column(String(100), ForeignKey('api_provider_definitions.provider_key'), nullable=False)
    category = Column(String(50), nullable=False)
    api_url_override = Column(String(500), nullable=True)
    # nonce || AES-GCM ciphertext, see wacrm.services.api_key_protector
    api_key_encrypted = Column(LargeBinary, nullable=True)
    model_override = Column(String(200), nullable=True)
    temperature = Column(Float, nullable=True)
    top_p = Column(Float, nullable=True)
    enable_streaming = Column(Boolean, nullable=True)
    extra_headers_json = Column(Text, nullable=True)
    auth_type = Column(String(50), nullable=True)
    auth_config_json = Column(Text, nullable=True)
    settings_json = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint('company_id', 'provider_key', name='uq_company_provider_setting'),
        Index('idx_company_provider_settings_category', 'company_id', 'category'),
    )
