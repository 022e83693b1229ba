import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, CheckConstraint, Text, LargeBinary
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Company(Base):
    __tablename__ = 'companies'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    logo_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # WhatsApp Cloud API settings; the access token is encrypted like provider keys
    wa_phone_number_id = Column(String(100), nullable=True)
    wa_business_account_id = Column(String(100), nullable=True)
    wa_api_key_encrypted = Column(LargeBinary, nullable=True)
    wa_verify_token = Column(String(255), nullable=True)

    # WhatsApp menu texts
    wa_welcome_message = Column(Text, nullable=True)
    wa_no_function_message = Column(Text, nullable=True)
    wa_menu_title = Column(String(100), nullable=True)
    wa_menu_footer = Column(String(100), nullable=True)
    wa_menu_button = Column(String(50), nullable=True)
    wa_section_title = Column(String(100), nullable=True)
    wa_default_option_description = Column(String(200), nullable=True)
    wa_input_error_message = Column(Text, nullable=True)
    wa_fallback_message = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class CompanyMembership(Base):
    __tablename__ = 'company_memberships'
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), primary_key=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), primary_key=True)
    role = Column(String, nullable=False)  # 'owner'|'admin'|'editor'|'viewer'
    can_read = Column(Boolean, nullable=False, default=True)
    can_write = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('idx_company_memberships_user_id', 'user_id'),
        CheckConstraint("role in ('owner','admin','editor','viewer')", name='ck_company_memberships_role'),
    )
