import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class BroadcastGroup(Base):
    __tablename__ = 'broadcast_groups'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)
    color = Column(String(7), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)

    contacts = relationship("Contact", back_populates="broadcast_group")

    __table_args__ = (
        Index('idx_broadcast_groups_company_active', 'company_id', 'is_active'),
    )


class Contact(Base):
    __tablename__ = 'contacts'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    title = Column(String(100), nullable=True)
    occupation = Column(String(100), nullable=True)
    whatsapp_number = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    company_name = Column(String(200), nullable=True)
    department = Column(String(100), nullable=True)
    position = Column(String(100), nullable=True)
    # Comma separated hashtag names without the leading '#'
    hashtags = Column(String(500), nullable=True)
    broadcast_group_id = Column(UUID(as_uuid=True), ForeignKey('broadcast_groups.id', ondelete='SET NULL'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)

    broadcast_group = relationship("BroadcastGroup", back_populates="contacts")

    __table_args__ = (
        Index('idx_contacts_company_active', 'company_id', 'is_active'),
        Index('idx_contacts_broadcast_group_id', 'broadcast_group_id'),
        Index('idx_contacts_name', 'name'),
    )


class ContactHashtag(Base):
    __tablename__ = 'contact_hashtags'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=True)
    description = Column(String(300), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    created_by = Column(String(100), nullable=True)

    __table_args__ = (
        Index('idx_contact_hashtags_company_active', 'company_id', 'is_active'),
    )
