import uuid
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class BroadcastSend(Base):
    __tablename__ = 'broadcast_sends'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    broadcast_group_id = Column(UUID(as_uuid=True), ForeignKey('broadcast_groups.id', ondelete='SET NULL'), nullable=True)
    hashtag_filter = Column(String(500), nullable=True)
    message_content = Column(Text, nullable=True)
    template_name = Column(String(200), nullable=True)
    template_language = Column(String(20), nullable=True)
    total_contacts = Column(Integer, nullable=False, default=0)
    sent_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default='Pending')  # Pending|Sending|Completed|Failed|Cancelled
    started_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)

    details = relationship(
        "BroadcastSendDetail",
        back_populates="broadcast_send",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index('idx_broadcast_sends_company_started', 'company_id', 'started_at'),
    )


class BroadcastSendDetail(Base):
    __tablename__ = 'broadcast_send_details'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    broadcast_send_id = Column(UUID(as_uuid=True), ForeignKey('broadcast_sends.id', ondelete='CASCADE'), nullable=False)
    contact_id = Column(UUID(as_uuid=True), ForeignKey('contacts.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(20), nullable=False, default='Pending')  # Pending|Sent|Failed|Cancelled
    whatsapp_message_id = Column(String(200), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(String(500), nullable=True)

    broadcast_send = relationship("BroadcastSend", back_populates="details")
    contact = relationship("Contact")

    __table_args__ = (
        Index('idx_broadcast_send_details_send_status', 'broadcast_send_id', 'status'),
    )
