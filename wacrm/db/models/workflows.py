import uuid
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class WorkflowDefinition(Base):
    __tablename__ = 'workflow_definitions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(UUID(as_uuid=True), ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    json = Column(JSONB, nullable=True)
    status = Column(String(20), nullable=False, default='Active')  # 'Active'|'Inactive'
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)

    executions = relationship(
        "WorkflowExecution",
        back_populates="workflow_definition",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index('idx_workflow_definitions_company', 'company_id', 'created_at'),
    )


class WorkflowExecution(Base):
    __tablename__ = 'workflow_executions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_definition_id = Column(Integer, ForeignKey('workflow_definitions.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(50), nullable=False, default='Running')  # Running|Waiting|Completed|Failed|Cancelled
    current_step = Column(Integer, nullable=True)
    input_json = Column(JSONB, nullable=True)
    output_json = Column(JSONB, nullable=True)
    started_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    is_waiting = Column(Boolean, nullable=False, default=False)
    waiting_since = Column(DateTime(timezone=True), nullable=True)
    last_user_activity = Column(DateTime(timezone=True), nullable=True)
    current_waiting_step = Column(Integer, nullable=True)
    waiting_for_user = Column(String(100), nullable=True)

    workflow_definition = relationship("WorkflowDefinition", back_populates="executions")
    steps = relationship(
        "WorkflowStepExecution",
        back_populates="execution",
        cascade="all, delete-orphan",
        order_by="WorkflowStepExecution.step_index",
    )

    __table_args__ = (
        Index('idx_workflow_executions_definition', 'workflow_definition_id'),
        Index('idx_workflow_executions_started_at', 'started_at'),
    )


class WorkflowStepExecution(Base):
    __tablename__ = 'workflow_step_executions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_execution_id = Column(Integer, ForeignKey('workflow_executions.id', ondelete='CASCADE'), nullable=False)
    step_index = Column(Integer, nullable=False)
    step_type = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default='Running')
    input_json = Column(JSONB, nullable=True)
    output_json = Column(JSONB, nullable=True)
    started_at = Column(DateTime(timezone=True), default=now_utc)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    is_waiting = Column(Boolean, nullable=False, default=False)
    waiting_for_user = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)

    execution = relationship("WorkflowExecution", back_populates="steps")

    __table_args__ = (
        Index('idx_workflow_step_executions_execution', 'workflow_execution_id', 'step_index'),
    )
