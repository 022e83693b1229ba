"""
Domain-split SQLAlchemy models with an aggregator.

Exposes `Base`, `now_utc`, and all ORM classes so callers can use
`from wacrm.db import models` and `models.Contact`.
"""

from .base import Base, now_utc  # re-export

# Domain models
from .users import User
from .companies import Company, CompanyMembership
from .contacts import Contact, BroadcastGroup, ContactHashtag
from .broadcasts import BroadcastSend, BroadcastSendDetail
from .api_providers import ApiProviderDefinition, CompanyApiProviderSetting
from .eforms import EFormDefinition
from .workflows import WorkflowDefinition, WorkflowExecution, WorkflowStepExecution
from .datasets import DataSet, DataSetColumn, DataSetDataSource, DataSetRecord, DataSetRecordValue
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "now_utc",
    # users/companies
    "User",
    "Company",
    "CompanyMembership",
    # contacts
    "Contact",
    "BroadcastGroup",
    "ContactHashtag",
    # broadcasts
    "BroadcastSend",
    "BroadcastSendDetail",
    # providers
    "ApiProviderDefinition",
    "CompanyApiProviderSetting",
    # eforms/workflows
    "EFormDefinition",
    "WorkflowDefinition",
    "WorkflowExecution",
    "WorkflowStepExecution",
    # data sets
    "DataSet",
    "DataSetColumn",
    "DataSetDataSource",
    "DataSetRecord",
    "DataSetRecordValue",
    # audit
    "AuditLog",
]
