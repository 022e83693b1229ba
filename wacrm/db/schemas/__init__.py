"""
Domain-split Pydantic schemas with an aggregator.

Re-exports every schema so routers can use `from wacrm.db import schemas`.
"""

from .users import UserMembership, UserInfo
from .companies import (
    CompanyBase,
    CompanyCreate,
    CompanyUpdate,
    Company,
    CompanyMemberCreate,
    CompanyMemberUpdate,
    CompanyMember,
)
from .contacts import (
    BroadcastGroupSummary,
    ContactBase,
    ContactCreate,
    ContactUpdate,
    Contact,
    PaginatedContacts,
    ContactStatistics,
    ContactImportError,
    ContactImportResult,
    DuplicateContactRef,
    ContactDuplicate,
    ContactDuplicateCheck,
    BroadcastGroupBase,
    BroadcastGroupCreate,
    BroadcastGroupUpdate,
    BroadcastGroup,
    BroadcastGroupStatistics,
    HashtagBase,
    HashtagCreate,
    HashtagUpdate,
    Hashtag,
    HashtagStatistics,
)
from .broadcasts import (
    BroadcastTarget,
    BroadcastPreviewRequest,
    BroadcastPreview,
    BroadcastSendRequest,
    BroadcastSend,
    BroadcastSendStatus,
    PaginatedBroadcastSends,
)
from .api_providers import (
    ApiProviderDefinition,
    CompanyApiProviderSettingView,
    CompanyApiProviderSettingUpdate,
    ProviderTestEmailRequest,
    ProviderTestResult,
    ChatMessage,
    AiChatOptions,
    AiChatRequest,
    AiChatResponse,
)
from .eforms import (
    EFormBase,
    EFormCreate,
    EFormUpdate,
    EForm,
    PaginatedEForms,
    EFormBatchDelete,
    EFormBatchStatus,
    MetaFlowValidationResult,
)
from .workflows import (
    WorkflowDefinitionBase,
    WorkflowDefinitionCreate,
    WorkflowDefinitionUpdate,
    WorkflowDefinition,
    PaginatedWorkflowDefinitions,
    WorkflowBatchDelete,
    WorkflowBatchStatus,
    WorkflowNodeType,
    WorkflowStartRequest,
    WorkflowStepExecution,
    WorkflowStepRecord,
    WorkflowExecutionFinish,
    WorkflowExecution,
    WorkflowExecutionDetail,
    PaginatedWorkflowExecutions,
)
from .datasets import (
    DataSetColumnBase,
    DataSetColumnCreate,
    DataSetColumn,
    DataSetDataSourceBase,
    DataSetDataSourceWrite,
    DataSetDataSource,
    DataSetBase,
    DataSetCreate,
    DataSetUpdate,
    DataSet,
    PaginatedDataSets,
    DataSetRecordWrite,
    DataSetRecord,
    PaginatedDataSetRecords,
    DataSetQueryCondition,
    DataSetRecordSearch,
)
from .audits import AuditLog, AuditLogFilters

__all__ = [
    # Users / companies
    "UserMembership",
    "UserInfo",
    "CompanyBase",
    "CompanyCreate",
    "CompanyUpdate",
    "Company",
    "CompanyMemberCreate",
    "CompanyMemberUpdate",
    "CompanyMember",
    # Contacts
    "BroadcastGroupSummary",
    "ContactBase",
    "ContactCreate",
    "ContactUpdate",
    "Contact",
    "PaginatedContacts",
    "ContactStatistics",
    "ContactImportError",
    "ContactImportResult",
    "DuplicateContactRef",
    "ContactDuplicate",
    "ContactDuplicateCheck",
    "BroadcastGroupBase",
    "BroadcastGroupCreate",
    "BroadcastGroupUpdate",
    "BroadcastGroup",
    "BroadcastGroupStatistics",
    "HashtagBase",
    "HashtagCreate",
    "HashtagUpdate",
    "Hashtag",
    "HashtagStatistics",
    # Broadcasts
    "BroadcastTarget",
    "BroadcastPreviewRequest",
    "BroadcastPreview",
    "BroadcastSendRequest",
    "BroadcastSend",
    "BroadcastSendStatus",
    "PaginatedBroadcastSends",
    # Providers / AI
    "ApiProviderDefinition",
    "CompanyApiProviderSettingView",
    "CompanyApiProviderSettingUpdate",
    "ProviderTestEmailRequest",
    "ProviderTestResult",
    "ChatMessage",
    "AiChatOptions",
    "AiChatRequest",
    "AiChatResponse",
    # E-forms
    "EFormBase",
    "EFormCreate",
    "EFormUpdate",
    "EForm",
    "PaginatedEForms",
    "EFormBatchDelete",
    "EFormBatchStatus",
    "MetaFlowValidationResult",
    # Workflows
    "WorkflowDefinitionBase",
    "WorkflowDefinitionCreate",
    "WorkflowDefinitionUpdate",
    "WorkflowDefinition",
    "PaginatedWorkflowDefinitions",
    "WorkflowBatchDelete",
    "WorkflowBatchStatus",
    "WorkflowNodeType",
    "WorkflowStartRequest",
    "WorkflowStepExecution",
    "WorkflowStepRecord",
    "WorkflowExecutionFinish",
    "WorkflowExecution",
    "WorkflowExecutionDetail",
    "PaginatedWorkflowExecutions",
    # Data sets
    "DataSetColumnBase",
    "DataSetColumnCreate",
    "DataSetColumn",
    "DataSetDataSourceBase",
    "DataSetDataSourceWrite",
    "DataSetDataSource",
    "DataSetBase",
    "DataSetCreate",
    "DataSetUpdate",
    "DataSet",
    "PaginatedDataSets",
    "DataSetRecordWrite",
    "DataSetRecord",
    "PaginatedDataSetRecords",
    "DataSetQueryCondition",
    "DataSetRecordSearch",
    # Audits
    "AuditLogFilters",
    "AuditLog",
]
