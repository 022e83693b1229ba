"""
Status constants for broadcasts, e-forms, workflows and data sets.

Centralized definitions so repositories, services and reports compare
against the same stored values.
"""
from enum import Enum
from typing import FrozenSet


class BroadcastStatus(str, Enum):
    PENDING = "Pending"
    SENDING = "Sending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class DeliveryStatus(str, Enum):
    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


CANCELLABLE_BROADCAST_STATUSES: FrozenSet[str] = frozenset({BroadcastStatus.PENDING.value, BroadcastStatus.SENDING.value})

# E-form definition status flags
EFORM_ACTIVE = "A"
EFORM_INACTIVE = "I"
EFORM_STATUSES: FrozenSet[str] = frozenset({EFORM_ACTIVE, EFORM_INACTIVE})

# Workflow definition status
WORKFLOW_ACTIVE = "Active"
WORKFLOW_INACTIVE = "Inactive"


class ExecutionStatus(str, Enum):
    RUNNING = "Running"
    WAITING = "Waiting"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


OPEN_EXECUTION_STATUSES: FrozenSet[str] = frozenset({ExecutionStatus.RUNNING.value, ExecutionStatus.WAITING.value})


# Data sets
DATASET_SOURCE_TYPES: FrozenSet[str] = frozenset({"SQL", "EXCEL", "GOOGLE_DOCS"})
DATASET_STATUSES: FrozenSet[str] = frozenset({"Active", "Inactive", "Error"})
DATASET_COLUMN_TYPES: FrozenSet[str] = frozenset({"string", "int", "decimal", "datetime", "boolean"})
