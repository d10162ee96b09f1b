"""Pydantic models for request/response schemas and stored records."""

from .draft import (
    Draft,
    DraftApproveResponse,
    DraftBulkRequest,
    DraftBulkResponse,
    DraftBulkResult,
    DraftEdits,
    DraftStatus,
)
from .extraction import ExtractionResult, RelevanceDecision
from .ingestion import InboundItem, IngestionOutcome, OutcomeKind, ScanResult
from .integration import (
    Integration,
    IntegrationConnectRequest,
    IntegrationStatus,
    IntegrationUpdateRequest,
)
from .source import SOURCE_TAGS, SourceType
from .stats import UserStats
from .task import (
    EnergyLevel,
    RecurrenceFrequency,
    RecurrenceRule,
    Task,
    TaskCaptureRequest,
    TaskCompletionResponse,
    TaskParseRequest,
    TaskStatus,
    Workspace,
)

__all__ = [
    "Task",
    "TaskStatus",
    "Workspace",
    "EnergyLevel",
    "RecurrenceRule",
    "RecurrenceFrequency",
    "TaskParseRequest",
    "TaskCaptureRequest",
    "TaskCompletionResponse",
    "Draft",
    "DraftStatus",
    "DraftEdits",
    "DraftBulkRequest",
    "DraftBulkResult",
    "DraftBulkResponse",
    "DraftApproveResponse",
    "ExtractionResult",
    "RelevanceDecision",
    "InboundItem",
    "IngestionOutcome",
    "OutcomeKind",
    "ScanResult",
    "Integration",
    "IntegrationStatus",
    "IntegrationConnectRequest",
    "IntegrationUpdateRequest",
    "SourceType",
    "SOURCE_TAGS",
    "UserStats",
]
