"""Pydantic models for AI-extracted draft tasks awaiting review."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from .source import SourceType
from .task import EnergyLevel, Task, Workspace


class DraftStatus(str, Enum):
    """Review status of a draft."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Draft(BaseModel):
    """A task candidate proposed by the ingestion pipeline."""

    id: int | None = None
    user_id: str
    source: SourceType
    source_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str | None = None
    workspace: Workspace | None = None
    energy: EnergyLevel | None = None
    estimated_time: int | None = None
    tags: list[str] = Field(default_factory=list)
    due_date: int | None = None
    ai_confidence: float = Field(0.0, ge=0.0, le=1.0)
    status: DraftStatus = DraftStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reviewed_at: datetime | None = None


class DraftEdits(BaseModel):
    """Fields a reviewer may change before or while approving."""

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    workspace: Workspace | None = None
    energy: EnergyLevel | None = None
    estimated_time: int | None = Field(None, gt=0)
    tags: list[str] | None = None
    due_date: int | None = None

    def changes(self) -> dict:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


class DraftBulkRequest(BaseModel):
    """Ids to approve or reject in one call."""

    draft_ids: list[int] = Field(..., min_length=1)


class DraftBulkResult(BaseModel):
    """Per-draft outcome of a bulk operation."""

    id: int
    success: bool
    task: Task | None = None
    error: str | None = None


class DraftBulkResponse(BaseModel):
    """Results of a bulk operation, one entry per requested id."""

    results: list[DraftBulkResult] = Field(default_factory=list)


class DraftApproveResponse(BaseModel):
    """Response from approving a draft."""

    success: bool
    task: Task
