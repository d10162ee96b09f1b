"""Task-related Pydantic models."""

import time
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .source import SourceType


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class Workspace(str, Enum):
    """Workspace taxonomy for tasks."""

    JOB = "job"
    FREELANCE = "freelance"
    PERSONAL = "personal"


class EnergyLevel(str, Enum):
    """Energy a task demands."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    """Task progress status."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    WAITING = "waiting"
    DONE = "done"


class RecurrenceFrequency(str, Enum):
    """Unit a recurrence interval is counted in."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RecurrenceRule(BaseModel):
    """Repeat a task every `interval` units of `frequency`."""

    frequency: RecurrenceFrequency
    interval: int = Field(1, ge=1)


class Task(BaseModel):
    """A canonical task. Timestamps are epoch milliseconds."""

    id: str = Field(..., min_length=1, description="Caller-assigned stable identifier")
    title: str = Field(..., min_length=1)
    description: str | None = None
    workspace: Workspace = Workspace.PERSONAL
    energy: EnergyLevel = EnergyLevel.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    estimated_time: int | None = Field(None, gt=0, description="Estimate in minutes")
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list, description="Ids of blocking tasks")
    recurrence: RecurrenceRule | None = None
    created_at: int = Field(default_factory=now_ms)
    completed_at: int | None = None
    due_date: int | None = None
    snoozed_until: int | None = None
    original_recurrence_id: str | None = None
    meeting_link: str | None = None
    # Provenance for ingested tasks
    source: SourceType | None = None
    source_id: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("tags", "dependencies")
    @classmethod
    def dedupe(cls, v: list[str]) -> list[str]:
        # Sets stored as ordered lists
        return list(dict.fromkeys(item for item in v if item))


class TaskParseRequest(BaseModel):
    """Request to parse natural language task input."""

    text: str = Field(
        ...,
        description="Raw text input like 'Fix login bug 30m'",
        min_length=1,
        max_length=5000,
    )
    context_hints: str | None = Field(None, description="Optional thread context")


class TaskCaptureRequest(TaskParseRequest):
    """Parse and create a task in one step (manual entry)."""

    workspace: Workspace | None = None
    due_date: int | None = None


class TaskCompletionResponse(BaseModel):
    """Result of completing a task."""

    success: bool
    task: Task
    next_task: Task | None = Field(None, description="Spawned recurrence instance")
    xp: int
    level: int
    streak: int
    leveled_up: bool = False
