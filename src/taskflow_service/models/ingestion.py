"""Models for items flowing through the ingestion pipeline."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from .draft import Draft
from .source import SourceType
from .task import Task


class InboundItem(BaseModel):
    """A normalized item handed to the pipeline by a source connector."""

    source: SourceType
    source_id: str = Field(..., min_length=1, description="Stable id from the origin system")
    raw_text: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    timestamp: int | None = Field(None, description="Origin timestamp, epoch ms")
    context_hints: str | None = None
    title_hint: str | None = Field(None, description="Used when extraction falls back")
    is_command: bool = Field(False, description="Explicit capture command from a bot")


class OutcomeKind(str, Enum):
    """What the pipeline did with an item."""

    DUPLICATE = "duplicate"
    IRRELEVANT = "irrelevant"
    TASK_CREATED = "task_created"
    DRAFT_CREATED = "draft_created"
    ERROR = "error"


class IngestionOutcome(BaseModel):
    """Result of processing a single inbound item."""

    source_id: str | None = None
    kind: OutcomeKind
    task: Task | None = None
    draft: Draft | None = None
    reason: str | None = None

    @property
    def dropped(self) -> bool:
        return self.kind in (OutcomeKind.DUPLICATE, OutcomeKind.IRRELEVANT)


class ScanResult(BaseModel):
    """Aggregate result of one batch or integration scan."""

    user_id: str | None = None
    source: SourceType | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    fetched: int = 0
    tasks_created: int = 0
    drafts_created: int = 0
    duplicates: int = 0
    irrelevant: int = 0
    errors: int = 0
    error: str | None = Field(None, description="Fetch-level failure, if any")
    outcomes: list[IngestionOutcome] = Field(default_factory=list)

    def record(self, outcome: IngestionOutcome) -> None:
        """Add an item outcome and bump its counter."""
        self.outcomes.append(outcome)
        if outcome.kind == OutcomeKind.TASK_CREATED:
            self.tasks_created += 1
        elif outcome.kind == OutcomeKind.DRAFT_CREATED:
            self.drafts_created += 1
        elif outcome.kind == OutcomeKind.DUPLICATE:
            self.duplicates += 1
        elif outcome.kind == OutcomeKind.IRRELEVANT:
            self.irrelevant += 1
        else:
            self.errors += 1
