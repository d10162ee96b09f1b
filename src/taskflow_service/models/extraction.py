"""Structured results from the AI extraction and relevance steps."""

from pydantic import BaseModel, Field

from .task import EnergyLevel, Workspace


class ExtractionResult(BaseModel):
    """Task fields extracted from free text."""

    title: str = Field(..., description="Task title, cleaned of time estimates")
    energy: EnergyLevel = EnergyLevel.MEDIUM
    estimated_minutes: int = Field(15, gt=0)
    tags: list[str] = Field(default_factory=list, max_length=3)
    suggested_workspace: Workspace | None = None
    is_fallback: bool = Field(False, description="True when the model was not used")


class RelevanceDecision(BaseModel):
    """Whether inbound content should be processed at all."""

    is_relevant: bool
    reason: str = ""
