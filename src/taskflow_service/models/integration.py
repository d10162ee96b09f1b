"""Pydantic models for per-user source integrations."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .source import SourceType


class IntegrationStatus(str, Enum):
    """Health of an integration."""

    ACTIVE = "active"
    AUTH_ERROR = "auth_error"  # Skipped by pollers until credentials are updated


class Integration(BaseModel):
    """Connection between a user and one external source."""

    user_id: str
    source: SourceType
    enabled: bool = True
    scan_frequency: int = Field(60, gt=0, description="Minutes between scans")
    last_scan_at: datetime | None = Field(None, description="High-water mark")
    filter_instructions: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)
    status: IntegrationStatus = IntegrationStatus.ACTIVE
    last_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # Fernet token, never serialized
    credentials: str | None = Field(None, exclude=True, repr=False)

    def is_due(self, now: datetime | None = None) -> bool:
        """Whether enough time has passed since the last scan."""
        if self.last_scan_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now - self.last_scan_at >= timedelta(minutes=self.scan_frequency)


class IntegrationConnectRequest(BaseModel):
    """Connect a source or replace its credentials."""

    credentials: dict[str, str] = Field(..., min_length=1)
    scan_frequency: int | None = Field(None, gt=0)
    filter_instructions: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)


class IntegrationUpdateRequest(BaseModel):
    """Change integration settings without touching credentials."""

    enabled: bool | None = None
    scan_frequency: int | None = Field(None, gt=0)
    filter_instructions: str | None = None
    settings: dict[str, Any] | None = None
