"""Shared fixtures: a throwaway database per test and a test client."""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from taskflow_service import database
from taskflow_service.config import settings
from taskflow_service.models.extraction import ExtractionResult
from taskflow_service.models.task import EnergyLevel

USER_ID = "user-1"


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Point the store at a fresh SQLite file and keep the model offline."""
    monkeypatch.setattr(settings, "db_path", tmp_path / "taskflow.db")
    monkeypatch.setattr(settings, "ai_enabled", False)
    monkeypatch.setattr(settings, "rejected_resurface_days", None)
    monkeypatch.setattr(settings, "scheduler_enabled", False)
    database.init_db()
    return settings.db_path


@pytest.fixture
def client() -> Iterator[TestClient]:
    from taskflow_service.main import app

    with TestClient(app, headers={"X-User-Id": USER_ID}) as test_client:
        yield test_client


def stub_extractor(text: str, context_hints: str | None = None) -> ExtractionResult:
    """Deterministic stand-in for the model: first line becomes the title."""
    first_line = text.strip().splitlines()[0]
    return ExtractionResult(
        title=first_line.removeprefix("Subject: ")[:80],
        energy=EnergyLevel.LOW,
        estimated_minutes=20,
        tags=["inbox"],
    )
