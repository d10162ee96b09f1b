"""Tests for AI task extraction and the relevance filter."""

from unittest.mock import patch

import pytest

from taskflow_service.config import settings
from taskflow_service.models.task import EnergyLevel, Workspace
from taskflow_service.services.extraction import extract_task
from taskflow_service.services.relevance import check_relevance
from taskflow_service.services.routing import find_meeting_link, looks_like_event


@pytest.fixture
def ai_on(monkeypatch):
    monkeypatch.setattr(settings, "ai_enabled", True)


def test_extraction_falls_back_on_client_error(ai_on) -> None:
    """Test that a model failure yields the basic fallback instead of raising."""
    with patch(
        "taskflow_service.services.extraction.invoke_claude",
        side_effect=RuntimeError("throttled"),
    ):
        result = extract_task("  Email Sarah about invoice  ")

    assert result.title == "Email Sarah about invoice"
    assert result.energy == EnergyLevel.MEDIUM
    assert result.estimated_minutes == 15
    assert result.tags == []
    assert result.is_fallback is True


def test_extraction_falls_back_on_bad_json(ai_on) -> None:
    """Test that an unparseable reply yields the fallback."""
    with patch(
        "taskflow_service.services.extraction.invoke_claude",
        return_value="Sure! Here is your task.",
    ):
        result = extract_task("Fix login bug 30m")

    assert result.is_fallback is True
    assert result.title == "Fix login bug 30m"


def test_extraction_of_empty_text_is_well_formed() -> None:
    """Test that blank input still produces a titled result."""
    result = extract_task("   ")
    assert result.title == "Untitled task"
    assert result.is_fallback is True


def test_extraction_skips_model_when_disabled() -> None:
    """Test that the model is not called when AI is disabled."""
    with patch("taskflow_service.services.extraction.invoke_claude") as mock_invoke:
        result = extract_task("Call the bank")

    mock_invoke.assert_not_called()
    assert result.is_fallback is True


def test_extraction_normalizes_model_reply(ai_on) -> None:
    """Test that fenced JSON is parsed and clamped into the result."""
    reply = """```json
{"title": "Fix login bug", "energy": "HIGH", "estimated_minutes": "30",
 "tags": ["auth", "bug", "web", "urgent"], "workspace": "Job"}
```"""
    with patch("taskflow_service.services.extraction.invoke_claude", return_value=reply):
        result = extract_task("Fix login bug 30m")

    assert result.title == "Fix login bug"
    assert result.energy == EnergyLevel.HIGH
    assert result.estimated_minutes == 30
    assert result.tags == ["auth", "bug", "web"]
    assert result.suggested_workspace == Workspace.JOB
    assert result.is_fallback is False


def test_extraction_replaces_invalid_fields(ai_on) -> None:
    """Test that unknown energy and bad estimates get defaults."""
    reply = '{"title": "", "energy": "extreme", "estimated_minutes": -5, "tags": "x", "workspace": "moon"}'
    with patch("taskflow_service.services.extraction.invoke_claude", return_value=reply):
        result = extract_task("Water plants")

    assert result.title == "Water plants"
    assert result.energy == EnergyLevel.MEDIUM
    assert result.estimated_minutes == 15
    assert result.tags == []
    assert result.suggested_workspace is None


def test_relevance_without_rules_is_always_relevant(ai_on) -> None:
    """Test that empty or too-short rules never call the model."""
    with patch("taskflow_service.services.relevance.invoke_claude") as mock_invoke:
        assert check_relevance("Weekly newsletter", "").is_relevant is True
        assert check_relevance("Weekly newsletter", None).is_relevant is True
        assert check_relevance("Weekly newsletter", "  skip  ").is_relevant is True

    mock_invoke.assert_not_called()


def test_relevance_fails_open(ai_on) -> None:
    """Test that a classification error treats content as relevant."""
    with patch(
        "taskflow_service.services.relevance.invoke_claude",
        side_effect=RuntimeError("timeout"),
    ):
        decision = check_relevance("Invoice overdue", "Only client billing emails")

    assert decision.is_relevant is True
    assert "failed" in decision.reason


def test_relevance_follows_model_decision(ai_on) -> None:
    """Test that a negative decision filters the content out."""
    with patch(
        "taskflow_service.services.relevance.invoke_claude",
        return_value='{"relevant": false, "reason": "newsletter"}',
    ):
        decision = check_relevance("50% off everything", "Ignore marketing and newsletters")

    assert decision.is_relevant is False
    assert decision.reason == "newsletter"


def test_event_routing_needs_keyword_and_video_call() -> None:
    """Test the meeting heuristic on combined texts."""
    assert looks_like_event("Sprint planning meeting", "Join https://zoom.us/j/123") is True
    assert looks_like_event("Calendar invitation: sync on Google Meet") is True
    assert looks_like_event("Meeting notes attached") is False
    assert looks_like_event("Zoom recording is ready") is False
    assert looks_like_event(None, "") is False


def test_event_keywords_match_whole_words() -> None:
    """Test that keywords inside other words do not route to a task."""
    assert looks_like_event("Prevent outages across teams") is False
    assert looks_like_event("We will eventually move to Zoom") is False
    assert looks_like_event("You're invited: weekly sync on Microsoft Teams") is True
    assert looks_like_event("Team meetings now on Webex") is True


def test_find_meeting_link() -> None:
    """Test that the first video-call URL is extracted."""
    text = "Agenda below.\nJoin: https://us02web.zoom.us/j/8123?pwd=abc. See you"
    assert find_meeting_link(text) == "https://us02web.zoom.us/j/8123?pwd=abc"
    assert find_meeting_link("https://meet.google.com/abc-defg-hij") == "https://meet.google.com/abc-defg-hij"
    assert find_meeting_link("no link here") is None
