"""Tests for draft review."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from taskflow_service import database
from taskflow_service.exceptions import DraftConflictError, InvalidRequestError, NotFoundError
from taskflow_service.models.draft import Draft, DraftEdits, DraftStatus
from taskflow_service.models.extraction import ExtractionResult
from taskflow_service.models.source import SourceType
from taskflow_service.models.task import EnergyLevel, Task, Workspace
from taskflow_service.services import draft_service

from .conftest import USER_ID


def _draft(source_id: str, title: str = "Follow up with client", **fields) -> Draft:
    return database.create_draft(
        Draft(
            user_id=USER_ID,
            source=SourceType.EMAIL,
            source_id=source_id,
            title=title,
            description="From: client@example.com",
            workspace=Workspace.JOB,
            energy=EnergyLevel.LOW,
            estimated_time=15,
            tags=["gmail"],
            ai_confidence=0.8,
            **fields,
        )
    )


def test_approve_draft_with_energy_edit() -> None:
    """Test that approving draft 7 "Fix bug" with high energy creates a matching task."""
    for i in range(1, 7):
        _draft(f"msg-{i}")
    draft = _draft("msg-7", title="Fix bug")
    assert draft.id == 7

    task = draft_service.approve_draft(USER_ID, 7, DraftEdits(energy=EnergyLevel.HIGH))

    assert task.title == "Fix bug"
    assert task.energy == EnergyLevel.HIGH
    assert task.workspace == Workspace.JOB
    assert task.source == SourceType.EMAIL
    assert task.source_id == "msg-7"
    assert database.get_draft(USER_ID, 7).status == DraftStatus.APPROVED
    assert database.get_draft(USER_ID, 7).reviewed_at is not None
    assert database.get_task(USER_ID, task.id) is not None
    assert database.get_ingestion_record(USER_ID, SourceType.EMAIL, "msg-7")["outcome"] == "task"


def test_second_approval_conflicts() -> None:
    """Test that a draft can only be approved once."""
    draft = _draft("msg-1")
    draft_service.approve_draft(USER_ID, draft.id)

    with pytest.raises(DraftConflictError):
        draft_service.approve_draft(USER_ID, draft.id)

    assert len(database.list_tasks(USER_ID)) == 1


def test_rejected_draft_cannot_be_approved() -> None:
    """Test that rejection is final."""
    draft = _draft("msg-1")
    draft_service.reject_draft(USER_ID, draft.id)

    with pytest.raises(DraftConflictError):
        draft_service.approve_draft(USER_ID, draft.id)
    with pytest.raises(DraftConflictError):
        draft_service.reject_draft(USER_ID, draft.id)


def test_approval_uses_refined_title() -> None:
    """Test that a model answer replaces the stored title."""
    draft = _draft("msg-1", title="re: fwd: login broken??")
    extractor = Mock(return_value=ExtractionResult(title="Fix login bug"))

    task = draft_service.approve_draft(USER_ID, draft.id, extractor=extractor)

    assert task.title == "Fix login bug"
    extractor.assert_called_once()


def test_failed_refinement_keeps_stored_title() -> None:
    """Test that refinement errors never block approval."""
    draft = _draft("msg-1", title="Send contract")
    extractor = Mock(side_effect=RuntimeError("bedrock down"))

    task = draft_service.approve_draft(USER_ID, draft.id, extractor=extractor)

    assert task.title == "Send contract"


def test_edited_title_skips_refinement() -> None:
    """Test that caller edits win over the model."""
    draft = _draft("msg-1")
    extractor = Mock()

    task = draft_service.approve_draft(
        USER_ID, draft.id, DraftEdits(title="Call Dana", tags=["calls"]), extractor=extractor
    )

    extractor.assert_not_called()
    assert task.title == "Call Dana"
    assert task.tags == ["calls"]


def test_edit_pending_draft() -> None:
    """Test that pending drafts accept edits and others do not."""
    draft = _draft("msg-1")

    edited = draft_service.edit_draft(
        USER_ID, draft.id, DraftEdits(energy=EnergyLevel.HIGH, tags=["urgent"])
    )
    assert edited.energy == EnergyLevel.HIGH
    assert edited.tags == ["urgent"]
    assert edited.title == draft.title

    with pytest.raises(InvalidRequestError):
        draft_service.edit_draft(USER_ID, draft.id, DraftEdits())

    draft_service.reject_draft(USER_ID, draft.id)
    with pytest.raises(DraftConflictError):
        draft_service.edit_draft(USER_ID, draft.id, DraftEdits(title="Too late"))


def test_drafts_are_scoped_to_user() -> None:
    """Test that another user's draft is invisible."""
    draft = _draft("msg-1")

    with pytest.raises(NotFoundError):
        draft_service.approve_draft("someone-else", draft.id)


def test_bulk_approve_reports_per_id() -> None:
    """Test that one failing id does not abort the rest."""
    first = _draft("msg-1")
    second = _draft("msg-2")
    draft_service.reject_draft(USER_ID, second.id)

    response = draft_service.bulk_approve(USER_ID, [first.id, second.id, 999])

    assert [r.id for r in response.results] == [first.id, second.id, 999]
    assert [r.success for r in response.results] == [True, False, False]
    assert response.results[0].task is not None
    assert "rejected" in response.results[1].error
    assert "not found" in response.results[2].error


def test_bulk_reject() -> None:
    """Test rejecting several drafts at once."""
    first = _draft("msg-1")
    second = _draft("msg-2")

    response = draft_service.bulk_reject(USER_ID, [first.id, second.id])

    assert all(r.success for r in response.results)
    assert database.list_drafts(USER_ID) == []
    assert len(database.list_drafts(USER_ID, DraftStatus.REJECTED)) == 2


def test_bulk_requires_ids() -> None:
    with pytest.raises(InvalidRequestError):
        draft_service.bulk_approve(USER_ID, [])


def test_list_drafts_route(client: TestClient) -> None:
    """Test that the list endpoint returns pending drafts."""
    _draft("msg-1")
    _draft("msg-2")

    response = client.get("/drafts")

    assert response.status_code == 200
    assert {d["source_id"] for d in response.json()} == {"msg-1", "msg-2"}


def test_approve_route_and_conflict(client: TestClient) -> None:
    """Test that approving twice answers 409."""
    draft = _draft("msg-1", title="Fix bug")

    response = client.post(f"/drafts/{draft.id}/approve", json={"energy": "high"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["task"]["energy"] == "high"
    assert data["task"]["title"] == "Fix bug"

    response = client.post(f"/drafts/{draft.id}/approve")
    assert response.status_code == 409


def test_draft_routes_not_found(client: TestClient) -> None:
    """Test that unknown drafts answer 404."""
    assert client.get("/drafts/999").status_code == 404
    assert client.post("/drafts/999/approve").status_code == 404
    assert client.post("/drafts/999/reject").status_code == 404
    assert client.delete("/drafts/999").status_code == 404


def test_edit_and_reject_routes(client: TestClient) -> None:
    """Test editing then rejecting a draft over HTTP."""
    draft = _draft("msg-1")

    response = client.put(f"/drafts/{draft.id}", json={"title": "Renamed"})
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"

    assert client.put(f"/drafts/{draft.id}", json={}).status_code == 400

    response = client.post(f"/drafts/{draft.id}/reject")
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"


def test_bulk_routes(client: TestClient) -> None:
    """Test bulk endpoints and their validation."""
    first = _draft("msg-1")
    second = _draft("msg-2")

    response = client.post("/drafts/bulk-approve", json={"draft_ids": [first.id, 999]})
    assert response.status_code == 200
    assert [r["success"] for r in response.json()["results"]] == [True, False]

    response = client.post("/drafts/bulk-reject", json={"draft_ids": [second.id]})
    assert response.status_code == 200
    assert response.json()["results"][0]["success"] is True

    assert client.post("/drafts/bulk-approve", json={"draft_ids": []}).status_code == 422


def test_routes_require_user_header(client: TestClient) -> None:
    """Test that calls without an identity are refused."""
    response = client.get("/drafts", headers={"X-User-Id": ""})
    assert response.status_code == 401


def test_concurrent_approval_creates_one_task() -> None:
    """Test that an approval committed mid-way through another wins alone."""
    draft = _draft("msg-1", title="Fix bug")

    def racing_extractor(text: str, context_hints: str | None = None) -> ExtractionResult:
        # Runs after the first approval has seen the draft as pending
        draft_service.approve_draft(USER_ID, draft.id, DraftEdits(title="Fix bug now"))
        return ExtractionResult(title="Fix the bug")

    with pytest.raises(DraftConflictError):
        draft_service.approve_draft(USER_ID, draft.id, extractor=racing_extractor)

    tasks = database.list_tasks(USER_ID)
    assert [t.title for t in tasks] == ["Fix bug now"]
    assert database.get_draft(USER_ID, draft.id).status == DraftStatus.APPROVED


def test_store_approval_is_compare_and_swap() -> None:
    """Test that only the first claim on a pending draft succeeds."""
    draft = _draft("msg-1")
    pending = database.get_draft(USER_ID, draft.id)
    assert pending.status == DraftStatus.PENDING

    first = Task(id="a", title="First", source=SourceType.EMAIL, source_id="msg-1")
    second = Task(id="b", title="Second", source=SourceType.EMAIL, source_id="msg-1")

    assert database.approve_draft(USER_ID, draft.id, first) is True
    assert database.approve_draft(USER_ID, draft.id, second) is False
    assert [t.id for t in database.list_tasks(USER_ID)] == ["a"]


def test_blank_title_approval_is_rejected(client: TestClient) -> None:
    """Test that a whitespace title answers 400 and leaves the draft pending."""
    draft = _draft("msg-1")

    response = client.post(f"/drafts/{draft.id}/approve", json={"title": "   "})

    assert response.status_code == 400
    assert database.get_draft(USER_ID, draft.id).status == DraftStatus.PENDING
    assert database.list_tasks(USER_ID) == []
