"""Draft review endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException

from ..dependencies import current_user_id
from ..exceptions import (
    DraftConflictError,
    DuplicateArtifactError,
    InvalidRequestError,
    NotFoundError,
)
from ..models.draft import (
    Draft,
    DraftApproveResponse,
    DraftBulkRequest,
    DraftBulkResponse,
    DraftEdits,
    DraftStatus,
)
from ..services import draft_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drafts", tags=["drafts"])


@router.get("", response_model=list[Draft])
def list_drafts(
    status: DraftStatus = DraftStatus.PENDING,
    user_id: str = Depends(current_user_id),
) -> list[Draft]:
    """List the caller's drafts with the given status (pending by default)."""
    return draft_service.list_drafts(user_id, status)


@router.post("/bulk-approve", response_model=DraftBulkResponse)
def bulk_approve(
    request: DraftBulkRequest,
    user_id: str = Depends(current_user_id),
) -> DraftBulkResponse:
    """Approve several drafts. Each id gets its own result."""
    return draft_service.bulk_approve(user_id, request.draft_ids)


@router.post("/bulk-reject", response_model=DraftBulkResponse)
def bulk_reject(
    request: DraftBulkRequest,
    user_id: str = Depends(current_user_id),
) -> DraftBulkResponse:
    """Reject several drafts. Each id gets its own result."""
    return draft_service.bulk_reject(user_id, request.draft_ids)


@router.get("/{draft_id}", response_model=Draft)
def get_draft(draft_id: int, user_id: str = Depends(current_user_id)) -> Draft:
    try:
        return draft_service.get_draft(user_id, draft_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.put("/{draft_id}", response_model=Draft)
def edit_draft(
    draft_id: int,
    edits: DraftEdits,
    user_id: str = Depends(current_user_id),
) -> Draft:
    """Edit a pending draft before approving it."""
    try:
        return draft_service.edit_draft(user_id, draft_id, edits)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except DraftConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/{draft_id}/approve", response_model=DraftApproveResponse)
def approve_draft(
    draft_id: int,
    edits: DraftEdits | None = Body(None),
    user_id: str = Depends(current_user_id),
) -> DraftApproveResponse:
    """
    Approve a draft, creating a task.

    Optional edits override the draft's fields. A draft that is no longer
    pending answers 409.
    """
    try:
        task = draft_service.approve_draft(user_id, draft_id, edits)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (DraftConflictError, DuplicateArtifactError) as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return DraftApproveResponse(success=True, task=task)


@router.post("/{draft_id}/reject", response_model=Draft)
def reject_draft(draft_id: int, user_id: str = Depends(current_user_id)) -> Draft:
    """Reject a draft. The source item will not be ingested again."""
    try:
        return draft_service.reject_draft(user_id, draft_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except DraftConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.delete("/{draft_id}")
def delete_draft(draft_id: int, user_id: str = Depends(current_user_id)) -> dict[str, bool]:
    try:
        draft_service.delete_draft(user_id, draft_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"success": True}
