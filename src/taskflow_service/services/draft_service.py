"""Draft review: edit, approve, reject and bulk operations."""

import logging
import uuid
from typing import Callable

from .. import database
from ..exceptions import DraftConflictError, InvalidRequestError, NotFoundError
from ..models.draft import (
    Draft,
    DraftBulkResponse,
    DraftBulkResult,
    DraftEdits,
    DraftStatus,
)
from ..models.extraction import ExtractionResult
from ..models.task import EnergyLevel, Task, Workspace
from .extraction import extract_task

logger = logging.getLogger(__name__)


def list_drafts(user_id: str, status: DraftStatus = DraftStatus.PENDING) -> list[Draft]:
    return database.list_drafts(user_id, status)


def get_draft(user_id: str, draft_id: int) -> Draft:
    draft = database.get_draft(user_id, draft_id)
    if draft is None:
        raise NotFoundError(f"Draft {draft_id} not found")
    return draft


def _require_pending(draft: Draft) -> None:
    if draft.status != DraftStatus.PENDING:
        raise DraftConflictError(f"Draft {draft.id} is already {draft.status.value}")


def _check_title(changes: dict) -> None:
    if "title" in changes and not (changes["title"] or "").strip():
        raise InvalidRequestError("Title must not be blank")


def edit_draft(user_id: str, draft_id: int, edits: DraftEdits) -> Draft:
    """Change fields of a pending draft."""
    changes = edits.changes()
    if not changes:
        raise InvalidRequestError("No fields to update")
    _check_title(changes)

    _require_pending(get_draft(user_id, draft_id))
    if not database.update_pending_draft(user_id, draft_id, changes):
        raise DraftConflictError(f"Draft {draft_id} is no longer pending")
    return get_draft(user_id, draft_id)


def _refine_title(draft: Draft, extractor: Callable[..., ExtractionResult]) -> str | None:
    """Ask the model for a cleaner title. None keeps the stored one."""
    text = f"{draft.title}\n{draft.description or ''}".strip()
    try:
        result = extractor(text)
    except Exception as e:
        logger.warning(f"Title refinement failed for draft {draft.id}: {e}")
        return None
    return None if result.is_fallback else result.title


def approve_draft(
    user_id: str,
    draft_id: int,
    edits: DraftEdits | None = None,
    extractor: Callable[..., ExtractionResult] = extract_task,
) -> Task:
    """Turn a pending draft into a task.

    Caller edits win over the refined title, which wins over the stored
    draft fields. Raises DraftConflictError if the draft is not pending,
    including when a concurrent approval got there first.
    """
    draft = get_draft(user_id, draft_id)
    _require_pending(draft)

    changes = edits.changes() if edits else {}
    _check_title(changes)
    ai_title = None if changes.get("title") else _refine_title(draft, extractor)

    task = Task(
        id=str(uuid.uuid4()),
        title=changes.get("title") or ai_title or draft.title,
        description=changes["description"] if "description" in changes else draft.description,
        workspace=changes.get("workspace") or draft.workspace or Workspace.PERSONAL,
        energy=changes.get("energy") or draft.energy or EnergyLevel.MEDIUM,
        estimated_time=changes.get("estimated_time") or draft.estimated_time,
        tags=changes["tags"] if changes.get("tags") is not None else draft.tags,
        due_date=changes["due_date"] if "due_date" in changes else draft.due_date,
        source=draft.source,
        source_id=draft.source_id,
    )

    if not database.approve_draft(user_id, draft_id, task):
        raise DraftConflictError(f"Draft {draft_id} is no longer pending")

    logger.info(f"Approved draft {draft_id} as task {task.id}")
    return task


def reject_draft(user_id: str, draft_id: int) -> Draft:
    """Reject a pending draft. Rejected items are not re-ingested."""
    draft = get_draft(user_id, draft_id)
    _require_pending(draft)
    if not database.reject_draft(user_id, draft_id):
        raise DraftConflictError(f"Draft {draft_id} is no longer pending")
    logger.info(f"Rejected draft {draft_id}")
    return get_draft(user_id, draft_id)


def delete_draft(user_id: str, draft_id: int) -> None:
    if not database.delete_draft(user_id, draft_id):
        raise NotFoundError(f"Draft {draft_id} not found")


def bulk_approve(
    user_id: str,
    draft_ids: list[int],
    extractor: Callable[..., ExtractionResult] = extract_task,
) -> DraftBulkResponse:
    """Approve each draft independently; failures are reported per id."""
    if not draft_ids:
        raise InvalidRequestError("draft_ids must not be empty")

    response = DraftBulkResponse()
    for draft_id in draft_ids:
        try:
            task = approve_draft(user_id, draft_id, extractor=extractor)
            response.results.append(DraftBulkResult(id=draft_id, success=True, task=task))
        except Exception as e:
            logger.warning(f"Bulk approve failed for draft {draft_id}: {e}")
            response.results.append(DraftBulkResult(id=draft_id, success=False, error=str(e)))
    return response


def bulk_reject(user_id: str, draft_ids: list[int]) -> DraftBulkResponse:
    """Reject each draft independently; failures are reported per id."""
    if not draft_ids:
        raise InvalidRequestError("draft_ids must not be empty")

    response = DraftBulkResponse()
    for draft_id in draft_ids:
        try:
            reject_draft(user_id, draft_id)
            response.results.append(DraftBulkResult(id=draft_id, success=True))
        except Exception as e:
            logger.warning(f"Bulk reject failed for draft {draft_id}: {e}")
            response.results.append(DraftBulkResult(id=draft_id, success=False, error=str(e)))
    return response
