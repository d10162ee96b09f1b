"""Task endpoints: CRUD, completion and natural language capture."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import current_user_id
from ..exceptions import DuplicateArtifactError, NotFoundError
from ..models.extraction import ExtractionResult
from ..models.task import (
    Task,
    TaskCaptureRequest,
    TaskCompletionResponse,
    TaskParseRequest,
    TaskStatus,
)
from ..services import task_service
from ..services.extraction import extract_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=list[Task])
def list_tasks(
    status: TaskStatus | None = None,
    user_id: str = Depends(current_user_id),
) -> list[Task]:
    """List the caller's tasks, newest first."""
    return task_service.list_tasks(user_id, status)


@router.post("/parse", response_model=ExtractionResult)
def parse_task(request: TaskParseRequest) -> ExtractionResult:
    """
    Parse natural language task input and extract components.

    Example input: "Fix login bug 30m"

    Always answers: if the model is unavailable the result is the basic
    fallback (`is_fallback: true`).
    """
    return extract_task(request.text, request.context_hints)


@router.post("/capture", response_model=Task, status_code=201)
def capture_task(
    request: TaskCaptureRequest,
    user_id: str = Depends(current_user_id),
) -> Task:
    """Parse and create a task in one step (manual entry)."""
    return task_service.capture_task(user_id, request)


@router.put("/{task_id}", response_model=Task)
def save_task(
    task_id: str,
    task: Task,
    user_id: str = Depends(current_user_id),
) -> Task:
    """Create or replace a task."""
    if task.id != task_id:
        raise HTTPException(status_code=400, detail="Task id does not match URL")
    try:
        return task_service.save_task(user_id, task)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except DuplicateArtifactError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.delete("/{task_id}")
def delete_task(task_id: str, user_id: str = Depends(current_user_id)) -> dict[str, bool]:
    """Delete a task. An ingested task is not recreated by later scans."""
    try:
        task_service.delete_task(user_id, task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"success": True}


@router.post("/{task_id}/complete", response_model=TaskCompletionResponse)
def complete_task(
    task_id: str,
    user_id: str = Depends(current_user_id),
) -> TaskCompletionResponse:
    """Complete a task, spawning the next occurrence of a recurring one."""
    try:
        return task_service.complete_task(user_id, task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/{task_id}/uncomplete", response_model=Task)
def uncomplete_task(task_id: str, user_id: str = Depends(current_user_id)) -> Task:
    """Move a task back to todo."""
    try:
        return task_service.uncomplete_task(user_id, task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
