"""Task store operations: capture, completion and recurrence."""

import calendar
import logging
import uuid
from datetime import datetime, timedelta, timezone

from .. import database
from ..exceptions import NotFoundError
from ..models.extraction import ExtractionResult
from ..models.task import (
    RecurrenceFrequency,
    RecurrenceRule,
    Task,
    TaskCaptureRequest,
    TaskCompletionResponse,
    TaskStatus,
    Workspace,
    now_ms,
)
from .extraction import extract_task
from .gamification import record_completion

logger = logging.getLogger(__name__)


def _add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_due_date(base_ms: int, rule: RecurrenceRule) -> int:
    """Due date of the next occurrence, in epoch ms (UTC calendar)."""
    base = datetime.fromtimestamp(base_ms / 1000, tz=timezone.utc)
    if rule.frequency == RecurrenceFrequency.DAILY:
        due = base + timedelta(days=rule.interval)
    elif rule.frequency == RecurrenceFrequency.WEEKLY:
        due = base + timedelta(weeks=rule.interval)
    else:
        due = _add_months(base, rule.interval)
    return int(due.timestamp() * 1000)


def build_next_occurrence(completed: Task, now: int) -> Task:
    """The todo instance that follows a completed recurring task."""
    return Task(
        id=str(uuid.uuid4()),
        title=completed.title,
        description=completed.description,
        workspace=completed.workspace,
        energy=completed.energy,
        status=TaskStatus.TODO,
        estimated_time=completed.estimated_time,
        tags=completed.tags,
        dependencies=[],
        recurrence=completed.recurrence,
        created_at=now,
        due_date=next_due_date(completed.due_date or now, completed.recurrence),
        original_recurrence_id=completed.original_recurrence_id or completed.id,
    )


def list_tasks(user_id: str, status: TaskStatus | None = None) -> list[Task]:
    return database.list_tasks(user_id, status)


def get_task(user_id: str, task_id: str) -> Task:
    task = database.get_task(user_id, task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


def save_task(user_id: str, task: Task) -> Task:
    """Create or update a task (full replacement, provenance kept)."""
    existing = database.get_task(user_id, task.id)
    if existing:
        task = task.model_copy(
            update={
                "created_at": existing.created_at,
                "source": existing.source,
                "source_id": existing.source_id,
            }
        )
    if not database.save_task(user_id, task):
        # Id is taken by another user's task
        raise NotFoundError(f"Task {task.id} not found")
    return task


def delete_task(user_id: str, task_id: str) -> None:
    if not database.delete_task(user_id, task_id):
        raise NotFoundError(f"Task {task_id} not found")


def capture_task(
    user_id: str,
    request: TaskCaptureRequest,
    extraction: ExtractionResult | None = None,
) -> Task:
    """Extract a task from free text and create it directly."""
    extraction = extraction or extract_task(request.text, request.context_hints)
    task = Task(
        id=str(uuid.uuid4()),
        title=extraction.title,
        workspace=request.workspace or extraction.suggested_workspace or Workspace.PERSONAL,
        energy=extraction.energy,
        estimated_time=extraction.estimated_minutes,
        tags=extraction.tags,
        due_date=request.due_date,
    )
    database.create_task(user_id, task)
    logger.info(f"Captured task '{task.title}' for {user_id}")
    return task


def complete_task(user_id: str, task_id: str) -> TaskCompletionResponse:
    """Mark a task done, spawn its next occurrence and award XP.

    Completing a task that is already done changes nothing.
    """
    task = get_task(user_id, task_id)
    stats = database.get_user_stats(user_id)
    if task.status == TaskStatus.DONE:
        return TaskCompletionResponse(
            success=False, task=task, xp=stats.xp, level=stats.level, streak=stats.streak
        )

    now = now_ms()
    next_task = build_next_occurrence(task, now) if task.recurrence else None
    if not database.complete_task(user_id, task_id, now, next_task):
        # Lost a race with another completion
        return TaskCompletionResponse(
            success=False,
            task=get_task(user_id, task_id),
            xp=stats.xp,
            level=stats.level,
            streak=stats.streak,
        )

    stats, leveled_up = record_completion(user_id)
    if next_task:
        logger.info(f"Spawned recurrence {next_task.id} from {task_id}")

    return TaskCompletionResponse(
        success=True,
        task=task.model_copy(update={"status": TaskStatus.DONE, "completed_at": now}),
        next_task=next_task,
        xp=stats.xp,
        level=stats.level,
        streak=stats.streak,
        leveled_up=leveled_up,
    )


def uncomplete_task(user_id: str, task_id: str) -> Task:
    """Move a task back to todo. XP already awarded is kept."""
    if not database.uncomplete_task(user_id, task_id):
        raise NotFoundError(f"Task {task_id} not found")
    return get_task(user_id, task_id)
