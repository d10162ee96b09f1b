"""SQLite database for tasks, drafts, integrations and ingestion records."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Iterator

from .config import settings
from .exceptions import DuplicateArtifactError
from .models.draft import Draft, DraftStatus
from .models.integration import Integration, IntegrationStatus
from .models.source import SourceType
from .models.stats import UserStats
from .models.task import (
    EnergyLevel,
    RecurrenceRule,
    Task,
    TaskStatus,
    Workspace,
)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        workspace TEXT NOT NULL,
        energy TEXT NOT NULL,
        status TEXT NOT NULL,
        estimated_time INTEGER,
        tags TEXT NOT NULL DEFAULT '[]',
        dependencies TEXT NOT NULL DEFAULT '[]',
        recurrence TEXT,
        created_at INTEGER NOT NULL,
        completed_at INTEGER,
        due_date INTEGER,
        snoozed_until INTEGER,
        original_recurrence_id TEXT,
        meeting_link TEXT,
        source TEXT,
        source_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_provenance
    ON tasks(user_id, source, source_id) WHERE source_id IS NOT NULL
    """,
    """
    CREATE TABLE IF NOT EXISTS draft_tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        source TEXT NOT NULL,
        source_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        workspace TEXT,
        energy TEXT,
        estimated_time INTEGER,
        tags TEXT NOT NULL DEFAULT '[]',
        due_date INTEGER,
        ai_confidence REAL NOT NULL DEFAULT 0,
        status TEXT NOT NULL,
        created_at TEXT NOT NULL,
        reviewed_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_drafts_user_status ON draft_tasks(user_id, status)",
    # One draft row per source event, whatever its status
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_drafts_provenance
    ON draft_tasks(user_id, source, source_id)
    """,
    # Survives deletion of the artifact so deleted items are not recreated
    """
    CREATE TABLE IF NOT EXISTS ingested_items (
        user_id TEXT NOT NULL,
        source TEXT NOT NULL,
        source_id TEXT NOT NULL,
        outcome TEXT NOT NULL,
        artifact_id TEXT,
        created_at TEXT NOT NULL,
        PRIMARY KEY (user_id, source, source_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS integrations (
        user_id TEXT NOT NULL,
        source TEXT NOT NULL,
        credentials TEXT,
        enabled INTEGER NOT NULL DEFAULT 1,
        scan_frequency INTEGER NOT NULL,
        last_scan_at TEXT,
        filter_instructions TEXT NOT NULL DEFAULT '',
        settings TEXT NOT NULL DEFAULT '{}',
        status TEXT NOT NULL,
        last_error TEXT,
        created_at TEXT NOT NULL,
        PRIMARY KEY (user_id, source)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_stats (
        user_id TEXT PRIMARY KEY,
        xp INTEGER NOT NULL DEFAULT 0,
        level INTEGER NOT NULL DEFAULT 1,
        streak INTEGER NOT NULL DEFAULT 0,
        last_active_date TEXT
    )
    """,
]


# Database files whose schema has been applied in this process
_initialized: set[str] = set()


def init_db() -> None:
    """Initialize the database schema."""
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(settings.db_path), timeout=30.0)
    try:
        for statement in SCHEMA:
            conn.execute(statement)
        conn.commit()
    finally:
        conn.close()
    _initialized.add(str(settings.db_path))


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    """Get a database connection.

    Each call opens its own connection so pollers on different threads never
    share one. Uncommitted work is rolled back on close. The schema is
    created on first use of each database file.
    """
    if str(settings.db_path) not in _initialized:
        init_db()
    conn = sqlite3.connect(str(settings.db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def _utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ============ Tasks ============


_TASK_COLUMNS = (
    "id, user_id, title, description, workspace, energy, status, estimated_time, "
    "tags, dependencies, recurrence, created_at, completed_at, due_date, "
    "snoozed_until, original_recurrence_id, meeting_link, source, source_id"
)


def _task_params(user_id: str, task: Task) -> tuple:
    return (
        task.id,
        user_id,
        task.title,
        task.description,
        task.workspace.value,
        task.energy.value,
        task.status.value,
        task.estimated_time,
        json.dumps(task.tags),
        json.dumps(task.dependencies),
        task.recurrence.model_dump_json() if task.recurrence else None,
        task.created_at,
        task.completed_at,
        task.due_date,
        task.snoozed_until,
        task.original_recurrence_id,
        task.meeting_link,
        task.source.value if task.source else None,
        task.source_id,
    )


def _insert_task(conn: sqlite3.Connection, user_id: str, task: Task) -> None:
    conn.execute(
        f"INSERT INTO tasks ({_TASK_COLUMNS}) VALUES ({', '.join('?' * 19)})",
        _task_params(user_id, task),
    )


def create_task(user_id: str, task: Task) -> Task:
    """Insert a new task.

    Tasks with provenance also get an ingestion record in the same
    transaction. Raises DuplicateArtifactError if the source event already
    produced an artifact.
    """
    with get_connection() as conn:
        try:
            _insert_task(conn, user_id, task)
            if task.source and task.source_id:
                _record_ingestion(conn, user_id, task.source, task.source_id, "task", task.id)
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateArtifactError(
                f"Artifact already exists for {task.source}:{task.source_id}"
            ) from e
    return task


def save_task(user_id: str, task: Task) -> bool:
    """Create or update a task. Provenance and creation time never change."""
    with get_connection() as conn:
        try:
            result = conn.execute(
                f"""
                INSERT INTO tasks ({_TASK_COLUMNS}) VALUES ({', '.join('?' * 19)})
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    workspace = excluded.workspace,
                    energy = excluded.energy,
                    status = excluded.status,
                    estimated_time = excluded.estimated_time,
                    tags = excluded.tags,
                    dependencies = excluded.dependencies,
                    recurrence = excluded.recurrence,
                    completed_at = excluded.completed_at,
                    due_date = excluded.due_date,
                    snoozed_until = excluded.snoozed_until,
                    original_recurrence_id = excluded.original_recurrence_id,
                    meeting_link = excluded.meeting_link
                WHERE tasks.user_id = excluded.user_id
                """,
                _task_params(user_id, task),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateArtifactError(
                f"Artifact already exists for {task.source}:{task.source_id}"
            ) from e
        return result.rowcount > 0


def get_task(user_id: str, task_id: str) -> Task | None:
    """Get a task by ID."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
        ).fetchone()
        if row:
            return _row_to_task(row)
    return None


def list_tasks(user_id: str, status: TaskStatus | None = None) -> list[Task]:
    """Get a user's tasks, newest first."""
    with get_connection() as conn:
        if status:
            rows = conn.execute(
                """
                SELECT * FROM tasks WHERE user_id = ? AND status = ?
                ORDER BY created_at DESC
                """,
                (user_id, status.value),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [_row_to_task(row) for row in rows]


def delete_task(user_id: str, task_id: str) -> bool:
    """Delete a task. Its ingestion record is kept."""
    with get_connection() as conn:
        result = conn.execute(
            "DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
        )
        conn.commit()
        return result.rowcount > 0


def complete_task(
    user_id: str,
    task_id: str,
    completed_at: int,
    next_task: Task | None = None,
) -> bool:
    """Mark a task done and insert its recurrence successor atomically.

    Returns False if the task is missing or already done; nothing is written
    in that case.
    """
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE tasks SET status = ?, completed_at = ?
            WHERE id = ? AND user_id = ? AND status != ?
            """,
            (TaskStatus.DONE.value, completed_at, task_id, user_id, TaskStatus.DONE.value),
        )
        if result.rowcount == 0:
            return False
        if next_task is not None:
            _insert_task(conn, user_id, next_task)
        conn.commit()
        return True


def uncomplete_task(user_id: str, task_id: str) -> bool:
    """Move a task back to todo."""
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE tasks SET status = ?, completed_at = NULL
            WHERE id = ? AND user_id = ?
            """,
            (TaskStatus.TODO.value, task_id, user_id),
        )
        conn.commit()
        return result.rowcount > 0


def task_exists_for_source(user_id: str, source: SourceType, source_id: str) -> bool:
    """Check whether a task carries this provenance."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT 1 FROM tasks WHERE user_id = ? AND source = ? AND source_id = ?",
            (user_id, source.value, source_id),
        ).fetchone()
        return row is not None


def _row_to_task(row: sqlite3.Row) -> Task:
    """Convert a database row to a Task."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        workspace=Workspace(row["workspace"]),
        energy=EnergyLevel(row["energy"]),
        status=TaskStatus(row["status"]),
        estimated_time=row["estimated_time"],
        tags=json.loads(row["tags"]),
        dependencies=json.loads(row["dependencies"]),
        recurrence=RecurrenceRule.model_validate_json(row["recurrence"]) if row["recurrence"] else None,
        created_at=row["created_at"],
        completed_at=row["completed_at"],
        due_date=row["due_date"],
        snoozed_until=row["snoozed_until"],
        original_recurrence_id=row["original_recurrence_id"],
        meeting_link=row["meeting_link"],
        source=SourceType(row["source"]) if row["source"] else None,
        source_id=row["source_id"],
    )


# ============ Drafts ============


def create_draft(draft: Draft) -> Draft:
    """Insert a pending draft and its ingestion record.

    Raises DuplicateArtifactError if the source event already produced an
    artifact (for example when two pollers race on the same message).
    """
    with get_connection() as conn:
        try:
            cursor = conn.execute(
                """
                INSERT INTO draft_tasks
                (user_id, source, source_id, title, description, workspace, energy,
                 estimated_time, tags, due_date, ai_confidence, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    draft.user_id,
                    draft.source.value,
                    draft.source_id,
                    draft.title,
                    draft.description,
                    draft.workspace.value if draft.workspace else None,
                    draft.energy.value if draft.energy else None,
                    draft.estimated_time,
                    json.dumps(draft.tags),
                    draft.due_date,
                    draft.ai_confidence,
                    DraftStatus.PENDING.value,
                    _utc_iso(draft.created_at),
                ),
            )
            draft_id = cursor.lastrowid
            _record_ingestion(
                conn, draft.user_id, draft.source, draft.source_id, "draft", str(draft_id)
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateArtifactError(
                f"Artifact already exists for {draft.source.value}:{draft.source_id}"
            ) from e
    return draft.model_copy(update={"id": draft_id, "status": DraftStatus.PENDING})


def revive_draft(draft_id: int, draft: Draft) -> Draft | None:
    """Reset a rejected draft to pending with freshly extracted fields.

    Reuses the existing row so a source event never owns two drafts.
    Returns None if the draft is no longer rejected.
    """
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE draft_tasks
            SET title = ?, description = ?, workspace = ?, energy = ?,
                estimated_time = ?, tags = ?, due_date = ?, ai_confidence = ?,
                status = ?, created_at = ?, reviewed_at = NULL
            WHERE id = ? AND status = ?
            """,
            (
                draft.title,
                draft.description,
                draft.workspace.value if draft.workspace else None,
                draft.energy.value if draft.energy else None,
                draft.estimated_time,
                json.dumps(draft.tags),
                draft.due_date,
                draft.ai_confidence,
                DraftStatus.PENDING.value,
                _utc_iso(draft.created_at),
                draft_id,
                DraftStatus.REJECTED.value,
            ),
        )
        conn.commit()
        if result.rowcount == 0:
            return None
    return draft.model_copy(update={"id": draft_id, "status": DraftStatus.PENDING})


def get_draft(user_id: str, draft_id: int) -> Draft | None:
    """Get a draft by ID."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM draft_tasks WHERE id = ? AND user_id = ?", (draft_id, user_id)
        ).fetchone()
        if row:
            return _row_to_draft(row)
    return None


def get_draft_by_source(user_id: str, source: SourceType, source_id: str) -> Draft | None:
    """Get the draft for a source event, whatever its status."""
    with get_connection() as conn:
        row = conn.execute(
            """
            SELECT * FROM draft_tasks
            WHERE user_id = ? AND source = ? AND source_id = ?
            """,
            (user_id, source.value, source_id),
        ).fetchone()
        if row:
            return _row_to_draft(row)
    return None


def list_drafts(user_id: str, status: DraftStatus = DraftStatus.PENDING) -> list[Draft]:
    """Get a user's drafts with a given status, newest first."""
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT * FROM draft_tasks
            WHERE user_id = ? AND status = ?
            ORDER BY created_at DESC, id DESC
            """,
            (user_id, status.value),
        ).fetchall()
        return [_row_to_draft(row) for row in rows]


def update_pending_draft(user_id: str, draft_id: int, fields: dict[str, Any]) -> bool:
    """Apply edits to a draft that is still pending."""
    columns = []
    values: list[Any] = []
    for name, value in fields.items():
        if name == "tags":
            value = json.dumps(value or [])
        elif hasattr(value, "value"):
            value = value.value
        columns.append(f"{name} = ?")
        values.append(value)

    with get_connection() as conn:
        result = conn.execute(
            f"""
            UPDATE draft_tasks SET {', '.join(columns)}
            WHERE id = ? AND user_id = ? AND status = ?
            """,
            (*values, draft_id, user_id, DraftStatus.PENDING.value),
        )
        conn.commit()
        return result.rowcount > 0


def reject_draft(user_id: str, draft_id: int) -> bool:
    """Move a pending draft to rejected. False if it was not pending."""
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE draft_tasks SET status = ?, reviewed_at = ?
            WHERE id = ? AND user_id = ? AND status = ?
            """,
            (
                DraftStatus.REJECTED.value,
                _utc_iso(datetime.now(timezone.utc)),
                draft_id,
                user_id,
                DraftStatus.PENDING.value,
            ),
        )
        conn.commit()
        return result.rowcount > 0


def approve_draft(user_id: str, draft_id: int, task: Task) -> bool:
    """Claim a pending draft and create its task in one transaction.

    The status compare-and-swap makes concurrent approvals of the same draft
    produce exactly one task. Returns False if the draft was not pending.
    """
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE draft_tasks SET status = ?, reviewed_at = ?
            WHERE id = ? AND user_id = ? AND status = ?
            """,
            (
                DraftStatus.APPROVED.value,
                _utc_iso(datetime.now(timezone.utc)),
                draft_id,
                user_id,
                DraftStatus.PENDING.value,
            ),
        )
        if result.rowcount == 0:
            return False
        try:
            _insert_task(conn, user_id, task)
        except sqlite3.IntegrityError as e:
            raise DuplicateArtifactError(
                f"Task already exists for {task.source}:{task.source_id}"
            ) from e
        if task.source and task.source_id:
            conn.execute(
                """
                UPDATE ingested_items SET outcome = ?, artifact_id = ?
                WHERE user_id = ? AND source = ? AND source_id = ?
                """,
                ("task", task.id, user_id, task.source.value, task.source_id),
            )
        conn.commit()
        return True


def delete_draft(user_id: str, draft_id: int) -> bool:
    """Delete a draft. Its ingestion record is kept."""
    with get_connection() as conn:
        result = conn.execute(
            "DELETE FROM draft_tasks WHERE id = ? AND user_id = ?", (draft_id, user_id)
        )
        conn.commit()
        return result.rowcount > 0


def _row_to_draft(row: sqlite3.Row) -> Draft:
    """Convert a database row to a Draft."""
    return Draft(
        id=row["id"],
        user_id=row["user_id"],
        source=SourceType(row["source"]),
        source_id=row["source_id"],
        title=row["title"],
        description=row["description"],
        workspace=Workspace(row["workspace"]) if row["workspace"] else None,
        energy=EnergyLevel(row["energy"]) if row["energy"] else None,
        estimated_time=row["estimated_time"],
        tags=json.loads(row["tags"]),
        due_date=row["due_date"],
        ai_confidence=row["ai_confidence"],
        status=DraftStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        reviewed_at=_parse_dt(row["reviewed_at"]),
    )


# ============ Ingestion records ============


def _record_ingestion(
    conn: sqlite3.Connection,
    user_id: str,
    source: SourceType,
    source_id: str,
    outcome: str,
    artifact_id: str | None,
) -> None:
    conn.execute(
        """
        INSERT INTO ingested_items
        (user_id, source, source_id, outcome, artifact_id, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            source.value,
            source_id,
            outcome,
            artifact_id,
            _utc_iso(datetime.now(timezone.utc)),
        ),
    )


def get_ingestion_record(
    user_id: str, source: SourceType, source_id: str
) -> dict[str, Any] | None:
    """Get the ingestion record for a source event."""
    with get_connection() as conn:
        row = conn.execute(
            """
            SELECT * FROM ingested_items
            WHERE user_id = ? AND source = ? AND source_id = ?
            """,
            (user_id, source.value, source_id),
        ).fetchone()
        return dict(row) if row else None


# ============ Integrations ============


def save_integration(integration: Integration) -> Integration:
    """Create an integration or replace its credentials and settings.

    Reconnecting re-enables the integration and clears any auth error; the
    high-water mark is preserved.
    """
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO integrations
            (user_id, source, credentials, enabled, scan_frequency, last_scan_at,
             filter_instructions, settings, status, last_error, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?)
            ON CONFLICT(user_id, source) DO UPDATE SET
                credentials = excluded.credentials,
                enabled = excluded.enabled,
                scan_frequency = excluded.scan_frequency,
                filter_instructions = excluded.filter_instructions,
                settings = excluded.settings,
                status = excluded.status,
                last_error = NULL
            """,
            (
                integration.user_id,
                integration.source.value,
                integration.credentials,
                int(integration.enabled),
                integration.scan_frequency,
                _utc_iso(integration.last_scan_at) if integration.last_scan_at else None,
                integration.filter_instructions,
                json.dumps(integration.settings),
                IntegrationStatus.ACTIVE.value,
                _utc_iso(integration.created_at),
            ),
        )
        conn.commit()
    return get_integration(integration.user_id, integration.source)


def get_integration(user_id: str, source: SourceType) -> Integration | None:
    """Get a user's integration for a source."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM integrations WHERE user_id = ? AND source = ?",
            (user_id, source.value),
        ).fetchone()
        if row:
            return _row_to_integration(row)
    return None


def list_integrations(
    source: SourceType | None = None,
    user_id: str | None = None,
    enabled_only: bool = False,
) -> list[Integration]:
    """List integrations, optionally filtered."""
    clauses = []
    params: list[Any] = []
    if source:
        clauses.append("source = ?")
        params.append(source.value)
    if user_id:
        clauses.append("user_id = ?")
        params.append(user_id)
    if enabled_only:
        clauses.append("enabled = 1")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with get_connection() as conn:
        rows = conn.execute(
            f"SELECT * FROM integrations {where} ORDER BY user_id, source", params
        ).fetchall()
        return [_row_to_integration(row) for row in rows]


def update_integration(user_id: str, source: SourceType, fields: dict[str, Any]) -> bool:
    """Update integration settings (enabled, scan_frequency, filter_instructions, settings)."""
    columns = []
    values: list[Any] = []
    for name, value in fields.items():
        if name == "settings":
            value = json.dumps(value or {})
        elif name == "enabled":
            value = int(value)
        columns.append(f"{name} = ?")
        values.append(value)
    if not columns:
        return False

    with get_connection() as conn:
        result = conn.execute(
            f"UPDATE integrations SET {', '.join(columns)} WHERE user_id = ? AND source = ?",
            (*values, user_id, source.value),
        )
        conn.commit()
        return result.rowcount > 0


def set_integration_status(
    user_id: str,
    source: SourceType,
    status: IntegrationStatus,
    error: str | None = None,
) -> bool:
    """Record integration health."""
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE integrations SET status = ?, last_error = ?
            WHERE user_id = ? AND source = ?
            """,
            (status.value, error, user_id, source.value),
        )
        conn.commit()
        return result.rowcount > 0


def advance_last_scan(user_id: str, source: SourceType, scanned_at: datetime) -> bool:
    """Move the high-water mark forward. Never moves it backward."""
    value = _utc_iso(scanned_at)
    with get_connection() as conn:
        result = conn.execute(
            """
            UPDATE integrations SET last_scan_at = ?
            WHERE user_id = ? AND source = ?
            AND (last_scan_at IS NULL OR last_scan_at < ?)
            """,
            (value, user_id, source.value, value),
        )
        conn.commit()
        return result.rowcount > 0


def delete_integration(user_id: str, source: SourceType) -> bool:
    """Disconnect a source."""
    with get_connection() as conn:
        result = conn.execute(
            "DELETE FROM integrations WHERE user_id = ? AND source = ?",
            (user_id, source.value),
        )
        conn.commit()
        return result.rowcount > 0


def _row_to_integration(row: sqlite3.Row) -> Integration:
    """Convert a database row to an Integration."""
    return Integration(
        user_id=row["user_id"],
        source=SourceType(row["source"]),
        credentials=row["credentials"],
        enabled=bool(row["enabled"]),
        scan_frequency=row["scan_frequency"],
        last_scan_at=_parse_dt(row["last_scan_at"]),
        filter_instructions=row["filter_instructions"] or "",
        settings=json.loads(row["settings"]) if row["settings"] else {},
        status=IntegrationStatus(row["status"]),
        last_error=row["last_error"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# ============ Gamification ============


def get_user_stats(user_id: str) -> UserStats:
    """Get a user's stats, zeroed if they have none yet."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM user_stats WHERE user_id = ?", (user_id,)
        ).fetchone()
    if not row:
        return UserStats(user_id=user_id)
    return UserStats(
        user_id=row["user_id"],
        xp=row["xp"],
        level=row["level"],
        streak=row["streak"],
        last_active_date=date.fromisoformat(row["last_active_date"])
        if row["last_active_date"]
        else None,
    )


def save_user_stats(stats: UserStats) -> None:
    """Save a user's stats."""
    with get_connection() as conn:
        conn.execute(
            """
            INSERT OR REPLACE INTO user_stats
            (user_id, xp, level, streak, last_active_date)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                stats.user_id,
                stats.xp,
                stats.level,
                stats.streak,
                stats.last_active_date.isoformat() if stats.last_active_date else None,
            ),
        )
        conn.commit()
