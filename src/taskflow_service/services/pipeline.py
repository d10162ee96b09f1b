"""Source-agnostic ingestion pipeline: dedup, filter, extract, route, persist."""

import itertools
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from .. import database
from ..config import settings
from ..exceptions import DuplicateArtifactError
from ..models.draft import Draft, DraftStatus
from ..models.extraction import ExtractionResult, RelevanceDecision
from ..models.ingestion import InboundItem, IngestionOutcome, OutcomeKind, ScanResult
from ..models.source import SOURCE_TAGS, SourceType
from ..models.task import Task, Workspace
from .extraction import extract_task
from .relevance import check_relevance
from .routing import find_meeting_link, looks_like_event

logger = logging.getLogger(__name__)

# Draft confidence for a model extraction, by origin
SOURCE_CONFIDENCE = {
    SourceType.EMAIL: 0.8,
    SourceType.CHAT: 0.75,
    SourceType.BOT: 0.7,
}

MAX_DESCRIPTION_CHARS = 2000

Extractor = Callable[[str, str | None], ExtractionResult]
RelevanceChecker = Callable[[str, str | None], RelevanceDecision]


class IngestionPipeline:
    """Turn normalized inbound items into tasks or pending drafts.

    Each (user, source, source_id) produces at most one artifact: the dedup
    check runs first, and the store's unique keys settle races between
    concurrent pollers.
    """

    def __init__(
        self,
        extractor: Extractor = extract_task,
        relevance_checker: RelevanceChecker = check_relevance,
    ) -> None:
        self.extractor = extractor
        self.relevance_checker = relevance_checker

    def process_item(
        self,
        item: InboundItem | dict[str, Any],
        filter_instructions: str | None = "",
    ) -> IngestionOutcome:
        """Process one item. Storage and validation errors propagate."""
        if not isinstance(item, InboundItem):
            item = InboundItem.model_validate(item)

        duplicate, revive_id = self._check_duplicate(item)
        if duplicate:
            logger.debug(f"Skipping duplicate {item.source.value}:{item.source_id}")
            return IngestionOutcome(source_id=item.source_id, kind=OutcomeKind.DUPLICATE)

        decision = self.relevance_checker(item.raw_text, filter_instructions)
        if not decision.is_relevant:
            logger.info(f"Filtered {item.source.value}:{item.source_id}: {decision.reason}")
            return IngestionOutcome(
                source_id=item.source_id,
                kind=OutcomeKind.IRRELEVANT,
                reason=decision.reason,
            )

        extraction = self.extractor(item.raw_text, item.context_hints)
        title = extraction.title
        if extraction.is_fallback and item.title_hint and item.title_hint.strip():
            title = item.title_hint.strip()

        tags = list(dict.fromkeys([*extraction.tags, SOURCE_TAGS[item.source]]))
        if item.source == SourceType.BOT:
            workspace = extraction.suggested_workspace or Workspace.PERSONAL
        else:
            # Integration-sourced work defaults to the job workspace
            workspace = Workspace.JOB

        is_event = looks_like_event(item.raw_text, extraction.title)
        if is_event or item.is_command:
            task = Task(
                id=str(uuid.uuid4()),
                title=title,
                description=item.raw_text[:MAX_DESCRIPTION_CHARS],
                workspace=workspace,
                energy=extraction.energy,
                estimated_time=extraction.estimated_minutes,
                tags=[*tags, "meeting"] if is_event else tags,
                due_date=item.timestamp if is_event else None,
                meeting_link=find_meeting_link(item.raw_text) if is_event else None,
                source=item.source,
                source_id=item.source_id,
            )
            try:
                database.create_task(item.user_id, task)
            except DuplicateArtifactError:
                logger.debug(f"Lost race for {item.source.value}:{item.source_id}")
                return IngestionOutcome(source_id=item.source_id, kind=OutcomeKind.DUPLICATE)
            logger.info(f"Created task '{task.title}' from {item.source.value}:{item.source_id}")
            return IngestionOutcome(
                source_id=item.source_id, kind=OutcomeKind.TASK_CREATED, task=task
            )

        draft = Draft(
            user_id=item.user_id,
            source=item.source,
            source_id=item.source_id,
            title=title,
            description=item.raw_text[:MAX_DESCRIPTION_CHARS],
            workspace=workspace,
            energy=extraction.energy,
            estimated_time=extraction.estimated_minutes,
            tags=tags,
            ai_confidence=0.0 if extraction.is_fallback else SOURCE_CONFIDENCE[item.source],
        )
        try:
            if revive_id is not None:
                saved = database.revive_draft(revive_id, draft)
                if saved is None:
                    return IngestionOutcome(source_id=item.source_id, kind=OutcomeKind.DUPLICATE)
            else:
                saved = database.create_draft(draft)
        except DuplicateArtifactError:
            logger.debug(f"Lost race for {item.source.value}:{item.source_id}")
            return IngestionOutcome(source_id=item.source_id, kind=OutcomeKind.DUPLICATE)

        logger.info(f"Created draft {saved.id} '{saved.title}' from {item.source.value}:{item.source_id}")
        return IngestionOutcome(
            source_id=item.source_id, kind=OutcomeKind.DRAFT_CREATED, draft=saved
        )

    def _check_duplicate(self, item: InboundItem) -> tuple[bool, int | None]:
        """Return (is_duplicate, id of a rejected draft that may resurface)."""
        record = database.get_ingestion_record(item.user_id, item.source, item.source_id)
        draft = database.get_draft_by_source(item.user_id, item.source, item.source_id)
        if record is None and draft is None:
            if database.task_exists_for_source(item.user_id, item.source, item.source_id):
                return True, None
            return False, None

        days = settings.rejected_resurface_days
        if days is not None and draft is not None and draft.status == DraftStatus.REJECTED:
            reviewed_at = draft.reviewed_at or draft.created_at
            if datetime.now(timezone.utc) - reviewed_at >= timedelta(days=days):
                return False, draft.id
        return True, None

    def run_batch(
        self,
        items: Iterable[InboundItem | dict[str, Any]],
        max_items: int | None = None,
        filter_instructions: str | None = "",
        user_id: str | None = None,
        source: SourceType | None = None,
    ) -> ScanResult:
        """Process up to max_items items; one failing item never stops the rest."""
        result = ScanResult(user_id=user_id, source=source)
        limit = settings.scan_max_items if max_items is None else max(0, max_items)

        for item in itertools.islice(items, limit):
            result.fetched += 1
            try:
                outcome = self.process_item(item, filter_instructions)
            except Exception as e:
                source_id = _source_id_of(item)
                logger.error(f"Failed to ingest item {source_id}: {e}")
                outcome = IngestionOutcome(
                    source_id=source_id, kind=OutcomeKind.ERROR, reason=str(e)
                )
            result.record(outcome)

        logger.info(
            f"Batch done: {result.fetched} fetched, {result.tasks_created} tasks, "
            f"{result.drafts_created} drafts, {result.duplicates} duplicates, "
            f"{result.irrelevant} irrelevant, {result.errors} errors"
        )
        return result


def _source_id_of(item: Any) -> str | None:
    if isinstance(item, dict):
        value = item.get("source_id")
    else:
        value = getattr(item, "source_id", None)
    return str(value) if value is not None else None
