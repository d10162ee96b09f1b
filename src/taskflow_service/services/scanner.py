"""Scan one integration: fetch new items and run them through the pipeline."""

import logging
from datetime import datetime, timezone
from typing import Callable

from .. import database
from ..config import settings
from ..connectors import SourceConnector, build_connector
from ..exceptions import ConnectorAuthError, ConnectorError, NotFoundError
from ..models.ingestion import ScanResult
from ..models.integration import Integration, IntegrationStatus
from ..models.source import SourceType
from .credentials import get_cipher
from .pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[Integration, dict[str, str]], SourceConnector]


def scan_integration(
    user_id: str,
    source: SourceType,
    max_items: int | None = None,
    pipeline: IngestionPipeline | None = None,
    connector_factory: ConnectorFactory | None = None,
) -> ScanResult:
    """Scan a user's source once.

    Used by the pollers, the "scan now" route and the CLI. The high-water
    mark moves to the scan start time only after the batch has run; a failed
    fetch leaves it where it was.
    """
    integration = database.get_integration(user_id, source)
    if integration is None:
        raise NotFoundError(f"No {source.value} integration for user {user_id}")

    started_at = datetime.now(timezone.utc)
    limit = max_items or settings.scan_max_items
    factory = connector_factory or build_connector

    try:
        credentials = get_cipher().decrypt(integration.credentials) if integration.credentials else {}
        with factory(integration, credentials) as connector:
            items = connector.fetch_since(integration.last_scan_at, limit)
            checkpoint = connector.checkpoint()
    except ConnectorAuthError as e:
        logger.warning(f"Auth failed for {source.value} integration of {user_id}: {e}")
        database.set_integration_status(user_id, source, IntegrationStatus.AUTH_ERROR, str(e))
        return ScanResult(user_id=user_id, source=source, started_at=started_at, error=str(e))
    except ConnectorError as e:
        logger.error(f"Fetch failed for {source.value} integration of {user_id}: {e}")
        database.set_integration_status(user_id, source, IntegrationStatus.ACTIVE, str(e))
        return ScanResult(user_id=user_id, source=source, started_at=started_at, error=str(e))

    result = (pipeline or IngestionPipeline()).run_batch(
        items,
        max_items=limit,
        filter_instructions=integration.filter_instructions,
        user_id=user_id,
        source=source,
    )
    result.started_at = started_at

    database.advance_last_scan(user_id, source, started_at)
    if checkpoint:
        database.update_integration(
            user_id, source, {"settings": {**integration.settings, **checkpoint}}
        )
    if integration.last_error or integration.status != IntegrationStatus.ACTIVE:
        database.set_integration_status(user_id, source, IntegrationStatus.ACTIVE)

    logger.info(
        f"Scanned {source.value} for {user_id}: {result.tasks_created} tasks, "
        f"{result.drafts_created} drafts from {result.fetched} items"
    )
    return result
