"""Connecting, configuring and disconnecting external sources."""

import logging

from .. import database
from ..config import settings
from ..exceptions import InvalidRequestError, NotFoundError
from ..models.integration import (
    Integration,
    IntegrationConnectRequest,
    IntegrationUpdateRequest,
)
from ..models.source import SourceType
from .credentials import get_cipher

logger = logging.getLogger(__name__)

REQUIRED_CREDENTIALS = {
    SourceType.EMAIL: ("access_token",),
    SourceType.CHAT: ("access_token",),
    SourceType.BOT: ("bot_token",),
}


def default_scan_frequency(source: SourceType) -> int:
    """Minutes between scans when the user has not chosen."""
    return {
        SourceType.EMAIL: settings.email_scan_frequency,
        SourceType.CHAT: settings.chat_scan_frequency,
        SourceType.BOT: settings.bot_scan_frequency,
    }[source]


def list_integrations(user_id: str) -> list[Integration]:
    return database.list_integrations(user_id=user_id)


def get_integration(user_id: str, source: SourceType) -> Integration:
    integration = database.get_integration(user_id, source)
    if integration is None:
        raise NotFoundError(f"No {source.value} integration for user {user_id}")
    return integration


def connect_integration(
    user_id: str, source: SourceType, request: IntegrationConnectRequest
) -> Integration:
    """Store credentials for a source, replacing any previous ones.

    Reconnecting clears an auth error so pollers pick the source up again.
    """
    missing = [key for key in REQUIRED_CREDENTIALS[source] if not request.credentials.get(key)]
    if missing:
        raise InvalidRequestError(f"Missing credentials for {source.value}: {', '.join(missing)}")

    existing = database.get_integration(user_id, source)
    integration = Integration(
        user_id=user_id,
        source=source,
        credentials=get_cipher().encrypt(request.credentials),
        scan_frequency=request.scan_frequency
        or (existing.scan_frequency if existing else default_scan_frequency(source)),
        filter_instructions=request.filter_instructions
        if request.filter_instructions is not None
        else (existing.filter_instructions if existing else ""),
        settings=request.settings or (existing.settings if existing else {}),
    )
    saved = database.save_integration(integration)
    logger.info(f"Connected {source.value} for {user_id}")
    return saved


def update_integration(
    user_id: str, source: SourceType, request: IntegrationUpdateRequest
) -> Integration:
    """Change integration settings without touching credentials."""
    fields = request.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise InvalidRequestError("No fields to update")
    if not database.update_integration(user_id, source, fields):
        raise NotFoundError(f"No {source.value} integration for user {user_id}")
    return get_integration(user_id, source)


def disconnect_integration(user_id: str, source: SourceType) -> None:
    """Remove a source. Ingestion records stay so reconnecting does not re-import."""
    if not database.delete_integration(user_id, source):
        raise NotFoundError(f"No {source.value} integration for user {user_id}")
    logger.info(f"Disconnected {source.value} for {user_id}")
