"""Source connectors: one fetch interface over email, chat and bot sources."""

from ..models.integration import Integration
from ..models.source import SourceType
from .base import SourceConnector
from .bot import BotConnector
from .chat import ChatConnector
from .email import EmailConnector

CONNECTORS: dict[SourceType, type[SourceConnector]] = {
    SourceType.EMAIL: EmailConnector,
    SourceType.CHAT: ChatConnector,
    SourceType.BOT: BotConnector,
}


def build_connector(integration: Integration, credentials: dict[str, str]) -> SourceConnector:
    """Open a connector session for an integration."""
    return CONNECTORS[integration.source](integration, credentials)


__all__ = [
    "SourceConnector",
    "EmailConnector",
    "ChatConnector",
    "BotConnector",
    "CONNECTORS",
    "build_connector",
]
