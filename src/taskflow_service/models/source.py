"""Ingestion source types."""

from enum import Enum


class SourceType(str, Enum):
    """External systems that feed the ingestion pipeline."""

    EMAIL = "email"
    CHAT = "chat"  # Chat mentions
    BOT = "bot"  # Bot messages and commands


# Tag added to every artifact created from a source
SOURCE_TAGS: dict[SourceType, str] = {
    SourceType.EMAIL: "gmail",
    SourceType.CHAT: "slack",
    SourceType.BOT: "telegram",
}
