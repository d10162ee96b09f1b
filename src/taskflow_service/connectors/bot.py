"""Telegram bot connector."""

import logging
from datetime import datetime
from typing import Any

from ..exceptions import ConnectorAuthError
from ..models.ingestion import InboundItem
from ..models.source import SourceType
from .base import SourceConnector

logger = logging.getLogger(__name__)

TITLE_HINT_CHARS = 100

# Integration setting holding the next getUpdates offset
OFFSET_SETTING = "update_offset"


class BotConnector(SourceConnector):
    """Polls the Telegram Bot API for messages from the linked chat."""

    source = SourceType.BOT

    def __init__(self, integration, credentials, transport=None) -> None:
        token = credentials.get("bot_token")
        if not token:
            raise ConnectorAuthError("Missing 'bot_token' credential for bot")
        # The token is part of the URL path
        self.base_url = f"https://api.telegram.org/bot{token}"
        self._next_offset: int | None = None
        super().__init__(integration, credentials, transport=transport)

    def fetch_since(self, since: datetime | None, max_items: int) -> list[InboundItem]:
        params: dict[str, Any] = {"allowed_updates": '["message"]'}
        offset = self.integration.settings.get(OFFSET_SETTING)
        if offset is not None:
            params["offset"] = offset
        data = self._request("GET", "/getUpdates", params=params)
        chat_id = self.integration.settings.get("chat_id")
        since_s = since.timestamp() if since else None

        items = []
        for update in data.get("result", []):
            if len(items) >= max_items:
                break
            # Telegram drops updates below the offset on the next call
            self._next_offset = update["update_id"] + 1

            message = update.get("message")
            if not message or not message.get("text"):
                continue
            if chat_id is not None and str(message["chat"]["id"]) != str(chat_id):
                continue
            if since_s is not None and message.get("date", 0) <= since_s:
                continue

            try:
                item = self._to_item(message)
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed Telegram update {update['update_id']}: {e}")
                continue
            if item:
                items.append(item)
        return items

    def checkpoint(self) -> dict[str, Any]:
        if self._next_offset is None:
            return {}
        return {OFFSET_SETTING: self._next_offset}

    def _to_item(self, message: dict[str, Any]) -> InboundItem | None:
        text = message["text"].strip()
        is_command = False
        if text.startswith("/"):
            command, _, rest = text.partition(" ")
            if command.split("@")[0] != "/add" or not rest.strip():
                logger.debug(f"Ignoring bot command {command}")
                return None
            text = rest.strip()
            is_command = True

        chat_id = message["chat"]["id"]
        return InboundItem(
            source=self.source,
            source_id=f"{chat_id}-{message['message_id']}",
            user_id=self.integration.user_id,
            raw_text=text,
            timestamp=message.get("date", 0) * 1000 or None,
            title_hint=text[:TITLE_HINT_CHARS],
            is_command=is_command,
        )
