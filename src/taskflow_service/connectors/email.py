"""Gmail connector."""

import base64
import logging
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

from ..exceptions import ConnectorAuthError, ConnectorError
from ..models.ingestion import InboundItem
from ..models.source import SourceType
from .base import SourceConnector

logger = logging.getLogger(__name__)

MAX_BODY_CHARS = 2000


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def _plain_text(payload: dict[str, Any]) -> str:
    """Collect text/plain content from a message payload."""
    body = payload.get("body") or {}
    if body.get("data") and payload.get("mimeType", "text/plain").startswith("text/plain"):
        return _decode_body(body["data"])

    text = ""
    for part in payload.get("parts") or []:
        text += _plain_text(part)
    return text


class EmailConnector(SourceConnector):
    """Reads a user's mailbox through the Gmail REST API."""

    source = SourceType.EMAIL
    base_url = "https://gmail.googleapis.com/gmail/v1/users/me"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._require_credential('access_token')}"}

    def fetch_since(self, since: datetime | None, max_items: int) -> list[InboundItem]:
        params: dict[str, Any] = {"maxResults": max_items}
        if since:
            params["q"] = f"after:{int(since.timestamp())}"

        listing = self._request("GET", "/messages", params=params)
        refs = listing.get("messages") or []
        logger.info(f"Gmail: {len(refs)} message(s) for user {self.integration.user_id}")

        items = []
        for ref in refs[:max_items]:
            try:
                message = self._request("GET", f"/messages/{ref['id']}", params={"format": "full"})
            except ConnectorAuthError:
                raise
            except ConnectorError as e:
                logger.warning(f"Skipping Gmail message {ref.get('id')}: {e}")
                continue
            try:
                items.append(self._to_item(message))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed Gmail message {ref.get('id')}: {e}")

        # Gmail lists newest first
        items.sort(key=lambda item: item.timestamp or 0)
        return items

    def _to_item(self, message: dict[str, Any]) -> InboundItem:
        payload = message.get("payload") or {}
        headers = {h["name"].lower(): h["value"] for h in payload.get("headers") or []}
        subject = headers.get("subject") or "No Subject"
        sender = headers.get("from") or "Unknown"

        timestamp = None
        if headers.get("date"):
            try:
                timestamp = int(parsedate_to_datetime(headers["date"]).timestamp() * 1000)
            except (TypeError, ValueError):
                logger.debug(f"Unparseable Date header on {message.get('id')}")
        if timestamp is None and message.get("internalDate"):
            timestamp = int(message["internalDate"])

        body = _plain_text(payload) or message.get("snippet") or ""
        return InboundItem(
            source=self.source,
            source_id=message["id"],
            user_id=self.integration.user_id,
            raw_text=f"Subject: {subject}\n\nFrom: {sender}\n\n{body[:MAX_BODY_CHARS]}",
            timestamp=timestamp,
            context_hints=f"Email from {sender}",
            title_hint=subject if subject != "No Subject" else None,
        )
