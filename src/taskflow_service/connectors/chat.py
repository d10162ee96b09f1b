"""Slack connector: messages that mention the user."""

import logging
from datetime import datetime
from typing import Any, Iterator

from ..exceptions import ConnectorAuthError, ConnectorError
from ..models.ingestion import InboundItem
from ..models.source import SourceType
from .base import SourceConnector

logger = logging.getLogger(__name__)

AUTH_ERRORS = {"invalid_auth", "not_authed", "token_revoked", "token_expired", "account_inactive"}

PAGE_SIZE = 100


class ChatConnector(SourceConnector):
    """Scans channels and threads through the Slack Web API."""

    source = SourceType.CHAT
    base_url = "https://slack.com/api"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._require_credential('access_token')}"}

    def _call(self, method: str, **params: Any) -> dict[str, Any]:
        """Call a Web API method. Slack reports errors in the body."""
        data = self._request("GET", f"/{method}", params=params)
        if not data.get("ok"):
            error = data.get("error", "unknown_error")
            if error in AUTH_ERRORS:
                raise ConnectorAuthError(f"Slack {method}: {error}")
            raise ConnectorError(f"Slack {method}: {error}")
        return data

    def _slack_user_id(self) -> str:
        user_id = self.integration.settings.get("slack_user_id")
        if not user_id:
            user_id = self._call("auth.test")["user_id"]
        return user_id

    def _paged(self, method: str, key: str, **params: Any) -> Iterator[dict[str, Any]]:
        """Yield entries of a cursor-paginated Web API method, page by page."""
        cursor = None
        while True:
            if cursor:
                params["cursor"] = cursor
            data = self._call(method, **params)
            yield from data.get(key, [])
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                return

    def fetch_since(self, since: datetime | None, max_items: int) -> list[InboundItem]:
        mention = f"<@{self._slack_user_id()}>"
        oldest = f"{since.timestamp():.6f}" if since else None

        channels = self._paged(
            "conversations.list",
            "channels",
            types="public_channel,private_channel",
            exclude_archived="true",
            limit=200,
        )

        items: list[InboundItem] = []
        for channel in channels:
            if len(items) >= max_items:
                break
            try:
                items.extend(self._scan_channel(channel, mention, oldest, max_items - len(items)))
            except ConnectorAuthError:
                raise
            except ConnectorError as e:
                if "not_in_channel" in str(e):
                    continue
                logger.warning(f"Skipping Slack channel {channel.get('name')}: {e}")

        items.sort(key=lambda item: item.timestamp or 0)
        return items[:max_items]

    def _scan_channel(
        self, channel: dict[str, Any], mention: str, oldest: str | None, budget: int
    ) -> list[InboundItem]:
        params: dict[str, Any] = {"channel": channel["id"], "limit": PAGE_SIZE}
        if oldest:
            params["oldest"] = oldest

        found: list[InboundItem] = []
        for message in self._paged("conversations.history", "messages", **params):
            if len(found) >= budget:
                break
            if mention in message.get("text", ""):
                self._collect(found, channel, message, is_reply=False)

            if message.get("reply_count") and message.get("thread_ts"):
                replies_params = {"channel": channel["id"], "ts": message["thread_ts"], "limit": PAGE_SIZE}
                if oldest:
                    replies_params["oldest"] = oldest
                for reply in self._paged("conversations.replies", "messages", **replies_params):
                    # The first entry is the parent message
                    if reply.get("ts") == message.get("ts"):
                        continue
                    if mention in reply.get("text", ""):
                        self._collect(found, channel, reply, is_reply=True)
        return found

    def _collect(
        self, found: list[InboundItem], channel: dict[str, Any], message: dict[str, Any], is_reply: bool
    ) -> None:
        try:
            found.append(self._to_item(channel, message, is_reply))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed Slack message in {channel.get('id')}: {e}")

    def _permalink(self, channel_id: str, ts: str) -> str | None:
        try:
            return self._call("chat.getPermalink", channel=channel_id, message_ts=ts).get("permalink")
        except ConnectorAuthError:
            raise
        except ConnectorError as e:
            logger.debug(f"No permalink for {channel_id}-{ts}: {e}")
            return None

    def _to_item(self, channel: dict[str, Any], message: dict[str, Any], is_reply: bool) -> InboundItem:
        name = channel.get("name", channel["id"])
        hints = f"From Slack #{name}" + (" (thread reply)" if is_reply else "")
        permalink = self._permalink(channel["id"], message["ts"])
        if permalink:
            hints += f"\nLink: {permalink}"

        return InboundItem(
            source=self.source,
            source_id=f"{channel['id']}-{message['ts']}",
            user_id=self.integration.user_id,
            raw_text=message.get("text", ""),
            timestamp=int(float(message["ts"]) * 1000),
            context_hints=hints,
        )
