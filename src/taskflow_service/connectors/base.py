"""Common plumbing for source connectors."""

import logging
from datetime import datetime
from typing import Any

import httpx

from ..config import settings
from ..exceptions import ConnectorAuthError, ConnectorError
from ..models.ingestion import InboundItem
from ..models.integration import Integration
from ..models.source import SourceType

logger = logging.getLogger(__name__)


class SourceConnector:
    """A session against one external source for one user.

    Connectors are context managers: the HTTP client is closed when the scan
    that owns the session finishes.
    """

    source: SourceType
    base_url: str = ""

    def __init__(
        self,
        integration: Integration,
        credentials: dict[str, str],
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.integration = integration
        self.credentials = credentials
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=settings.http_timeout_seconds,
            headers=self._auth_headers(),
            transport=transport,
        )

    def __enter__(self) -> "SourceConnector":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _require_credential(self, key: str) -> str:
        value = self.credentials.get(key)
        if not value:
            raise ConnectorAuthError(f"Missing '{key}' credential for {self.source.value}")
        return value

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Make a request and return the decoded JSON body.

        401/403 raise ConnectorAuthError; any other failure raises
        ConnectorError.
        """
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ConnectorError(f"{self.source.value} request failed: {e}") from e

        if response.status_code in (401, 403):
            raise ConnectorAuthError(
                f"{self.source.value} rejected credentials (HTTP {response.status_code})"
            )
        try:
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ConnectorError(
                f"{self.source.value} returned HTTP {response.status_code}"
            ) from e
        except ValueError as e:
            raise ConnectorError(f"{self.source.value} returned invalid JSON") from e

    def fetch_since(self, since: datetime | None, max_items: int) -> list[InboundItem]:
        """Fetch at most max_items items newer than since, oldest first."""
        raise NotImplementedError

    def checkpoint(self) -> dict[str, Any]:
        """Integration settings to store once the fetched batch is processed."""
        return {}
