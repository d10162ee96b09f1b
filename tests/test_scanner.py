"""Tests for integration scans, pollers and the integration endpoints."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from taskflow_service import database
from taskflow_service.connectors import EmailConnector
from taskflow_service.exceptions import ConnectorAuthError, ConnectorError, NotFoundError
from taskflow_service.models.ingestion import InboundItem
from taskflow_service.models.integration import IntegrationConnectRequest, IntegrationStatus
from taskflow_service.models.source import SourceType
from taskflow_service.services import integration_service
from taskflow_service.services.pipeline import IngestionPipeline
from taskflow_service.services.scanner import scan_integration
from taskflow_service.services.scheduler import Scheduler, SourcePoller

from .conftest import USER_ID, stub_extractor


class FakeConnector:
    """Connector stand-in that returns canned items or raises."""

    def __init__(self, items=None, error: Exception | None = None, cursor=None):
        self.items = items or []
        self.error = error
        self.cursor = cursor or {}
        self.calls = []
        self.closed = False

    def __call__(self, integration, credentials):
        self.credentials = credentials
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def fetch_since(self, since, max_items):
        self.calls.append((since, max_items))
        if self.error:
            raise self.error
        return self.items[:max_items]

    def checkpoint(self):
        return self.cursor


def _item(source_id: str, source: SourceType = SourceType.EMAIL) -> InboundItem:
    return InboundItem(
        source=source,
        source_id=source_id,
        raw_text=f"Subject: Item {source_id}",
        user_id=USER_ID,
    )


def _connect(source: SourceType = SourceType.EMAIL, token: str = "tok", **fields):
    key = "bot_token" if source == SourceType.BOT else "access_token"
    return integration_service.connect_integration(
        USER_ID, source, IntegrationConnectRequest(credentials={key: token}, **fields)
    )


@pytest.fixture
def pipeline() -> IngestionPipeline:
    return IngestionPipeline(extractor=stub_extractor)


def test_scan_creates_drafts_and_advances_mark(pipeline: IngestionPipeline) -> None:
    """Test a successful scan end to end."""
    _connect()
    connector = FakeConnector([_item("m1"), _item("m2")])
    before = datetime.now(timezone.utc)

    result = scan_integration(USER_ID, SourceType.EMAIL, pipeline=pipeline, connector_factory=connector)

    assert result.error is None
    assert result.drafts_created == 2
    assert connector.credentials == {"access_token": "tok"}
    assert connector.calls == [(None, 50)]
    assert connector.closed is True
    integration = database.get_integration(USER_ID, SourceType.EMAIL)
    assert integration.last_scan_at >= before
    assert integration.last_scan_at == result.started_at


def test_rescan_passes_high_water_mark(pipeline: IngestionPipeline) -> None:
    """Test that the next scan asks only for newer items and skips repeats."""
    _connect()
    first = scan_integration(
        USER_ID, SourceType.EMAIL, pipeline=pipeline, connector_factory=FakeConnector([_item("m1")])
    )
    connector = FakeConnector([_item("m1"), _item("m2")])

    second = scan_integration(USER_ID, SourceType.EMAIL, pipeline=pipeline, connector_factory=connector)

    assert connector.calls[0][0] == first.started_at
    assert second.duplicates == 1
    assert second.drafts_created == 1


def test_auth_failure_marks_integration(pipeline: IngestionPipeline) -> None:
    """Test that expired credentials flag the integration and keep the mark."""
    _connect()
    connector = FakeConnector(error=ConnectorAuthError("token expired"))

    result = scan_integration(USER_ID, SourceType.EMAIL, pipeline=pipeline, connector_factory=connector)

    assert result.error == "token expired"
    integration = database.get_integration(USER_ID, SourceType.EMAIL)
    assert integration.status == IntegrationStatus.AUTH_ERROR
    assert integration.last_error == "token expired"
    assert integration.last_scan_at is None


def test_reconnect_clears_auth_error() -> None:
    _connect()
    database.set_integration_status(USER_ID, SourceType.EMAIL, IntegrationStatus.AUTH_ERROR, "expired")

    integration = _connect(token="fresh")

    assert integration.status == IntegrationStatus.ACTIVE
    assert integration.last_error is None


def test_fetch_failure_keeps_mark(pipeline: IngestionPipeline) -> None:
    """Test that a transient fetch error leaves the integration active and unmoved."""
    _connect()
    connector = FakeConnector(error=ConnectorError("HTTP 503"))

    result = scan_integration(USER_ID, SourceType.EMAIL, pipeline=pipeline, connector_factory=connector)

    assert result.error == "HTTP 503"
    integration = database.get_integration(USER_ID, SourceType.EMAIL)
    assert integration.status == IntegrationStatus.ACTIVE
    assert integration.last_scan_at is None


def test_scan_without_integration() -> None:
    with pytest.raises(NotFoundError):
        scan_integration(USER_ID, SourceType.CHAT)


def test_high_water_mark_never_moves_backward() -> None:
    _connect()
    now = datetime.now(timezone.utc)

    assert database.advance_last_scan(USER_ID, SourceType.EMAIL, now) is True
    assert database.advance_last_scan(USER_ID, SourceType.EMAIL, now - timedelta(hours=1)) is False
    assert database.get_integration(USER_ID, SourceType.EMAIL).last_scan_at == now


def test_poller_tick_skips_unhealthy_and_not_due(pipeline: IngestionPipeline) -> None:
    """Test that a tick scans only active, enabled, due integrations."""
    _connect(SourceType.EMAIL)
    connector = FakeConnector([_item("m1")])
    poller = SourcePoller(SourceType.EMAIL, tick_seconds=0.01, pipeline=pipeline)

    with patch("taskflow_service.services.scanner.build_connector", connector):
        first = poller.tick()
        # Just scanned, so not due for another hour
        second = poller.tick()
        database.advance_last_scan(
            USER_ID, SourceType.EMAIL, datetime.now(timezone.utc) + timedelta(seconds=1)
        )
        later = poller.tick(datetime.now(timezone.utc) + timedelta(hours=2))
        database.set_integration_status(USER_ID, SourceType.EMAIL, IntegrationStatus.AUTH_ERROR)
        skipped = poller.tick(datetime.now(timezone.utc) + timedelta(hours=4))

    assert len(first) == 1
    assert second == []
    assert len(later) == 1
    assert skipped == []
    assert len(connector.calls) == 2


def test_poller_ignores_disabled_integrations(pipeline: IngestionPipeline) -> None:
    _connect(SourceType.BOT)
    database.update_integration(USER_ID, SourceType.BOT, {"enabled": False})
    connector = FakeConnector()

    with patch("taskflow_service.services.scanner.build_connector", connector):
        assert SourcePoller(SourceType.BOT, pipeline=pipeline).tick() == []

    assert connector.calls == []


def test_scheduler_starts_and_stops_pollers() -> None:
    """Test one thread per source that stops cleanly."""
    scheduler = Scheduler(tick_seconds=0.01)
    assert [p.source for p in scheduler.pollers] == list(SourceType)

    scheduler.start()
    assert all(p.is_alive for p in scheduler.pollers)
    scheduler.stop()

    assert not any(p.is_alive for p in scheduler.pollers)


def test_integration_routes(client: TestClient) -> None:
    """Test connecting, updating and disconnecting over HTTP."""
    response = client.put(
        "/integrations/chat",
        json={"credentials": {"access_token": "xoxp"}, "settings": {"slack_user_id": "U1"}},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["scan_frequency"] == 15
    assert data["status"] == "active"
    assert "credentials" not in data

    response = client.patch(
        "/integrations/chat",
        json={"scan_frequency": 5, "filter_instructions": "Only messages about releases"},
    )
    assert response.status_code == 200
    assert response.json()["scan_frequency"] == 5

    listed = client.get("/integrations").json()
    assert [i["source"] for i in listed] == ["chat"]

    assert client.delete("/integrations/chat").status_code == 200
    assert client.get("/integrations").json() == []


def test_integration_route_errors(client: TestClient) -> None:
    assert client.put("/integrations/bot", json={"credentials": {"access_token": "x"}}).status_code == 400
    assert client.patch("/integrations/email", json={"enabled": False}).status_code == 404
    assert client.post("/integrations/email/scan").status_code == 404
    assert client.put("/integrations/fax", json={"credentials": {"x": "y"}}).status_code == 422


def test_scan_route_reports_auth_error(client: TestClient) -> None:
    _connect()
    connector = FakeConnector(error=ConnectorAuthError("revoked"))

    with patch("taskflow_service.services.scanner.build_connector", connector):
        response = client.post("/integrations/email/scan")

    assert response.status_code == 200
    assert response.json()["error"] == "revoked"


def test_ingest_route_is_idempotent(client: TestClient) -> None:
    """Test pushing the same item twice through the HTTP endpoint."""
    payload = {
        "source": "bot",
        "source_id": "555-77",
        "raw_text": "renew passport",
        "user_id": USER_ID,
    }

    first = client.post("/ingest", json=payload)
    second = client.post("/ingest", json=payload)

    assert first.status_code == 200
    assert first.json()["kind"] == "draft_created"
    assert first.json()["draft"]["workspace"] == "personal"
    assert second.json()["kind"] == "duplicate"


def test_malformed_message_does_not_stall_integration(pipeline: IngestionPipeline) -> None:
    """Test that one undecodable email still lets its neighbours through."""
    _connect()

    def handler(request: httpx.Request) -> httpx.Response:
        message_id = request.url.path.rsplit("/", 1)[-1]
        if message_id == "messages":
            return httpx.Response(200, json={"messages": [{"id": "m2"}, {"id": "bad"}, {"id": "m1"}]})
        return httpx.Response(
            200,
            json={
                "id": message_id,
                "payload": {
                    "mimeType": "text/plain",
                    "headers": [{"name": "Subject", "value": f"Reply to {message_id}"}],
                    "body": {"data": "a" if message_id == "bad" else "aGVsbG8"},
                },
            },
        )

    def factory(integration, credentials):
        return EmailConnector(integration, credentials, transport=httpx.MockTransport(handler))

    result = scan_integration(USER_ID, SourceType.EMAIL, pipeline=pipeline, connector_factory=factory)

    assert result.error is None
    assert result.drafts_created == 2
    assert database.get_integration(USER_ID, SourceType.EMAIL).last_scan_at == result.started_at


def test_scan_stores_connector_checkpoint(pipeline: IngestionPipeline) -> None:
    """Test that the connector cursor is saved next to the existing settings."""
    _connect(SourceType.BOT, settings={"chat_id": "555"})
    connector = FakeConnector([_item("555-1", SourceType.BOT)], cursor={"update_offset": 9})

    scan_integration(USER_ID, SourceType.BOT, pipeline=pipeline, connector_factory=connector)

    assert database.get_integration(USER_ID, SourceType.BOT).settings == {
        "chat_id": "555",
        "update_offset": 9,
    }


def test_failed_scan_keeps_checkpoint(pipeline: IngestionPipeline) -> None:
    _connect(SourceType.BOT, settings={"chat_id": "555", "update_offset": 4})
    connector = FakeConnector(error=ConnectorError("HTTP 502"), cursor={"update_offset": 9})

    scan_integration(USER_ID, SourceType.BOT, pipeline=pipeline, connector_factory=connector)

    assert database.get_integration(USER_ID, SourceType.BOT).settings["update_offset"] == 4
