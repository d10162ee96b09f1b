"""Background pollers, one thread per source."""

import logging
import threading
import time
from datetime import datetime, timezone

from .. import database
from ..config import settings
from ..models.ingestion import ScanResult
from ..models.integration import IntegrationStatus
from ..models.source import SourceType
from .pipeline import IngestionPipeline
from .scanner import scan_integration

logger = logging.getLogger(__name__)


class SourcePoller:
    """Periodically scans every due integration of one source."""

    def __init__(
        self,
        source: SourceType,
        tick_seconds: float | None = None,
        pipeline: IngestionPipeline | None = None,
    ) -> None:
        self.source = source
        self.tick_seconds = tick_seconds or settings.scheduler_tick_seconds
        self.pipeline = pipeline or IngestionPipeline()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def tick(self, now: datetime | None = None) -> list[ScanResult]:
        """Scan each enabled, healthy, due integration once."""
        now = now or datetime.now(timezone.utc)
        results = []
        for integration in database.list_integrations(source=self.source, enabled_only=True):
            if integration.status == IntegrationStatus.AUTH_ERROR:
                logger.debug(f"Skipping {self.source.value} for {integration.user_id}: auth error")
                continue
            if not integration.is_due(now):
                continue
            try:
                results.append(
                    scan_integration(integration.user_id, self.source, pipeline=self.pipeline)
                )
            except Exception as e:
                logger.error(f"Scan failed for {self.source.value} of {integration.user_id}: {e}")
        return results

    def _run(self) -> None:
        logger.info(f"{self.source.value} poller started (every {self.tick_seconds}s)")
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"{self.source.value} poller tick failed: {e}")
            self._stop.wait(self.tick_seconds)
        logger.info(f"{self.source.value} poller stopped")

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"poller-{self.source.value}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class Scheduler:
    """Owns one poller per source type."""

    def __init__(self, tick_seconds: float | None = None) -> None:
        self.pollers = [SourcePoller(source, tick_seconds) for source in SourceType]

    def start(self) -> None:
        """Start all pollers."""
        for poller in self.pollers:
            poller.start()
        logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop all pollers."""
        for poller in self.pollers:
            poller.stop()
        logger.info("Scheduler stopped")

    def run_forever(self) -> None:
        """Run until interrupted."""
        self.start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Received shutdown signal")
        finally:
            self.stop()
