"""Business logic services."""

from .extraction import extract_task
from .pipeline import IngestionPipeline
from .relevance import check_relevance
from .scanner import scan_integration
from .scheduler import Scheduler, SourcePoller

__all__ = [
    "extract_task",
    "check_relevance",
    "IngestionPipeline",
    "scan_integration",
    "Scheduler",
    "SourcePoller",
]
