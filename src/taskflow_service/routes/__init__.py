"""API route modules."""

from . import drafts, health, ingest, integrations, stats, tasks

__all__ = ["health", "tasks", "drafts", "integrations", "ingest", "stats"]
