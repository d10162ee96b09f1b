"""Exception types shared by services, connectors and routes."""


class TaskFlowError(Exception):
    """Base class for service errors."""


class NotFoundError(TaskFlowError, LookupError):
    """Requested task, draft or integration does not exist for the user."""


class InvalidRequestError(TaskFlowError, ValueError):
    """Request is well-formed but cannot be applied."""


class DraftConflictError(TaskFlowError):
    """Draft is no longer pending (already approved or rejected)."""


class DuplicateArtifactError(TaskFlowError):
    """An artifact already exists for the (user, source, source_id) key."""


class ConnectorError(TaskFlowError):
    """A source connector failed to fetch from its external system."""


class ConnectorAuthError(ConnectorError):
    """Credentials for a source integration are missing, expired or revoked."""
