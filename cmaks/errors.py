from __future__ import annotations


class ClusterServiceError(Exception):
    """
    Base class of every error surfaced by the cluster control handler.

    The message always starts with the stage that failed, e.g.
    "cannot get aks client: <provider error>", so callers can tell which
    step of an operation went wrong without inspecting the cause.
    """

    def __init__(self, stage: str, cause: object = None) -> None:
        self.stage = stage
        self.cause = cause
        message = stage if cause is None else f"{stage}: {cause}"
        super().__init__(message)


class ClientConstructionError(ClusterServiceError):
    """Raised when a credential-scoped client cannot be built."""


class ClusterNotFoundError(ClusterServiceError):
    """Raised when the provider has no cluster (or pool) with the given name."""


class ProviderOperationError(ClusterServiceError):
    """Raised when the provider rejects or fails an operation."""


class NodeGroupValidationError(ClusterServiceError):
    """Raised when the request does not match the state of the cluster."""
