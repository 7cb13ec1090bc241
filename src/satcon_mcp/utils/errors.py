"""Error types for Satellite Config cluster group operations."""

from __future__ import annotations


class SatconError(Exception):
    """Base error for all cluster group operations.

    Carries the operation that was attempted and the group it targeted so
    callers can log and act on failures without parsing messages.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        group: str | None = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.group = group
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.group:
            context.append(f"group={self.group}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ConfigurationError(SatconError):
    """A required identity field (name, uuid, cluster_id) is missing or blank."""

    pass


class AuthenticationError(SatconError):
    """The account/session context could not be resolved."""

    pass


class NotFoundError(SatconError):
    """The remote service has no cluster group with the requested name."""

    def __init__(self, name: str, operation: str | None = None) -> None:
        super().__init__(
            f"Cluster group '{name}' not found",
            operation=operation,
            group=name,
        )


class RemoteOperationError(SatconError):
    """A remote group service call failed for a reason other than not-found."""

    pass


class OperationTimeoutError(RemoteOperationError):
    """An operation exceeded its configured time ceiling."""

    pass


class LifecycleError(SatconError):
    """An illegal lifecycle state transition was attempted."""

    pass
