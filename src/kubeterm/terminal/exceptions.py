"""Errors surfaced by the terminal service.

Callers only ever see these; errors from the cluster collaborators are
wrapped before they leave the service.
"""

from __future__ import annotations


class TerminalError(Exception):
    """Base exception for terminal session errors."""

    pass


class Forbidden(TerminalError):
    """The caller lacks the privileges required for terminal sessions."""

    pass


class ConfigurationError(TerminalError):
    """Required static configuration is missing or invalid."""

    pass


class DependencyUnavailable(TerminalError):
    """A collaborator (metadata lookup, credential retrieval) failed."""

    pass


class NotFound(TerminalError):
    """The session or its delegated identity could not be determined."""

    pass


class OperationTimeout(TerminalError):
    """An operation did not finish before its deadline."""

    pass


class ReadinessTimeout(OperationTimeout):
    """A watched resource did not reach the expected condition in time."""

    def __init__(self, resource_name: str, timeout: float) -> None:
        self.resource_name = resource_name
        self.timeout = timeout
        super().__init__(
            f"Resource {resource_name} did not become ready within {timeout:g} seconds"
        )


class ProvisioningFailed(TerminalError):
    """Creating the resources for a terminal session failed.

    Attributes:
        cause: The original error.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class UnknownTarget(TerminalError, ValueError):
    """The requested target names no known target kind."""

    pass
