"""Terminal session provisioning."""

from kubeterm.terminal.exceptions import (
    ConfigurationError,
    DependencyUnavailable,
    Forbidden,
    NotFound,
    OperationTimeout,
    ProvisioningFailed,
    ReadinessTimeout,
    TerminalError,
    UnknownTarget,
)
from kubeterm.terminal.session import Caller, Heartbeat, SessionDescriptor, TargetKind

__all__ = [
    "Caller",
    "ConfigurationError",
    "DependencyUnavailable",
    "Forbidden",
    "Heartbeat",
    "NotFound",
    "OperationTimeout",
    "ProvisioningFailed",
    "ReadinessTimeout",
    "SessionDescriptor",
    "TargetKind",
    "TerminalError",
    "UnknownTarget",
]
