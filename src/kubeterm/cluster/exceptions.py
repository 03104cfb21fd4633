"""Exceptions raised while talking to a cluster through oc."""

from __future__ import annotations


class OcError(Exception):
    """Base exception for cluster access errors."""

    pass


class OcNotInstalledError(OcError):
    """The oc CLI is not installed."""

    pass


class OcNotLoggedInError(OcError):
    """Not logged in to the cluster."""

    pass


class OcTimeoutError(OcError):
    """The oc CLI command timed out."""

    pass


class ResourceNotFoundError(OcError):
    """The requested object does not exist."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind}/{name} not found{where}")
