"""Protocol for the cluster API clients used by the terminal service."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol


class Watch(Protocol):
    """A live stream of snapshots of a single named object.

    Iterating yields the object's current state each time it is observed,
    or None while the object does not exist. The stream ends only when
    close() is called.
    """

    def __iter__(self) -> Iterator[dict[str, Any] | None]:
        ...

    def close(self) -> None:
        ...


class ResourceClient(Protocol):
    """Cluster API client interface.

    Objects are plain dictionaries in the Kubernetes wire format. Kinds
    are the resource names oc understands ("serviceaccount", "pod",
    "shoots.core.gardener.cloud", ...).
    """

    def get(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Read a single object, within timeout seconds if given.

        Raises:
            ResourceNotFoundError: If the object does not exist.
        """
        ...

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List objects, optionally filtered by a label selector."""
        ...

    def watch(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> Watch:
        """Watch a single named object.

        With a timeout the stream ends once it has run for that long, also
        while a single read is still pending.
        """
        ...

    def create(
        self,
        body: dict[str, Any],
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """Create an object and return it as stored by the server."""
        ...

    def patch(
        self,
        kind: str,
        name: str,
        body: dict[str, Any],
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """Apply a JSON merge patch and return the updated object."""
        ...

    def delete(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Delete an object, letting the garbage collector cascade."""
        ...

    def close(self) -> None:
        """Release anything the client holds (temporary kubeconfigs)."""
        ...
