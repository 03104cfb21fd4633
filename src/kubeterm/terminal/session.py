"""Value types exchanged with callers of the terminal service."""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any

from kubeterm.terminal.exceptions import UnknownTarget


class TargetKind(Enum):
    """Where a terminal session runs.

    The value is the target label written into annotations and object names.
    """

    CONTROL_PLANE = "garden"
    INFRASTRUCTURE_SEED = "cp"
    MANAGED_CLUSTER = "shoot"

    @property
    def long_name(self) -> str:
        return self.name.lower().replace("_", "-")

    @classmethod
    def parse(cls, value: str | TargetKind) -> TargetKind:
        """Parse a target label ("garden") or long name ("control-plane").

        Raises:
            UnknownTarget: If the value names no known target.
        """
        if isinstance(value, TargetKind):
            return value
        for kind in cls:
            if value in (kind.value, kind.long_name):
                return kind
        raise UnknownTarget(f"Unknown terminal target {value}")


@dataclasses.dataclass(frozen=True)
class Caller:
    """The user on whose behalf a session is created."""

    id: str
    groups: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class SessionDescriptor:
    """Everything a client needs to attach to a terminal session.

    Attributes:
        target:                 Target the session runs against.
        namespace:              Namespace holding the terminal pod.
        container:              Container to attach to inside the pod.
        server:                 API server host the client talks to.
        pod:                    Terminal pod name.
        attach_service_account: Service account owning the session.
        token:                  Bearer token of the attach service account.
        ca_data:                Base64 CA bundle from the token secret.
        heartbeat:              Last heartbeat stamped on the session, None
                                when the stamp is missing or unreadable.
    """

    target: TargetKind
    namespace: str
    container: str
    server: str
    pod: str | None = None
    attach_service_account: str | None = None
    token: str | None = None
    ca_data: str | None = None
    heartbeat: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.value,
            "namespace": self.namespace,
            "container": self.container,
            "server": self.server,
            "pod": self.pod,
            "attachServiceAccount": self.attach_service_account,
            "token": self.token,
            "caData": self.ca_data,
            "heartbeat": self.heartbeat,
        }


@dataclasses.dataclass(frozen=True)
class Heartbeat:
    """Result of a heartbeat: the epoch second written to the session."""

    heartbeat: int

    def to_dict(self) -> dict[str, Any]:
        return {"heartbeat": self.heartbeat}
