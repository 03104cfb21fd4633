"""Finding the live terminal session of a user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kubeterm.cluster.base import ResourceClient
from kubeterm.terminal.resources import (
    ANNOTATION_TARGET,
    ANNOTATION_USER,
    COMPONENT_TERMINAL,
    POD,
)

RUNNING_OR_PENDING = ("Running", "Pending")


@dataclass(frozen=True)
class ExistingTerminal:
    """A terminal pod that can be reused and the account owning it."""

    pod: str
    attach_service_account: str


def _belongs_to(pod: dict[str, Any], user: str, target: str) -> bool:
    annotations = pod.get("metadata", {}).get("annotations") or {}
    return (
        annotations.get(ANNOTATION_USER) == user
        and annotations.get(ANNOTATION_TARGET) == target
    )


def pod_phase(pod: dict[str, Any]) -> str | None:
    return pod.get("status", {}).get("phase")


def attach_service_account_name(pod: dict[str, Any]) -> str | None:
    """Name of the service account owning a terminal pod.

    Returns:
        The first ServiceAccount owner reference's name, or None.
    """
    for ref in pod.get("metadata", {}).get("ownerReferences") or []:
        if ref.get("kind") == "ServiceAccount" and ref.get("name"):
            name: str = ref["name"]
            return name
    return None


def find_terminal_pod(
    client: ResourceClient,
    namespace: str,
    user: str,
    target: str,
    phases: tuple[str, ...] = RUNNING_OR_PENDING,
) -> dict[str, Any] | None:
    """Find a user's terminal pod for a target.

    Lists the terminal pods of the namespace and returns the first one
    annotated for (user, target) whose phase is one of the given phases.

    Args:
        client: Client of the cluster holding the session.
        namespace: Namespace to search.
        user: Caller id stored in the user annotation.
        target: Target label stored in the target annotation.
        phases: Accepted pod phases.

    Returns:
        The pod, or None if no matching pod exists.
    """
    pods = client.list(
        POD,
        namespace=namespace,
        label_selector=f"component={COMPONENT_TERMINAL}",
    )
    for pod in pods:
        if _belongs_to(pod, user, target) and pod_phase(pod) in phases:
            return pod
    return None


def find_existing_terminal(
    client: ResourceClient,
    namespace: str,
    user: str,
    target: str,
) -> ExistingTerminal | None:
    """Find a running or pending terminal that still has its owner.

    Returns:
        The reusable terminal, or None if a new one must be created.
    """
    pod = find_terminal_pod(client, namespace, user, target)
    if pod is None:
        return None

    attach_service_account = attach_service_account_name(pod)
    if attach_service_account is None:
        return None

    return ExistingTerminal(
        pod=pod["metadata"]["name"],
        attach_service_account=attach_service_account,
    )
