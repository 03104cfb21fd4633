"""Resource bodies for terminal sessions."""

from __future__ import annotations

import dataclasses
from typing import Any

# Label value shared by every object of a terminal session
COMPONENT_TERMINAL = "dashboard-terminal"

ANNOTATION_USER = "garden.sapcloud.io/terminal-user"
ANNOTATION_TARGET = "garden.sapcloud.io/terminal-target"
ANNOTATION_HEARTBEAT = "garden.sapcloud.io/terminal-heartbeat"

ATTACH_PREFIX = "terminal-attach-"

# Resource names as understood by oc
SERVICE_ACCOUNT = "serviceaccount"
SECRET = "secret"
POD = "pod"
ROLE_BINDING = "rolebinding"
CLUSTER_ROLE_BINDING = "clusterrolebinding"

SHOOT_KUBECONFIG_SECRET = "kubecfg"
SHOOT_KUBECONFIG_MOUNT = "/mnt/.kube-shoot"


@dataclasses.dataclass(frozen=True)
class OwnerRoot:
    """The service account whose deletion cascades to a whole session."""

    name: str
    uid: str

    @classmethod
    def from_service_account(cls, service_account: dict[str, Any]) -> OwnerRoot:
        metadata = service_account.get("metadata", {})
        return cls(name=metadata["name"], uid=metadata["uid"])

    def references(self) -> list[dict[str, Any]]:
        """Owner reference array to put on every dependent object."""
        return [
            {
                "apiVersion": "v1",
                "kind": "ServiceAccount",
                "name": self.name,
                "uid": self.uid,
            },
        ]


def terminal_annotations(user: str, target: str) -> dict[str, str]:
    """Annotations recognising which user and target an object belongs to."""
    return {
        ANNOTATION_USER: user,
        ANNOTATION_TARGET: target,
    }


def last_heartbeat(service_account: dict[str, Any]) -> int | None:
    """Epoch seconds of the heartbeat stamped on an attach service account.

    Returns:
        The stamp, or None when it is missing or not a number.
    """
    annotations = service_account.get("metadata", {}).get("annotations") or {}
    try:
        return int(annotations[ANNOTATION_HEARTBEAT])
    except (KeyError, TypeError, ValueError):
        return None


def _metadata(
    name: str | None,
    user: str,
    target: str,
    owner: OwnerRoot | None,
    generate_name: str | None = None,
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "labels": {"component": COMPONENT_TERMINAL, **(labels or {})},
        "annotations": {**(annotations or {}), **terminal_annotations(user, target)},
    }
    if name:
        metadata["name"] = name
    if generate_name:
        metadata["generateName"] = generate_name
    if owner is not None:
        metadata["ownerReferences"] = owner.references()
    return metadata


def attach_service_account_spec(
    user: str,
    target: str,
    heartbeat: int,
) -> dict[str, Any]:
    """Service account a user's client attaches with.

    The API server generates the name from the prefix
    "terminal-attach-<target>-". It owns every other object of the session
    and carries the heartbeat annotation.
    """
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": _metadata(
            None,
            user,
            target,
            owner=None,
            generate_name=f"{ATTACH_PREFIX}{target}-",
            labels={"satype": "attach"},
            annotations={ANNOTATION_HEARTBEAT: str(heartbeat)},
        ),
    }


def service_account_spec(
    name: str,
    user: str,
    target: str,
    owner: OwnerRoot,
) -> dict[str, Any]:
    """Service account the terminal pod itself runs as."""
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": _metadata(name, user, target, owner),
    }


def role_binding_spec(
    name: str,
    service_account: str,
    cluster_role: str,
    user: str,
    target: str,
    owner: OwnerRoot,
) -> dict[str, Any]:
    """Namespaced binding of a service account to a cluster role."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": _metadata(name, user, target, owner),
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "ClusterRole",
            "name": cluster_role,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": service_account,
            },
        ],
    }


def cluster_role_binding_spec(
    name: str,
    service_account: str,
    service_account_namespace: str,
    cluster_role: str,
    user: str,
    target: str,
    owner: OwnerRoot,
) -> dict[str, Any]:
    """Cluster wide binding of a service account to a cluster role."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": _metadata(name, user, target, owner),
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "ClusterRole",
            "name": cluster_role,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": service_account,
                "namespace": service_account_namespace,
            },
        ],
    }


def terminal_pod_spec(
    name: str,
    image: str,
    container: str,
    service_account: str,
    user: str,
    target: str,
    owner: OwnerRoot,
) -> dict[str, Any]:
    """Terminal pod running as the session's admin service account."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": _metadata(name, user, target, owner),
        "spec": {
            "serviceAccountName": service_account,
            "containers": [
                {
                    "name": container,
                    "image": image,
                    "stdin": True,
                    "tty": True,
                },
            ],
        },
    }


def shoot_terminal_pod_spec(
    name: str,
    image: str,
    container: str,
    user: str,
    target: str,
    owner: OwnerRoot,
) -> dict[str, Any]:
    """Terminal pod reaching a shoot through its mounted kubeconfig.

    The pod has no delegated identity of its own; the kubeconfig comes from
    the "kubecfg" secret in the shoot's namespace on the seed.
    """
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": _metadata(name, user, target, owner),
        "spec": {
            "containers": [
                {
                    "name": container,
                    "image": image,
                    "stdin": True,
                    "tty": True,
                    "volumeMounts": [
                        {
                            "name": "shoot-kubeconfig",
                            "mountPath": SHOOT_KUBECONFIG_MOUNT,
                        },
                    ],
                    "env": [
                        {
                            "name": "KUBECONFIG",
                            "value": f"{SHOOT_KUBECONFIG_MOUNT}/kubeconfig.yaml",
                        },
                    ],
                },
            ],
            "volumes": [
                {
                    "name": "shoot-kubeconfig",
                    "secret": {
                        "secretName": SHOOT_KUBECONFIG_SECRET,
                        "items": [
                            {"key": "kubeconfig", "path": "kubeconfig.yaml"},
                        ],
                    },
                },
            ],
        },
    }
