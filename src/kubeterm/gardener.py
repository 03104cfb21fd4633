"""Gardener collaborators: shoot metadata, seed credentials, admin check."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

from kubeterm.cluster.base import ResourceClient
from kubeterm.cluster.exceptions import OcError, ResourceNotFoundError
from kubeterm.cluster.oc import OcClient
from kubeterm.terminal.exceptions import DependencyUnavailable
from kubeterm.terminal.session import Caller

logger = logging.getLogger(__name__)

SHOOT = "shoots.core.gardener.cloud"
SEED = "seeds.core.gardener.cloud"
GARDEN_NAMESPACE = "garden"


@dataclass(frozen=True)
class ManagedClusterCredentials:
    """Seed access for a shoot.

    Attributes:
        seed: The seed object hosting the shoot's control plane.
        kubeconfig: Kubeconfig of the seed cluster.
        namespace: The shoot's control plane namespace on the seed.
    """

    seed: dict[str, Any]
    kubeconfig: str
    namespace: str


def project_name(namespace: str) -> str:
    """Project name of a garden namespace ("garden-dev" -> "dev")."""
    if namespace.startswith(f"{GARDEN_NAMESPACE}-"):
        return namespace[len(GARDEN_NAMESPACE) + 1:]
    return namespace


def seed_ingress_domain(seed: dict[str, Any]) -> str | None:
    spec = seed.get("spec", {})
    domain = spec.get("ingressDomain") or spec.get("dns", {}).get("ingressDomain")
    return domain or None


def _seed_name(shoot: dict[str, Any]) -> str | None:
    spec = shoot.get("spec", {})
    return spec.get("seedName") or spec.get("cloud", {}).get("seed")


class AdminAuthorization:
    """Decides whether a caller has administrative privileges.

    A caller is an admin when it may perform every verb on every resource
    in all namespaces of the garden cluster.
    """

    def __init__(self, client: OcClient) -> None:
        self._client = client

    def is_admin(self, caller: Caller) -> bool:
        return self._client.can_i(
            "*", "*",
            all_namespaces=True,
            as_user=caller.id,
            as_groups=caller.groups,
        )


class ShootMetadataLookup:
    """Reads shoots and the seed credentials needed to reach them."""

    def __init__(self, client: ResourceClient) -> None:
        self._client = client

    def read_shoot(self, namespace: str, name: str) -> dict[str, Any]:
        """Read a shoot.

        Raises:
            DependencyUnavailable: If the shoot cannot be read.
        """
        try:
            return self._client.get(SHOOT, name, namespace)
        except ResourceNotFoundError as e:
            raise DependencyUnavailable(
                f"Shoot {namespace}/{name} not found"
            ) from e
        except OcError as e:
            raise DependencyUnavailable(
                f"Could not read shoot {namespace}/{name}: {e}"
            ) from e

    def _read_seed(self, seed_name: str) -> dict[str, Any]:
        try:
            return self._client.get(SEED, seed_name)
        except OcError as e:
            raise DependencyUnavailable(
                f"Could not read seed {seed_name}: {e}"
            ) from e

    def get_seed_kubeconfig_for_shoot(
        self,
        shoot: dict[str, Any],
    ) -> ManagedClusterCredentials | None:
        """Fetch the kubeconfig of the seed hosting a shoot.

        Returns:
            The credential bundle, or None when the shoot is not scheduled
            yet or its seed has no readable kubeconfig secret.
        """
        metadata = shoot.get("metadata", {})
        name = metadata.get("name", "")
        namespace = metadata.get("namespace", "")

        seed_name = _seed_name(shoot)
        if not seed_name:
            logger.debug("Shoot %s/%s is not scheduled to a seed", namespace, name)
            return None
        seed = self._read_seed(seed_name)

        secret_ref = seed.get("spec", {}).get("secretRef") or {}
        if not secret_ref.get("name"):
            logger.debug("Seed %s has no secretRef", seed_name)
            return None
        try:
            secret = self._client.get(
                "secret", secret_ref["name"], secret_ref.get("namespace")
            )
        except OcError as e:
            logger.warning(
                "Could not read kubeconfig secret %s/%s of seed %s: %s",
                secret_ref.get("namespace"), secret_ref["name"], seed_name, e,
            )
            return None
        encoded = (secret.get("data") or {}).get("kubeconfig")
        if not encoded:
            return None

        technical_id = shoot.get("status", {}).get("technicalID")
        seed_namespace = technical_id or f"shoot--{project_name(namespace)}--{name}"

        return ManagedClusterCredentials(
            seed=seed,
            kubeconfig=base64.b64decode(encoded).decode(),
            namespace=seed_namespace,
        )

    def shoot_ingress_domain(self, shoot: dict[str, Any]) -> str:
        """Ingress domain of a shoot: <name>.<project>.<seed ingress domain>.

        Raises:
            DependencyUnavailable: If the shoot's seed has no ingress domain.
        """
        metadata = shoot.get("metadata", {})
        name = metadata.get("name", "")
        namespace = metadata.get("namespace", "")

        seed_name = _seed_name(shoot)
        domain = seed_ingress_domain(self._read_seed(seed_name)) if seed_name else None
        if not domain:
            raise DependencyUnavailable(
                f"Could not determine ingress domain for shoot {namespace}/{name}"
            )
        return f"{name}.{project_name(namespace)}.{domain}"
