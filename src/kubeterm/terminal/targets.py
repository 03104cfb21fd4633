"""Resolving a terminal target to a client, namespace and API server."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from kubeterm.cluster.base import ResourceClient
from kubeterm.cluster.oc import OcClient
from kubeterm.config.models import TerminalConfig
from kubeterm.gardener import (
    GARDEN_NAMESPACE,
    ManagedClusterCredentials,
    ShootMetadataLookup,
    seed_ingress_domain,
)
from kubeterm.terminal.exceptions import DependencyUnavailable
from kubeterm.terminal.session import Caller, TargetKind

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], ResourceClient]


@dataclass
class ResolvedTarget:
    """Client and location a terminal session is operated in.

    Attributes:
        target: The resolved target kind.
        client: Client of the cluster holding the session objects.
        namespace: Namespace holding the session objects.
        container: Name of the terminal container.
        server: API server host handed to the attaching client
            (None when resolved for a heartbeat).
        owns_client: Close the client together with this target.
    """

    target: TargetKind
    client: ResourceClient
    namespace: str
    container: str
    server: str | None = None
    owns_client: bool = False

    def close(self) -> None:
        if self.owns_client:
            self.client.close()

    def __enter__(self) -> ResolvedTarget:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class TargetResolver:
    """Maps (namespace, name, target) to the cluster a session lives on.

    Garden terminals live in the caller's namespace on the garden cluster.
    Control plane and shoot terminals live in the shoot's namespace on its
    seed, reached with a kubeconfig fetched for that seed.
    """

    def __init__(
        self,
        config: TerminalConfig,
        garden_client: ResourceClient,
        lookup: ShootMetadataLookup,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config
        self._garden_client = garden_client
        self._lookup = lookup
        self._client_factory = client_factory or self._oc_client_from_kubeconfig

    def _oc_client_from_kubeconfig(self, kubeconfig: str) -> ResourceClient:
        return OcClient.from_kubeconfig(kubeconfig, timeout=self._config.oc_timeout)

    def resolve(
        self,
        caller: Caller,
        namespace: str,
        name: str,
        target: TargetKind,
    ) -> ResolvedTarget:
        """Resolve a target for creating or reusing a session.

        Raises:
            ConfigurationError: If no garden API host is configured.
            DependencyUnavailable: If the seed credentials cannot be fetched.
        """
        logger.debug(
            "Resolving %s target %s/%s for %s",
            target.long_name, namespace, name, caller.id,
        )
        if target is TargetKind.CONTROL_PLANE:
            return ResolvedTarget(
                target=target,
                client=self._garden_client,
                namespace=namespace,
                container=self._config.container_name,
                server=self._config.garden_api_host,
            )

        credentials, client = self._seed_access(namespace, name)
        resolved = ResolvedTarget(
            target=target,
            client=client,
            namespace=credentials.namespace,
            container=self._config.container_name,
            owns_client=True,
        )
        try:
            resolved.server = f"api.{self._soil_ingress_domain(namespace, credentials.seed)}"
        except BaseException:
            resolved.close()
            raise
        return resolved

    def resolve_for_heartbeat(
        self,
        caller: Caller,
        namespace: str,
        name: str,
        target: TargetKind,
    ) -> ResolvedTarget:
        """Resolve a target for a heartbeat.

        Only the garden target is special; every other kind goes through the
        seed credentials. No API server host is computed.
        """
        logger.debug(
            "Resolving %s target %s/%s for heartbeat of %s",
            target.long_name, namespace, name, caller.id,
        )
        if target is TargetKind.CONTROL_PLANE:
            return ResolvedTarget(
                target=target,
                client=self._garden_client,
                namespace=namespace,
                container=self._config.container_name,
            )

        credentials, client = self._seed_access(namespace, name)
        return ResolvedTarget(
            target=target,
            client=client,
            namespace=credentials.namespace,
            container=self._config.container_name,
            owns_client=True,
        )

    def _seed_access(
        self,
        namespace: str,
        name: str,
    ) -> tuple[ManagedClusterCredentials, ResourceClient]:
        shoot = self._lookup.read_shoot(namespace, name)
        credentials = self._lookup.get_seed_kubeconfig_for_shoot(shoot)
        if credentials is None:
            raise DependencyUnavailable(
                f"could not fetch seed kubeconfig for shoot {namespace}/{name}"
            )
        return credentials, self._client_factory(credentials.kubeconfig)

    def _soil_ingress_domain(self, namespace: str, seed: dict[str, Any]) -> str:
        """Ingress domain under which the seed's own API server is reachable.

        Shoots of the garden project run on the soil, whose ingress domain
        is the seed's. Other seeds are themselves shoots in the garden
        namespace.
        """
        if namespace == GARDEN_NAMESPACE:
            domain = seed_ingress_domain(seed)
            if not domain:
                seed_name = seed.get("metadata", {}).get("name")
                raise DependencyUnavailable(f"Seed {seed_name} has no ingress domain")
            return f"{namespace}.{domain}"

        seed_name = seed.get("metadata", {}).get("name", "")
        seed_shoot = self._lookup.read_shoot(GARDEN_NAMESPACE, seed_name)
        return self._lookup.shoot_ingress_domain(seed_shoot)
