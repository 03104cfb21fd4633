"""Creating the objects behind a brand-new terminal session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from kubeterm.config.models import TerminalConfig
from kubeterm.terminal.deadline import Deadline
from kubeterm.terminal.exceptions import (
    ConfigurationError,
    ProvisioningFailed,
    ReadinessTimeout,
)
from kubeterm.terminal.readiness import read_service_account_token
from kubeterm.terminal.resources import (
    OwnerRoot,
    cluster_role_binding_spec,
    role_binding_spec,
    service_account_spec,
    shoot_terminal_pod_spec,
    terminal_pod_spec,
)
from kubeterm.terminal.session import TargetKind
from kubeterm.terminal.targets import ResolvedTarget

logger = logging.getLogger(__name__)


class ResourceProvisioner:
    """Builds and submits the objects of a new terminal session.

    The attach service account (the owner root) already exists when the
    provisioner runs; every object created here is owned by it.
    """

    def __init__(self, config: TerminalConfig) -> None:
        self._config = config
        self._strategies: dict[
            TargetKind,
            Callable[[ResolvedTarget, str, str, str, OwnerRoot, Deadline], str],
        ] = {
            TargetKind.CONTROL_PLANE: self._provision_admin_terminal,
            TargetKind.INFRASTRUCTURE_SEED: self._provision_admin_terminal,
            TargetKind.MANAGED_CLUSTER: self._provision_shoot_terminal,
        }

    def provision(
        self,
        target: ResolvedTarget,
        user: str,
        identifier: str,
        owner: OwnerRoot,
        deadline: Deadline,
    ) -> str:
        """Create the terminal pod and whatever it runs as.

        Args:
            target: Resolved client and namespace of the session.
            user: Caller id for the identifying annotations.
            identifier: Session identifier used to name the objects.
            owner: The session's owner root.
            deadline: Time budget of the whole create operation.

        Returns:
            Name of the created terminal pod.

        Raises:
            ConfigurationError: If no terminal image is configured.
            ProvisioningFailed: If the admin service account gets no token.
            OcError: If the cluster rejects an object.
        """
        image = self._image
        return self._strategies[target.target](
            target, image, user, identifier, owner, deadline
        )

    def _provision_admin_terminal(
        self,
        target: ResolvedTarget,
        image: str,
        user: str,
        identifier: str,
        owner: OwnerRoot,
        deadline: Deadline,
    ) -> str:
        client = target.client
        ns = target.namespace
        label = target.target.value
        name = f"terminal-{identifier}"

        logger.debug("Creating ServiceAccount %s/%s", ns, name)
        client.create(service_account_spec(name, user, label, owner), namespace=ns)

        cluster_role = self._config.admin_cluster_role
        if target.target is TargetKind.CONTROL_PLANE:
            logger.debug("Creating ClusterRoleBinding %s to %s", name, cluster_role)
            client.create(
                cluster_role_binding_spec(
                    name, name, ns, cluster_role, user, label, owner
                ),
            )
        else:
            logger.debug("Creating RoleBinding %s/%s to %s", ns, name, cluster_role)
            client.create(
                role_binding_spec(name, name, cluster_role, user, label, owner),
                namespace=ns,
            )

        # the pod must not start before its service account has a token
        deadline.check(f"waiting for a token of service account {ns}/{name}")
        try:
            read_service_account_token(
                client,
                ns,
                name,
                timeout=deadline.bound(self._config.readiness_timeout),
            )
        except ReadinessTimeout as e:
            raise ProvisioningFailed(
                f"No API token found for service account {ns}/{name}", cause=e
            ) from e

        deadline.check(f"creating terminal pod {ns}/{name}")
        return self._create_pod(
            target,
            terminal_pod_spec(
                name,
                image,
                target.container,
                name,
                user,
                label,
                owner,
            ),
        )

    def _provision_shoot_terminal(
        self,
        target: ResolvedTarget,
        image: str,
        user: str,
        identifier: str,
        owner: OwnerRoot,
        deadline: Deadline,
    ) -> str:
        name = f"terminal-{identifier}"
        deadline.check(f"creating terminal pod {target.namespace}/{name}")
        return self._create_pod(
            target,
            shoot_terminal_pod_spec(
                name,
                image,
                target.container,
                user,
                target.target.value,
                owner,
            ),
        )

    @property
    def _image(self) -> str:
        if not self._config.image:
            raise ConfigurationError("no terminal operator image configured")
        return self._config.image

    def _create_pod(self, target: ResolvedTarget, body: dict[str, Any]) -> str:
        logger.debug(
            "Creating Pod %s/%s", target.namespace, body["metadata"]["name"]
        )
        pod = target.client.create(body, namespace=target.namespace)
        name: str = pod.get("metadata", {}).get("name") or body["metadata"]["name"]
        return name
