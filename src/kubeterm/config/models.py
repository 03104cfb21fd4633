"""Configuration model for kubeterm."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubeterm.terminal.exceptions import ConfigurationError


@dataclass
class TerminalConfig:
    """Static configuration of the terminal service.

    Attributes:
        image: Container image of the terminal pod.
        garden_api_hosts: API server hosts of the garden cluster; the first
            one is handed to clients of garden terminals.
        context: Kubeconfig context of the garden cluster (None for current).
        container_name: Name of the terminal container.
        attach_cluster_role: Cluster role bound to the attach service account.
        admin_cluster_role: Cluster role bound to the terminal pod's account.
        readiness_timeout: Seconds to wait for a service account token.
        operation_timeout: Upper bound in seconds for one create or heartbeat.
        cleanup_timeout: Seconds allowed for rolling back a failed create.
        oc_timeout: Default timeout in seconds for a single oc command.
    """

    image: str | None = None
    garden_api_hosts: list[str] = field(default_factory=list)
    context: str | None = None
    container_name: str = "terminal"
    attach_cluster_role: str = "garden.sapcloud.io:dashboard-terminal-attach"
    admin_cluster_role: str = "cluster-admin"
    readiness_timeout: float = 10.0
    operation_timeout: float = 120.0
    cleanup_timeout: float = 30.0
    oc_timeout: float = 30.0

    @property
    def garden_api_host(self) -> str:
        """First configured garden API server host.

        Raises:
            ConfigurationError: If no host is configured.
        """
        if not self.garden_api_hosts:
            raise ConfigurationError(
                "no terminal.gardenClusterKubeApiserver.hosts config found"
            )
        return self.garden_api_hosts[0]

    def validate(self) -> None:
        """Check that every required field is set.

        Raises:
            ConfigurationError: On the first missing or invalid field.
        """
        if not self.image:
            raise ConfigurationError("no terminal operator image configured")
        self.garden_api_host  # noqa: B018 - raises when unset
        for name in (
            "readiness_timeout",
            "operation_timeout",
            "cleanup_timeout",
            "oc_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
