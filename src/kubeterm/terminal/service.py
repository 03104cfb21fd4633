"""Find-or-create of terminal sessions and their heartbeat."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from kubeterm.cluster.base import ResourceClient
from kubeterm.cluster.exceptions import OcError, ResourceNotFoundError
from kubeterm.cluster.oc import OcClient
from kubeterm.config.models import TerminalConfig
from kubeterm.gardener import AdminAuthorization, ShootMetadataLookup
from kubeterm.session_discovery import (
    attach_service_account_name,
    find_existing_terminal,
    find_terminal_pod,
)
from kubeterm.terminal.deadline import Deadline
from kubeterm.terminal.exceptions import (
    DependencyUnavailable,
    Forbidden,
    NotFound,
    ProvisioningFailed,
    TerminalError,
)
from kubeterm.terminal.provisioner import ResourceProvisioner
from kubeterm.terminal.readiness import read_service_account_token
from kubeterm.terminal.resources import (
    ANNOTATION_HEARTBEAT,
    ATTACH_PREFIX,
    SERVICE_ACCOUNT,
    OwnerRoot,
    attach_service_account_spec,
    last_heartbeat,
    role_binding_spec,
)
from kubeterm.terminal.session import (
    Caller,
    Heartbeat,
    SessionDescriptor,
    TargetKind,
)
from kubeterm.terminal.targets import ResolvedTarget, TargetResolver

logger = logging.getLogger(__name__)


class AuthorizationCheck(Protocol):
    """Decides whether a caller may use terminal sessions."""

    def is_admin(self, caller: Caller) -> bool:
        ...


class TerminalService:
    """Creates, reuses and keeps alive per-user terminal sessions.

    All session state lives in the target cluster. A session is a terminal
    pod plus the service accounts and role bindings it needs, all owned by
    the session's attach service account: deleting that account removes the
    whole session.
    """

    def __init__(
        self,
        config: TerminalConfig,
        authorization: AuthorizationCheck,
        resolver: TargetResolver,
        provisioner: ResourceProvisioner | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service.

        Raises:
            ConfigurationError: If the configuration is incomplete.
        """
        config.validate()
        self._config = config
        self._authorization = authorization
        self._resolver = resolver
        self._provisioner = provisioner or ResourceProvisioner(config)
        self._clock = clock

    @classmethod
    def from_config(cls, config: TerminalConfig) -> TerminalService:
        """Wire up a service talking to the garden cluster through oc."""
        garden = OcClient(context=config.context, timeout=config.oc_timeout)
        return cls(
            config,
            authorization=AdminAuthorization(garden),
            resolver=TargetResolver(config, garden, ShootMetadataLookup(garden)),
        )

    def _now(self) -> int:
        return int(self._clock())

    def _authorize(self, caller: Caller, message: str) -> None:
        try:
            is_admin = self._authorization.is_admin(caller)
        except OcError as e:
            raise DependencyUnavailable(
                f"Could not check privileges of {caller.id}: {e}"
            ) from e
        if not is_admin:
            raise Forbidden(message)

    def create(
        self,
        caller: Caller,
        namespace: str,
        name: str,
        target: TargetKind | str,
    ) -> SessionDescriptor:
        """Return the caller's terminal session for a target, creating it if needed.

        A running or pending session of the same caller and target is reused
        without creating anything. Otherwise the attach service account, its
        role binding and the terminal objects are created; if any step fails
        the attach service account is deleted again, which removes everything
        it owns.

        Args:
            caller: The user the session belongs to.
            namespace: Namespace of the garden project (or of the shoot).
            name: Shoot name (ignored for garden terminals).
            target: Target kind or target label.

        Returns:
            Descriptor of the reused or created session.

        Raises:
            UnknownTarget: If the target names no known target kind.
            Forbidden: If the caller is not an admin.
            ConfigurationError: If required configuration is missing.
            DependencyUnavailable: If the target cannot be resolved.
            ProvisioningFailed: If the session cannot be set up.
        """
        target = TargetKind.parse(target)
        deadline = Deadline(self._config.operation_timeout)
        self._authorize(caller, "Admin privileges required to create terminal")

        try:
            resolved = self._resolver.resolve(caller, namespace, name, target)
        except OcError as e:
            raise DependencyUnavailable(
                f"Could not resolve {target.long_name} target {namespace}/{name}: {e}"
            ) from e

        with resolved:
            existing = self._reuse(resolved, caller, deadline)
            if existing is not None:
                return existing

            logger.debug(
                "No running Pod found for user %s. Creating new Pod and required Resources..",
                caller.id,
            )
            return self._create_session(resolved, caller, deadline)

    def _reuse(
        self,
        resolved: ResolvedTarget,
        caller: Caller,
        deadline: Deadline,
    ) -> SessionDescriptor | None:
        ns = resolved.namespace
        try:
            existing = find_existing_terminal(
                resolved.client, ns, caller.id, resolved.target.value
            )
        except OcError as e:
            raise DependencyUnavailable(
                f"Could not list terminal pods in namespace {ns}: {e}"
            ) from e
        if existing is None:
            return None

        logger.debug(
            "Found Pod for user %s: %s. Re-using Pod for terminal session..",
            caller.id, existing.pod,
        )
        try:
            token = read_service_account_token(
                resolved.client,
                ns,
                existing.attach_service_account,
                timeout=deadline.bound(self._config.readiness_timeout),
            )
        except (TerminalError, OcError) as e:
            raise ProvisioningFailed(
                f"Could not read token of service account "
                f"{ns}/{existing.attach_service_account}: {e}",
                cause=e,
            ) from e

        return SessionDescriptor(
            target=resolved.target,
            namespace=ns,
            container=resolved.container,
            server=resolved.server or "",
            pod=existing.pod,
            attach_service_account=existing.attach_service_account,
            token=token.token,
            ca_data=token.ca_data,
            heartbeat=last_heartbeat(token.service_account),
        )

    def _create_session(
        self,
        resolved: ResolvedTarget,
        caller: Caller,
        deadline: Deadline,
    ) -> SessionDescriptor:
        client = resolved.client
        ns = resolved.namespace
        label = resolved.target.value
        heartbeat = self._now()
        owner: OwnerRoot | None = None

        try:
            attach = client.create(
                attach_service_account_spec(caller.id, label, heartbeat),
                namespace=ns,
            )
            # everything created from here on is owned by the attach account
            owner = OwnerRoot.from_service_account(attach)
            identifier = owner.name.removeprefix(ATTACH_PREFIX)

            deadline.check(f"creating RoleBinding {ns}/{owner.name}")
            client.create(
                role_binding_spec(
                    owner.name,
                    owner.name,
                    self._config.attach_cluster_role,
                    caller.id,
                    label,
                    owner,
                ),
                namespace=ns,
            )

            pod = self._provisioner.provision(
                resolved, caller.id, identifier, owner, deadline
            )

            deadline.check(f"waiting for a token of service account {ns}/{owner.name}")
            token = read_service_account_token(
                client,
                ns,
                owner.name,
                timeout=deadline.bound(self._config.readiness_timeout),
            )
        except Exception as e:
            if owner is not None:
                self._cleanup(client, ns, owner.name)
            raise ProvisioningFailed(
                f"Could not setup Kubernetes Resources for Terminal session "
                f"in namespace {ns}. Error: {e}",
                cause=e,
            ) from e

        logger.info(
            "Created terminal %s/%s for user %s (service account %s)",
            ns, pod, caller.id, owner.name,
        )
        return SessionDescriptor(
            target=resolved.target,
            namespace=ns,
            container=resolved.container,
            server=resolved.server or "",
            pod=pod,
            attach_service_account=owner.name,
            token=token.token,
            ca_data=token.ca_data,
            heartbeat=heartbeat,
        )

    def _cleanup(self, client: ResourceClient, namespace: str, name: str) -> None:
        """Delete the attach service account, cascading to the whole session."""
        logger.debug(
            "Something went wrong during creation of Kubernetes resources. "
            "Cleaning up ServiceAccount %s/%s..",
            namespace, name,
        )
        try:
            client.delete(
                SERVICE_ACCOUNT,
                name,
                namespace=namespace,
                timeout=self._config.cleanup_timeout,
            )
        except ResourceNotFoundError:
            pass
        except Exception as e:
            logger.error(
                "Unable to cleanup ServiceAccount %s/%s. This may result in "
                "leftovers that you need to cleanup manually: %s",
                namespace, name, e,
            )

    def heartbeat(
        self,
        caller: Caller,
        namespace: str,
        name: str,
        target: TargetKind | str,
    ) -> Heartbeat:
        """Stamp the current time on a running session's attach account.

        Stamps never decrease: if the stored stamp is ahead of the local
        clock, it is kept.

        Returns:
            The heartbeat written.

        Raises:
            UnknownTarget: If the target names no known target kind.
            Forbidden: If the caller is not an admin.
            NotFound: If no running session exists for caller and target.
            DependencyUnavailable: If the cluster cannot be reached or updated.
        """
        target = TargetKind.parse(target)
        deadline = Deadline(self._config.operation_timeout)
        self._authorize(caller, "Admin privileges required")

        try:
            with self._resolver.resolve_for_heartbeat(
                caller, namespace, name, target
            ) as resolved:
                return self._stamp(resolved, caller, namespace, name, deadline)
        except OcError as e:
            raise DependencyUnavailable(
                f"Could not reach terminal session for {namespace}/{name}: {e}"
            ) from e

    def _stamp(
        self,
        resolved: ResolvedTarget,
        caller: Caller,
        namespace: str,
        name: str,
        deadline: Deadline,
    ) -> Heartbeat:
        client = resolved.client
        ns = resolved.namespace

        pod = find_terminal_pod(
            client, ns, caller.id, resolved.target.value, phases=("Running",)
        )
        account = attach_service_account_name(pod) if pod is not None else None
        if account is None:
            raise NotFound(f"Could not determine service account for {namespace}/{name}")

        try:
            current = client.get(SERVICE_ACCOUNT, account, ns)
        except ResourceNotFoundError as e:
            raise NotFound(
                f"Could not determine service account for {namespace}/{name}: "
                f"{ns}/{account} is gone"
            ) from e
        heartbeat = max(self._now(), last_heartbeat(current) or 0)

        if deadline.expired:
            raise DependencyUnavailable(
                f"Gave up updating service account {ns}/{account}: "
                f"operation exceeded {self._config.operation_timeout:g} seconds"
            )
        try:
            client.patch(
                SERVICE_ACCOUNT,
                account,
                {"metadata": {"annotations": {ANNOTATION_HEARTBEAT: str(heartbeat)}}},
                namespace=ns,
            )
        except OcError as e:
            logger.error("Could not update service account %s/%s. Error: %s", ns, account, e)
            raise DependencyUnavailable(
                f"Could not update service account {ns}/{account}"
            ) from e

        logger.info("Heartbeat %d for terminal %s/%s", heartbeat, ns, account)
        return Heartbeat(heartbeat=heartbeat)
