"""Waiting for resources to reach a condition."""

from __future__ import annotations

import base64
import dataclasses
import logging
import time
from collections.abc import Callable
from typing import Any

from kubeterm.cluster.base import ResourceClient, Watch
from kubeterm.terminal.exceptions import NotFound, ReadinessTimeout
from kubeterm.terminal.resources import SECRET, SERVICE_ACCOUNT

logger = logging.getLogger(__name__)

DEFAULT_READINESS_TIMEOUT = 10.0


@dataclasses.dataclass(frozen=True)
class ServiceAccountToken:
    """Credential read from a service account's token secret.

    Attributes:
        token: Decoded bearer token.
        ca_data: Base64 CA bundle as stored in the secret.
        service_account: The service account as seen when it became ready.
    """

    token: str
    ca_data: str | None = None
    service_account: dict[str, Any] = dataclasses.field(
        default_factory=dict, compare=False, repr=False
    )


def wait_until_resource_has_condition(
    watch: Watch,
    condition: Callable[[dict[str, Any]], bool],
    resource_name: str,
    timeout: float = DEFAULT_READINESS_TIMEOUT,
) -> dict[str, Any]:
    """Consume a watch until the observed object satisfies a condition.

    The watch is closed on every outcome.

    Args:
        watch: Watch on a single named object.
        condition: Predicate over the object's current state.
        resource_name: Name used in the timeout error.
        timeout: Seconds to wait before giving up.

    Returns:
        The first observed state satisfying the condition.

    Raises:
        ReadinessTimeout: If no observed state satisfies the condition in time.
    """
    deadline = time.monotonic() + timeout
    try:
        for obj in watch:
            if obj is not None and condition(obj):
                return obj
            if time.monotonic() >= deadline:
                break
    finally:
        watch.close()
    raise ReadinessTimeout(resource_name, timeout)


def _first_secret_name(service_account: dict[str, Any]) -> str | None:
    secrets = service_account.get("secrets") or []
    if not secrets:
        return None
    name: str | None = secrets[0].get("name")
    return name or None


def is_service_account_ready(service_account: dict[str, Any]) -> bool:
    """A service account is ready once it references at least one secret.

    Only the first reference is considered, whichever secret it names.
    """
    return _first_secret_name(service_account) is not None


def read_service_account_token(
    client: ResourceClient,
    namespace: str,
    service_account_name: str,
    timeout: float = DEFAULT_READINESS_TIMEOUT,
) -> ServiceAccountToken:
    """Wait for a service account's token secret and read the token.

    Both the wait and the secret read share one timeout.

    Raises:
        ReadinessTimeout: If no secret reference appears in time.
        NotFound: If the referenced secret holds no token.
    """
    expires_at = time.monotonic() + timeout
    watch = client.watch(
        SERVICE_ACCOUNT, service_account_name, namespace, timeout=timeout
    )
    service_account = wait_until_resource_has_condition(
        watch,
        is_service_account_ready,
        service_account_name,
        timeout=timeout,
    )
    secret_name = _first_secret_name(service_account)
    if secret_name is None:
        raise NotFound(
            f"Service account {namespace}/{service_account_name} references no secret"
        )

    remaining = expires_at - time.monotonic()
    if remaining <= 0:
        raise ReadinessTimeout(service_account_name, timeout)
    secret = client.get(SECRET, secret_name, namespace, timeout=remaining)
    data = secret.get("data") or {}
    encoded = data.get("token")
    if not encoded:
        raise NotFound(
            f"No API token found in secret {namespace}/{secret_name} "
            f"for service account {service_account_name}"
        )
    logger.debug(
        "Read token of service account %s/%s from secret %s",
        namespace, service_account_name, secret_name,
    )
    return ServiceAccountToken(
        token=base64.b64decode(encoded).decode(),
        ca_data=data.get("ca.crt"),
        service_account=service_account,
    )
