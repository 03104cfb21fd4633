"""Cluster access for kubeterm."""

from kubeterm.cluster.base import ResourceClient, Watch
from kubeterm.cluster.exceptions import (
    OcError,
    OcNotInstalledError,
    OcNotLoggedInError,
    OcTimeoutError,
    ResourceNotFoundError,
)
from kubeterm.cluster.oc import OcClient, OcWatch

__all__ = [
    "OcClient",
    "OcError",
    "OcNotInstalledError",
    "OcNotLoggedInError",
    "OcTimeoutError",
    "OcWatch",
    "ResourceClient",
    "ResourceNotFoundError",
    "Watch",
]
