"""Pytest fixtures and configuration for integration tests."""

from __future__ import annotations

import secrets
import shutil
import subprocess

import pytest


@pytest.fixture(scope="session")
def has_oc() -> bool:
    """Check if oc CLI is available on the system."""
    return shutil.which("oc") is not None


@pytest.fixture(scope="session")
def kubernetes_available(has_oc: bool) -> bool:
    """Check if a Kubernetes cluster is accessible."""
    if not has_oc:
        return False

    try:
        result = subprocess.run(
            ["oc", "cluster-info"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


@pytest.fixture
def require_kubernetes(kubernetes_available: bool) -> None:
    """Skip test if kubernetes cluster is not available."""
    if not kubernetes_available:
        pytest.skip("kubernetes cluster not available")


@pytest.fixture
def unique_name() -> str:
    """Generate a unique object name for testing."""
    return f"kubeterm-test-{secrets.token_hex(4)}"
