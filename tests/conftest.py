"""Shared fixtures: an in-memory cluster and a wired terminal service."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fakes import FakeClock, FakeCluster, seed_garden

from kubeterm.config.models import TerminalConfig
from kubeterm.gardener import ShootMetadataLookup
from kubeterm.terminal.service import TerminalService
from kubeterm.terminal.targets import TargetResolver


@pytest.fixture
def garden() -> FakeCluster:
    cluster = FakeCluster()
    seed_garden(cluster)
    return cluster


@pytest.fixture
def seed() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def config() -> TerminalConfig:
    return TerminalConfig(
        image="europe-docker.pkg.dev/gardener/ops-toolbelt:latest",
        garden_api_hosts=["api.garden.example.org"],
        readiness_timeout=0.2,
    )


@pytest.fixture
def authorization() -> MagicMock:
    auth = MagicMock()
    auth.is_admin.return_value = True
    return auth


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kubeconfigs() -> list[str]:
    """Kubeconfigs the resolver built seed clients from."""
    return []


@pytest.fixture
def resolver(
    config: TerminalConfig,
    garden: FakeCluster,
    seed: FakeCluster,
    kubeconfigs: list[str],
) -> TargetResolver:
    def seed_client(kubeconfig: str) -> FakeCluster:
        kubeconfigs.append(kubeconfig)
        return seed

    return TargetResolver(
        config,
        garden,
        ShootMetadataLookup(garden),
        client_factory=seed_client,
    )


@pytest.fixture
def service(
    config: TerminalConfig,
    authorization: MagicMock,
    resolver: TargetResolver,
    clock: FakeClock,
) -> TerminalService:
    return TerminalService(config, authorization, resolver, clock=clock)
