"""Tests for resolving terminal targets."""

from __future__ import annotations

import pytest
from fakes import SEED_KUBECONFIG, FakeCluster

from kubeterm.config.models import TerminalConfig
from kubeterm.gardener import SEED, ShootMetadataLookup
from kubeterm.terminal.exceptions import (
    ConfigurationError,
    DependencyUnavailable,
    UnknownTarget,
)
from kubeterm.terminal.session import Caller, TargetKind
from kubeterm.terminal.targets import TargetResolver

ALICE = Caller(id="alice")


class TestTargetKind:
    """Tests for parsing target kinds."""

    @pytest.mark.parametrize(
        ("value", "kind"),
        [
            ("garden", TargetKind.CONTROL_PLANE),
            ("control-plane", TargetKind.CONTROL_PLANE),
            ("cp", TargetKind.INFRASTRUCTURE_SEED),
            ("infrastructure-seed", TargetKind.INFRASTRUCTURE_SEED),
            ("shoot", TargetKind.MANAGED_CLUSTER),
            ("managed-cluster", TargetKind.MANAGED_CLUSTER),
        ],
    )
    def test_parse(self, value: str, kind: TargetKind) -> None:
        """Labels and long names are both accepted."""
        assert TargetKind.parse(value) is kind

    def test_parse_unknown(self) -> None:
        """Unknown targets are rejected."""
        with pytest.raises(UnknownTarget, match="Unknown terminal target moon"):
            TargetKind.parse("moon")


class TestResolve:
    """Tests for TargetResolver.resolve."""

    def test_garden_target(self, resolver: TargetResolver, garden: FakeCluster) -> None:
        """Garden terminals use the garden client and caller namespace."""
        resolved = resolver.resolve(ALICE, "garden-dev", "", TargetKind.CONTROL_PLANE)

        assert resolved.client is garden
        assert resolved.namespace == "garden-dev"
        assert resolved.server == "api.garden.example.org"
        assert resolved.container == "terminal"
        assert not resolved.owns_client

    def test_garden_target_without_host(
        self, config: TerminalConfig, garden: FakeCluster
    ) -> None:
        """A missing garden host is a configuration error."""
        config.garden_api_hosts = []
        resolver = TargetResolver(config, garden, ShootMetadataLookup(garden))

        with pytest.raises(ConfigurationError):
            resolver.resolve(ALICE, "garden-dev", "", TargetKind.CONTROL_PLANE)

    @pytest.mark.parametrize(
        "kind", [TargetKind.INFRASTRUCTURE_SEED, TargetKind.MANAGED_CLUSTER]
    )
    def test_seed_targets(
        self,
        resolver: TargetResolver,
        seed: FakeCluster,
        kubeconfigs: list[str],
        kind: TargetKind,
    ) -> None:
        """cp and shoot terminals live in the shoot namespace on the seed."""
        with resolver.resolve(ALICE, "garden-dev", "shoot-a", kind) as resolved:
            assert resolved.client is seed
            assert resolved.namespace == "shoot--dev--shoot-a"
            assert resolved.server == "api.aws-eu1.garden.ingress.soil.example.org"
            assert resolved.owns_client

        assert kubeconfigs == [SEED_KUBECONFIG]
        assert seed.closed

    def test_seed_without_ingress_domain_closes_client(
        self, resolver: TargetResolver, garden: FakeCluster, seed: FakeCluster
    ) -> None:
        """The seed client is closed when the server cannot be computed."""
        del garden.objects[(SEED, None, "soil")]["spec"]["ingressDomain"]

        with pytest.raises(DependencyUnavailable, match="garden/aws-eu1"):
            resolver.resolve(ALICE, "garden-dev", "shoot-a", TargetKind.MANAGED_CLUSTER)

        assert seed.closed

    def test_unscheduled_shoot(self, resolver: TargetResolver, seed: FakeCluster) -> None:
        """A shoot without seed has no seed credentials."""
        with pytest.raises(
            DependencyUnavailable,
            match="could not fetch seed kubeconfig for shoot garden-dev/unscheduled",
        ):
            resolver.resolve(ALICE, "garden-dev", "unscheduled", TargetKind.MANAGED_CLUSTER)


class TestResolveForHeartbeat:
    """Tests for TargetResolver.resolve_for_heartbeat."""

    def test_garden_target(self, resolver: TargetResolver, garden: FakeCluster) -> None:
        """Garden heartbeats need no server."""
        resolved = resolver.resolve_for_heartbeat(
            ALICE, "garden-dev", "", TargetKind.CONTROL_PLANE
        )

        assert resolved.client is garden
        assert resolved.server is None

    def test_seed_target_skips_soil_lookup(
        self, resolver: TargetResolver, garden: FakeCluster, seed: FakeCluster
    ) -> None:
        """Heartbeats do not need the seed's own ingress domain."""
        del garden.objects[(SEED, None, "soil")]

        resolved = resolver.resolve_for_heartbeat(
            ALICE, "garden-dev", "shoot-a", TargetKind.INFRASTRUCTURE_SEED
        )

        assert resolved.client is seed
        assert resolved.namespace == "shoot--dev--shoot-a"
        assert resolved.server is None
