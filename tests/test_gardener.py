"""Tests for the Gardener collaborators."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fakes import SEED_KUBECONFIG, FakeCluster, b64

from kubeterm.cluster.exceptions import OcError
from kubeterm.gardener import (
    SEED,
    SHOOT,
    AdminAuthorization,
    ShootMetadataLookup,
    project_name,
    seed_ingress_domain,
)
from kubeterm.terminal.exceptions import DependencyUnavailable
from kubeterm.terminal.session import Caller


class TestHelpers:
    """Tests for naming helpers."""

    def test_project_name(self) -> None:
        """Project names drop the garden- prefix."""
        assert project_name("garden-dev") == "dev"
        assert project_name("garden") == "garden"
        assert project_name("team") == "team"

    def test_seed_ingress_domain(self) -> None:
        """Both the current and the legacy seed layout are read."""
        assert seed_ingress_domain({"spec": {"ingressDomain": "a"}}) == "a"
        assert seed_ingress_domain({"spec": {"dns": {"ingressDomain": "b"}}}) == "b"
        assert seed_ingress_domain({"spec": {}}) is None


class TestAdminAuthorization:
    """Tests for AdminAuthorization."""

    def test_asks_can_i_as_caller(self) -> None:
        """The caller is impersonated for the check."""
        client = MagicMock()
        client.can_i.return_value = True

        assert AdminAuthorization(client).is_admin(Caller(id="alice", groups=("ops",)))

        client.can_i.assert_called_once_with(
            "*", "*", all_namespaces=True, as_user="alice", as_groups=("ops",)
        )

    def test_not_admin(self) -> None:
        """A negative answer means not admin."""
        client = MagicMock()
        client.can_i.return_value = False

        assert not AdminAuthorization(client).is_admin(Caller(id="eve"))


class TestShootMetadataLookup:
    """Tests for ShootMetadataLookup."""

    def test_read_shoot(self, garden: FakeCluster) -> None:
        """read_shoot returns the shoot."""
        shoot = ShootMetadataLookup(garden).read_shoot("garden-dev", "shoot-a")
        assert shoot["spec"]["seedName"] == "aws-eu1"

    def test_read_missing_shoot(self, garden: FakeCluster) -> None:
        """A missing shoot is a DependencyUnavailable."""
        with pytest.raises(DependencyUnavailable, match="garden-dev/nope not found"):
            ShootMetadataLookup(garden).read_shoot("garden-dev", "nope")

    def test_read_shoot_error(self) -> None:
        """Cluster errors are wrapped."""
        client = MagicMock()
        client.get.side_effect = OcError("timeout")

        with pytest.raises(DependencyUnavailable, match="timeout"):
            ShootMetadataLookup(client).read_shoot("garden-dev", "shoot-a")

    def test_seed_kubeconfig(self, garden: FakeCluster) -> None:
        """The seed kubeconfig and technical namespace are returned."""
        lookup = ShootMetadataLookup(garden)
        shoot = lookup.read_shoot("garden-dev", "shoot-a")

        credentials = lookup.get_seed_kubeconfig_for_shoot(shoot)

        assert credentials is not None
        assert credentials.kubeconfig == SEED_KUBECONFIG
        assert credentials.namespace == "shoot--dev--shoot-a"
        assert credentials.seed["metadata"]["name"] == "aws-eu1"

    def test_namespace_without_technical_id(self, garden: FakeCluster) -> None:
        """Without technicalID the namespace is derived from project and name."""
        garden.add(
            SHOOT,
            {"metadata": {"name": "old", "namespace": "garden-dev"},
             "spec": {"cloud": {"seed": "aws-eu1"}}},
            "garden-dev",
        )
        lookup = ShootMetadataLookup(garden)

        credentials = lookup.get_seed_kubeconfig_for_shoot(
            lookup.read_shoot("garden-dev", "old")
        )

        assert credentials is not None
        assert credentials.namespace == "shoot--dev--old"

    def test_unscheduled_shoot(self, garden: FakeCluster) -> None:
        """A shoot without seed yields None."""
        lookup = ShootMetadataLookup(garden)
        shoot = lookup.read_shoot("garden-dev", "unscheduled")
        assert lookup.get_seed_kubeconfig_for_shoot(shoot) is None

    def test_seed_without_secret(self, garden: FakeCluster) -> None:
        """A seed without kubeconfig secret yields None."""
        del garden.objects[("secret", "garden", "seed-aws-eu1")]
        lookup = ShootMetadataLookup(garden)
        shoot = lookup.read_shoot("garden-dev", "shoot-a")
        assert lookup.get_seed_kubeconfig_for_shoot(shoot) is None

    def test_secret_without_kubeconfig(self, garden: FakeCluster) -> None:
        """A secret without kubeconfig key yields None."""
        garden.objects[("secret", "garden", "seed-aws-eu1")]["data"] = {
            "token": b64("x"),
        }
        lookup = ShootMetadataLookup(garden)
        shoot = lookup.read_shoot("garden-dev", "shoot-a")
        assert lookup.get_seed_kubeconfig_for_shoot(shoot) is None

    def test_missing_seed(self, garden: FakeCluster) -> None:
        """A seed that cannot be read is a DependencyUnavailable."""
        del garden.objects[(SEED, None, "aws-eu1")]
        lookup = ShootMetadataLookup(garden)
        shoot = lookup.read_shoot("garden-dev", "shoot-a")

        with pytest.raises(DependencyUnavailable, match="aws-eu1"):
            lookup.get_seed_kubeconfig_for_shoot(shoot)

    def test_shoot_ingress_domain(self, garden: FakeCluster) -> None:
        """A shoot's ingress domain is name.project.seed-domain."""
        lookup = ShootMetadataLookup(garden)
        shoot = lookup.read_shoot("garden-dev", "shoot-a")

        assert lookup.shoot_ingress_domain(shoot) == "shoot-a.dev.ingress.aws-eu1.example.org"
