"""Tests for finding existing terminal sessions."""

from __future__ import annotations

from typing import Any

from fakes import FakeCluster

from kubeterm.session_discovery import (
    attach_service_account_name,
    find_existing_terminal,
    find_terminal_pod,
)
from kubeterm.terminal.resources import ANNOTATION_TARGET, ANNOTATION_USER


def _pod(
    name: str,
    user: str = "alice",
    target: str = "garden",
    phase: str = "Running",
    owner: str | None = "terminal-attach-garden-x",
    component: str = "dashboard-terminal",
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "name": name,
        "labels": {"component": component},
        "annotations": {ANNOTATION_USER: user, ANNOTATION_TARGET: target},
    }
    if owner:
        metadata["ownerReferences"] = [
            {"apiVersion": "v1", "kind": "ServiceAccount", "name": owner, "uid": "u"},
        ]
    return {"metadata": metadata, "status": {"phase": phase}}


def _cluster(*pods: dict[str, Any]) -> FakeCluster:
    cluster = FakeCluster()
    for pod in pods:
        cluster.add("pod", pod, "ns")
    return cluster


class TestAttachServiceAccountName:
    """Tests for attach_service_account_name."""

    def test_first_service_account_owner(self) -> None:
        """The first ServiceAccount owner reference is used."""
        pod = _pod("p")
        pod["metadata"]["ownerReferences"].insert(
            0, {"kind": "ReplicaSet", "name": "rs"}
        )
        assert attach_service_account_name(pod) == "terminal-attach-garden-x"

    def test_no_owner(self) -> None:
        """Pods without owner have no attach account."""
        assert attach_service_account_name(_pod("p", owner=None)) is None


class TestFindTerminalPod:
    """Tests for find_terminal_pod."""

    def test_matches_user_and_target(self) -> None:
        """Only pods of the same user and target match."""
        cluster = _cluster(
            _pod("bob", user="bob"),
            _pod("cp", target="cp"),
            _pod("mine"),
        )

        pod = find_terminal_pod(cluster, "ns", "alice", "garden")

        assert pod is not None
        assert pod["metadata"]["name"] == "mine"

    def test_ignores_finished_pods(self) -> None:
        """Failed and succeeded pods are not found."""
        cluster = _cluster(_pod("a", phase="Failed"), _pod("b", phase="Succeeded"))
        assert find_terminal_pod(cluster, "ns", "alice", "garden") is None

    def test_pending_pods(self) -> None:
        """Pending pods are found by default."""
        cluster = _cluster(_pod("a", phase="Pending"))
        assert find_terminal_pod(cluster, "ns", "alice", "garden") is not None

    def test_phase_filter(self) -> None:
        """Phases can be narrowed to running pods."""
        cluster = _cluster(_pod("a", phase="Pending"))
        assert find_terminal_pod(
            cluster, "ns", "alice", "garden", phases=("Running",)
        ) is None

    def test_ignores_other_components(self) -> None:
        """Pods without the terminal label are not listed."""
        cluster = _cluster(_pod("a", component="other"))
        assert find_terminal_pod(cluster, "ns", "alice", "garden") is None


class TestFindExistingTerminal:
    """Tests for find_existing_terminal."""

    def test_found(self) -> None:
        """A live pod with an owner is reusable."""
        cluster = _cluster(_pod("terminal-x"))

        existing = find_existing_terminal(cluster, "ns", "alice", "garden")

        assert existing is not None
        assert existing.pod == "terminal-x"
        assert existing.attach_service_account == "terminal-attach-garden-x"

    def test_without_owner(self) -> None:
        """A pod without owner is not reusable."""
        cluster = _cluster(_pod("terminal-x", owner=None))
        assert find_existing_terminal(cluster, "ns", "alice", "garden") is None
