"""Cluster access through the oc CLI."""

from __future__ import annotations

import json
import os
import subprocess
import tempfile
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from kubeterm.cluster.exceptions import (
    OcError,
    OcNotInstalledError,
    OcNotLoggedInError,
    OcTimeoutError,
    ResourceNotFoundError,
)


def _is_not_found(stderr: str) -> bool:
    return "(NotFound)" in stderr or "not found" in stderr


class OcWatch:
    """Polling watch over a single named object.

    Yields the object every poll interval, or None while it does not
    exist, until close() is called. With a timeout, every poll gets only
    the time left and the stream ends once that is used up.
    """

    def __init__(
        self,
        client: OcClient,
        kind: str,
        name: str,
        namespace: str | None,
        interval: float,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._kind = kind
        self._name = name
        self._namespace = namespace
        self._interval = interval
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._closed = False

    def _remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return self._expires_at - time.monotonic()

    def __iter__(self) -> Iterator[dict[str, Any] | None]:
        while not self._closed:
            remaining = self._remaining()
            if remaining is not None and remaining <= 0:
                return
            try:
                yield self._client.get(
                    self._kind, self._name, self._namespace, timeout=remaining
                )
            except ResourceNotFoundError:
                yield None
            except OcTimeoutError:
                if remaining is None:
                    raise
                return
            if self._closed:
                break
            remaining = self._remaining()
            time.sleep(
                self._interval if remaining is None
                else max(0.0, min(self._interval, remaining))
            )

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> OcWatch:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class OcClient:
    """Resource client backed by the oc CLI.

    Every call runs one oc command with JSON output. A client may point at
    a kubeconfig context, at an explicit kubeconfig file, and may
    impersonate another user.
    """

    # Default timeout for oc commands (seconds)
    OC_DEFAULT_TIMEOUT = 30

    # Seconds between two snapshots of a watched object
    WATCH_POLL_INTERVAL = 1.0

    def __init__(
        self,
        context: str | None = None,
        kubeconfig: Path | None = None,
        timeout: float | None = None,
        owns_kubeconfig: bool = False,
    ) -> None:
        """Initialize the client.

        Args:
            context: Kubeconfig context to use (None for current context).
            kubeconfig: Explicit kubeconfig file (None for the default).
            timeout: Default timeout for oc commands in seconds.
            owns_kubeconfig: Remove the kubeconfig file on close().
        """
        self._context = context
        self._kubeconfig = kubeconfig
        self._timeout = timeout if timeout is not None else self.OC_DEFAULT_TIMEOUT
        self._owns_kubeconfig = owns_kubeconfig

    @classmethod
    def from_kubeconfig(cls, content: str, timeout: float | None = None) -> OcClient:
        """Build a client from kubeconfig content.

        The content is written to a private temporary file which is removed
        again when the client is closed.

        Args:
            content: Kubeconfig YAML or JSON.
            timeout: Default timeout for oc commands in seconds.

        Returns:
            A client talking to the cluster described by the kubeconfig.
        """
        fd, path = tempfile.mkstemp(prefix="kubeterm-", suffix=".kubeconfig")
        with os.fdopen(fd, "w") as f:
            f.write(content)
        return cls(kubeconfig=Path(path), timeout=timeout, owns_kubeconfig=True)

    @property
    def kubeconfig(self) -> Path | None:
        return self._kubeconfig

    def close(self) -> None:
        if self._owns_kubeconfig and self._kubeconfig is not None:
            self._kubeconfig.unlink(missing_ok=True)
            self._owns_kubeconfig = False

    def __enter__(self) -> OcClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _command(self, args: tuple[str, ...]) -> list[str]:
        cmd = ["oc"]
        if self._kubeconfig is not None:
            cmd.extend(["--kubeconfig", str(self._kubeconfig)])
        if self._context:
            cmd.extend(["--context", self._context])
        cmd.extend(args)
        return cmd

    def _timeout_for(self, timeout: float | None) -> float | None:
        # None inherits the client timeout, 0 waits forever
        if timeout is None:
            return self._timeout
        return timeout or None

    def run(
        self,
        *args: str,
        capture: bool = True,
        check: bool = True,
        input_data: str | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run one oc command against the client's cluster.

        Args:
            *args: Arguments after the global --kubeconfig/--context flags.
            capture: Capture stdout and stderr.
            check: Raise when oc exits non-zero.
            input_data: Text piped to stdin.
            timeout: Seconds for this command; None for the client timeout.

        Raises:
            OcNotInstalledError: If there is no oc binary.
            OcTimeoutError: If the command does not finish in time.
            OcError: If check is set and the command fails.
        """
        timeout_value = self._timeout_for(timeout)
        try:
            result = subprocess.run(
                self._command(args),
                capture_output=capture,
                text=True,
                input=input_data,
                timeout=timeout_value,
            )
        except subprocess.TimeoutExpired:
            raise OcTimeoutError(
                f"oc {' '.join(args)} timed out after {timeout_value:g}s; "
                "the cluster may be unreachable"
            ) from None
        except FileNotFoundError as e:
            raise OcNotInstalledError(
                "oc CLI not found. Put an oc (or kubectl compatible) binary on PATH"
            ) from e

        if check and result.returncode != 0:
            action = " ".join(args[:2])
            if not capture:
                raise OcError(f"oc {action} failed")
            self._raise_for(result, action)
        return result

    def can_i(
        self,
        verb: str,
        resource: str,
        all_namespaces: bool = False,
        as_user: str | None = None,
        as_groups: tuple[str, ...] = (),
    ) -> bool:
        """Ask the API server whether a user may perform an action.

        Returns:
            True if the answer is "yes".
        """
        args = ["auth", "can-i", verb, resource]
        if all_namespaces:
            args.append("--all-namespaces")
        if as_user:
            args.extend(["--as", as_user])
            for group in as_groups:
                args.extend(["--as-group", group])
        result = self.run(*args, check=False)
        answer = result.stdout.strip()
        if result.returncode != 0 and answer != "no":
            self._raise_for(result, f"auth can-i {verb} {resource}")
        return answer == "yes"

    def get(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        result = self.run(
            "get", kind, name,
            *self._namespace_args(namespace),
            "-o", "json",
            check=False,
            timeout=timeout,
        )
        if result.returncode != 0:
            if _is_not_found(result.stderr):
                raise ResourceNotFoundError(kind, name, namespace)
            self._raise_for(result, f"get {kind}/{name}")
        return self._load(result.stdout)

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        args = ["get", kind, *self._namespace_args(namespace), "-o", "json"]
        if label_selector:
            args.extend(["-l", label_selector])
        result = self.run(*args)
        data = self._load(result.stdout)
        items: list[dict[str, Any]] = data.get("items") or []
        return items

    def watch(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> OcWatch:
        return OcWatch(
            self, kind, name, namespace, self.WATCH_POLL_INTERVAL, timeout=timeout
        )

    def create(
        self,
        body: dict[str, Any],
        namespace: str | None = None,
    ) -> dict[str, Any]:
        # create, not apply: apply does not support metadata.generateName
        result = self.run(
            "create", "-f", "-",
            *self._namespace_args(namespace),
            "-o", "json",
            input_data=json.dumps(body),
        )
        return self._load(result.stdout)

    def patch(
        self,
        kind: str,
        name: str,
        body: dict[str, Any],
        namespace: str | None = None,
    ) -> dict[str, Any]:
        result = self.run(
            "patch", kind, name,
            *self._namespace_args(namespace),
            "--type", "merge",
            "-p", json.dumps(body),
            "-o", "json",
            check=False,
        )
        if result.returncode != 0:
            if _is_not_found(result.stderr):
                raise ResourceNotFoundError(kind, name, namespace)
            self._raise_for(result, f"patch {kind}/{name}")
        return self._load(result.stdout)

    def delete(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        timeout: float | None = None,
    ) -> None:
        result = self.run(
            "delete", kind, name,
            *self._namespace_args(namespace),
            "--cascade=background",
            "--wait=false",
            check=False,
            timeout=timeout,
        )
        if result.returncode != 0:
            if _is_not_found(result.stderr):
                raise ResourceNotFoundError(kind, name, namespace)
            self._raise_for(result, f"delete {kind}/{name}")

    @staticmethod
    def _namespace_args(namespace: str | None) -> list[str]:
        return ["-n", namespace] if namespace else []

    @staticmethod
    def _load(stdout: str) -> dict[str, Any]:
        try:
            data: dict[str, Any] = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise OcError(f"oc returned invalid JSON: {e}") from e
        return data

    @staticmethod
    def _raise_for(result: subprocess.CompletedProcess[str], action: str) -> None:
        stderr = result.stderr or ""
        if "error: You must be logged in" in stderr:
            raise OcNotLoggedInError(
                "Not logged in to the cluster. Run: oc login <cluster-url>"
            )
        raise OcError(f"oc {action} failed: {stderr}")
