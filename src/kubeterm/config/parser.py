"""Configuration file parsing for kubeterm."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from kubeterm.config.models import TerminalConfig
from kubeterm.terminal.exceptions import ConfigurationError


class ConfigError(ConfigurationError):
    """The configuration file cannot be read or is malformed."""

    pass


# camelCase keys as written by the dashboard's own configuration
_ALIASES = {
    "containerName": "container_name",
    "attachClusterRole": "attach_cluster_role",
    "adminClusterRole": "admin_cluster_role",
    "readinessTimeout": "readiness_timeout",
    "operationTimeout": "operation_timeout",
    "cleanupTimeout": "cleanup_timeout",
    "ocTimeout": "oc_timeout",
    "gardenApiHosts": "garden_api_hosts",
}

_FLOAT_FIELDS = {
    "readiness_timeout",
    "operation_timeout",
    "cleanup_timeout",
    "oc_timeout",
}


def _from_dashboard_layout(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten the dashboard's nested "terminal" section, if present."""
    terminal = data.get("terminal")
    if not isinstance(terminal, dict):
        return data

    flat = {k: v for k, v in data.items() if k != "terminal"}
    operator = terminal.get("operator") or {}
    if "image" in operator:
        flat["image"] = operator["image"]
    garden = terminal.get("gardenClusterKubeApiserver") or {}
    if "hosts" in garden:
        flat["garden_api_hosts"] = garden["hosts"]
    return flat


def parse_config(config_file: Path | None) -> TerminalConfig:
    """Parse a configuration file into a TerminalConfig.

    Environment variables KUBETERM_IMAGE and KUBETERM_GARDEN_API_HOST
    override the file. A missing file yields the defaults plus overrides.

    Args:
        config_file: Path to a JSON configuration file, or None.

    Returns:
        The parsed configuration (not yet validated).

    Raises:
        ConfigError: If the file cannot be read or has invalid content.
    """
    data: dict[str, Any] = {}
    if config_file is not None:
        try:
            loaded = json.loads(config_file.read_text())
        except OSError as e:
            raise ConfigError(f"Cannot read {config_file}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_file}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_file} must contain a JSON object")
        data = _from_dashboard_layout(loaded)

    values: dict[str, Any] = {}
    known = set(TerminalConfig.__dataclass_fields__)
    for key, value in data.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            raise ConfigError(f"Unknown configuration key: {key}")
        values[name] = value

    if "garden_api_hosts" in values:
        hosts = values["garden_api_hosts"]
        if isinstance(hosts, str):
            hosts = [hosts]
        if not isinstance(hosts, list):
            raise ConfigError("garden_api_hosts must be a list of hosts")
        values["garden_api_hosts"] = [str(h) for h in hosts]

    for name in _FLOAT_FIELDS & values.keys():
        try:
            values[name] = float(values[name])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name} must be a number") from e

    image = os.environ.get("KUBETERM_IMAGE")
    if image:
        values["image"] = image
    host = os.environ.get("KUBETERM_GARDEN_API_HOST")
    if host:
        values["garden_api_hosts"] = [host]

    return TerminalConfig(**values)
