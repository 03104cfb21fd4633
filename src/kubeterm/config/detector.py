"""Configuration file detection for kubeterm."""

from __future__ import annotations

import os
from pathlib import Path


def detect_config(workspace: Path, home: Path | None = None) -> Path | None:
    """Detect the configuration file to use.

    Priority order:
    1. $KUBETERM_CONFIG
    2. kubeterm.json in the working directory
    3. ~/.config/kubeterm/config.json

    Args:
        workspace: Working directory.
        home: Home directory (defaults to the user's home).

    Returns:
        Path to the config file if found, None otherwise.
    """
    explicit = os.environ.get("KUBETERM_CONFIG")
    if explicit:
        return Path(explicit)

    home = home or Path.home()
    candidates = [
        workspace / "kubeterm.json",
        home / ".config" / "kubeterm" / "config.json",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None
