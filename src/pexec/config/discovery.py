"""Config file discovery.

Two files matter to pexec:

- ``pexec.toml`` — tool defaults, found via walk-up (like git finds
  ``.git/``), or the ``PEXEC_CONFIG`` env var.
- the kubeconfig — explicit path, else ``~/.kube/config`` when it exists.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "pexec.toml"
CONFIG_ENV_VAR = "PEXEC_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for pexec.toml.

    Returns the path to the config file, or None if not found.
    Checks PEXEC_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def default_kubeconfig(home: Path | None = None) -> Path:
    return (home or Path.home()) / ".kube" / "config"


def resolve_kubeconfig(explicit: str | None, *, home: Path | None = None) -> Path | None:
    """Pick the kubeconfig file to load.

    The explicit path always wins, even if it does not exist (the loader
    reports that). The per-user default is used only when no explicit path
    is given and the file is actually there. None means "try in-cluster".
    """
    if explicit:
        return Path(explicit).expanduser()
    fallback = default_kubeconfig(home)
    if fallback.is_file():
        return fallback
    return None
