"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``PEXEC_*`` prefix (``PEXEC_EXEC__TIMEOUT_SECONDS=30``)
  3. TOML file    — ``pexec.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import logging
import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from pexec.config.discovery import find_config
from pexec.config.models import ClusterConfig, ExecConfig

logger = logging.getLogger(__name__)


_TOML_KEYS = frozenset({"cluster", "exec", "json_output", "quiet", "verbose", "log_json"})


def _read_toml(toml_path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(toml_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        import click

        msg = f"Invalid TOML in {toml_path}: {exc}"
        raise click.ClickException(msg) from exc


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read the ``[cluster]`` and ``[exec]`` tables, plus output flags, from ``pexec.toml``.

    Unknown top-level keys are dropped with a warning so a typo such as
    ``[exce]`` does not pass silently.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path is None or not toml_path.is_file():
            return
        raw = _read_toml(toml_path)
        unknown = sorted(set(raw) - _TOML_KEYS)
        if unknown:
            logger.warning("Ignoring unknown keys in %s: %s", toml_path, ", ".join(unknown))
        self._data = {k: v for k, v in raw.items() if k in _TOML_KEYS}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class PexecSettings(BaseSettings):
    """Settings for one pexec invocation, frozen after construction.

    Attributes:
        config_path: The ``pexec.toml`` that was loaded, if any.
        cluster: Kubeconfig, context, and namespace.
        exec: Concurrency, timeout, and exit-code policy.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "PEXEC_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- Output flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    exec: ExecConfig = Field(default_factory=ExecConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        cluster: dict[str, Any] | None = None,
        exec_options: dict[str, Any] | None = None,
        start: Path | None = None,
        **cli_flags: Any,
    ) -> PexecSettings:
        """Construct settings from a CLI invocation.

        *cluster* and *exec_options* hold only the flags the user actually
        passed; None values are dropped so they do not mask env/TOML values.
        Pydantic deep-merges nested sections across sources, so a single
        flag only replaces its own key.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        overrides: dict[str, Any] = {}
        for section, values in (("cluster", cluster), ("exec", exec_options)):
            passed = {k: v for k, v in (values or {}).items() if v is not None}
            if passed:
                overrides[section] = passed

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides, **cli_flags)
        finally:
            _tls.toml_path = None
