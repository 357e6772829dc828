"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ``pexec.toml`` only holds
overrides. An empty file (or no file) is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ClusterConfig(BaseModel):
    """[cluster] section."""

    model_config = {"frozen": True}

    kubeconfig: str | None = None
    context: str | None = None
    namespace: str = "default"

    @field_validator("namespace")
    @classmethod
    def _blank_namespace_is_default(cls, value: str) -> str:
        return value.strip() or "default"


class ExecConfig(BaseModel):
    """[exec] section.

    ``max_concurrency`` None means one worker per pod.
    ``timeout_seconds`` None or 0 means wait forever.
    """

    model_config = {"frozen": True}

    max_concurrency: int | None = Field(default=None, ge=1)
    timeout_seconds: float | None = Field(default=300.0, ge=0)
    strict: bool = False
    ignore_hostname: bool = False

    @property
    def effective_timeout(self) -> float | None:
        return self.timeout_seconds or None
