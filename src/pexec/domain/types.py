"""Value types flowing through the resolve -> list -> dispatch -> summarize pipeline.

All models are frozen. Nothing here talks to a cluster.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

from pexec.domain.errors import ConfigurationError, ErrorKind

LabelSet = dict[str, str]


class WorkloadKind(StrEnum):
    """Resource kinds pexec can resolve pods from."""

    DEPLOYMENT = "Deployment"
    STATEFULSET = "StatefulSet"
    DAEMONSET = "DaemonSet"
    POD = "Pod"

    @classmethod
    def parse(cls, token: str) -> WorkloadKind:
        """Map a CLI token (``deploy``, ``ss``, ``po``, ...) to a kind."""
        kind = _KIND_ALIASES.get(token.strip().lower())
        if kind is None:
            choices = ", ".join(sorted(_KIND_ALIASES))
            msg = f"Invalid workload type '{token}' (expected one of: {choices})"
            raise ConfigurationError(msg)
        return kind

    @property
    def is_controller(self) -> bool:
        return self is not WorkloadKind.POD


_KIND_ALIASES: dict[str, WorkloadKind] = {
    "deployment": WorkloadKind.DEPLOYMENT,
    "deploy": WorkloadKind.DEPLOYMENT,
    "statefulset": WorkloadKind.STATEFULSET,
    "ss": WorkloadKind.STATEFULSET,
    "daemonset": WorkloadKind.DAEMONSET,
    "ds": WorkloadKind.DAEMONSET,
    "pod": WorkloadKind.POD,
    "po": WorkloadKind.POD,
}


class TaskState(StrEnum):
    """Lifecycle of one per-pod task. No transition leaves a terminal state."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class WorkloadReference(BaseModel):
    """What the user asked to target. ``name`` is None only for kind Pod."""

    model_config = {"frozen": True}

    kind: WorkloadKind
    name: str | None = None
    namespace: str = "default"


class InstanceTarget(BaseModel):
    """One running pod, as returned by the pod listing."""

    model_config = {"frozen": True}

    name: str
    namespace: str


class ExecutionRequest(BaseModel):
    """The command to run in every pod.

    Attributes:
        command: Argv passed to the container runtime. Never empty.
        container: Explicit container name, or None to let the API pick
            the pod's only container.
        disambiguate_output: Prefix every output line with ``[pod-name]``.
    """

    model_config = {"frozen": True}

    command: tuple[str, ...]
    container: str | None = None
    disambiguate_output: bool = True

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value or not any(token.strip() for token in value):
            raise ValueError("command must contain at least one token")
        return value

    @property
    def display(self) -> str:
        return " ".join(self.command)


class ExecutionResult(BaseModel):
    """Outcome of one per-pod task. Exactly one per dispatched target."""

    model_config = {"frozen": True}

    instance_name: str
    succeeded: bool
    error: ErrorKind | None = None
    message: str | None = None
    exit_code: int | None = None
    duration_seconds: float = 0.0

    @model_validator(mode="after")
    def _error_iff_failed(self) -> ExecutionResult:
        if self.succeeded and self.error is not None:
            raise ValueError("a succeeded result cannot carry an error kind")
        if not self.succeeded and self.error is None:
            raise ValueError("a failed result needs an error kind")
        return self


class RunSummary(BaseModel):
    """Aggregate counts for one run.

    INVARIANT: ``succeeded + failed == total`` and
    ``len(failed_instances) == failed``, including ``total == 0``.
    """

    model_config = {"frozen": True}

    total: int = Field(ge=0)
    succeeded: int = Field(ge=0)
    failed: int = Field(ge=0)
    failed_instances: tuple[str, ...] = ()
    elapsed_seconds: float = Field(default=0.0, ge=0.0)

    @model_validator(mode="after")
    def _counts_add_up(self) -> RunSummary:
        if self.succeeded + self.failed != self.total:
            raise ValueError(
                f"succeeded ({self.succeeded}) + failed ({self.failed}) != total ({self.total})"
            )
        if len(self.failed_instances) != self.failed:
            raise ValueError("failed_instances does not match the failed count")
        return self

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0
