"""ServiceResult and ServiceError — what the CLI layer consumes.

INVARIANT: ``RunService.run`` always returns a ServiceResult; expected
failures become ``ok=False`` results instead of escaping as exceptions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from pexec.domain.errors import PexecError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: PexecError, **detail: Any) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail=detail)


class ServiceResult(BaseModel):
    """Return type of a pipeline run.

    Attributes:
        ok: False only when the run stopped before dispatch.
        op: Operation name (``"pexec"``).
        data: Summary counts and per-pod results on success.
        warnings: One entry per pod that failed.
        error: Structured error if ``ok`` is False.
        meta: Workload, selector, and command that were run.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(cls, op: str, exc: PexecError, **detail: Any) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError.from_exception(exc, **detail))
