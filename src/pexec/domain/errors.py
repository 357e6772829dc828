"""Error taxonomy for a pexec run.

Two phases, two propagation rules:

- Resolution phase (argument parsing, workload lookup, pod listing):
  errors stop the pipeline before anything is dispatched.
- Dispatch phase: :class:`ExecutionError` is scoped to one pod. The
  orchestrator turns it into a failed result and siblings keep running.

Every error carries a stable ``code`` that ends up in
``ServiceError.code`` and the JSON output.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Why a single pod's execution failed."""

    COMMAND_FAILED = "command_failed"
    TRANSPORT = "transport"
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class PexecError(Exception):
    """Base class for every error pexec raises on purpose."""

    code = "PEXEC"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(PexecError):
    """Invalid invocation: bad kind token, missing selector, too few args."""

    code = "CONFIGURATION"


class ResourceResolutionError(PexecError):
    """The workload or its pods could not be resolved."""

    code = "RESOLUTION"


class ResourceNotFoundError(ResourceResolutionError):
    code = "NOT_FOUND"


class AccessError(ResourceResolutionError):
    code = "ACCESS_DENIED"


class TransportError(ResourceResolutionError):
    code = "TRANSPORT"


class FatalError(PexecError):
    """The cluster client or its configuration could not be built at all."""

    code = "CLIENT_CONFIG"


class ExecutionError(PexecError):
    """A command in one pod failed. Never escapes the orchestrator."""

    code = "EXECUTION"

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.exit_code = exit_code
