"""Invocation — the positional arguments parsed once into an immutable request.

Shapes accepted::

    <controller-kind> <name> <command...>
    pod <command...>                        (requires a label selector)
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ValidationError

from pexec.domain.errors import ConfigurationError
from pexec.domain.labels import parse_labels
from pexec.domain.types import ExecutionRequest, LabelSet, WorkloadKind, WorkloadReference

DEFAULT_NAMESPACE = "default"


class Invocation(BaseModel):
    """Everything a run needs, built before any component executes."""

    model_config = {"frozen": True}

    reference: WorkloadReference
    request: ExecutionRequest
    selector: LabelSet | None = None


def parse_invocation(
    args: Sequence[str],
    *,
    labels: str | None = None,
    container: str | None = None,
    namespace: str | None = None,
    ignore_hostname: bool = False,
) -> Invocation:
    """Validate positional *args* and flags into an :class:`Invocation`.

    Raises:
        ConfigurationError: unknown kind, missing ``--labels`` for pods,
            malformed labels, or too few positional arguments.
    """
    if not args:
        raise ConfigurationError("Missing workload type and command")

    kind = WorkloadKind.parse(args[0])
    ns = namespace or DEFAULT_NAMESPACE

    selector: LabelSet | None = None
    if not kind.is_controller:
        if not labels or not labels.strip():
            raise ConfigurationError("Pod type needs flag --labels. Please check -h.")
        selector = parse_labels(labels)
        if not selector:
            raise ConfigurationError("Pod type needs a non-empty --labels selector")
        name = None
        command = list(args[1:])
    else:
        if len(args) < 3:
            msg = f"{kind} needs a name and a command: pexec {args[0]} <name> <command...>"
            raise ConfigurationError(msg)
        name = args[1]
        command = list(args[2:])

    if not command:
        raise ConfigurationError("No command given")

    try:
        request = ExecutionRequest(
            command=tuple(command),
            container=container or None,
            disambiguate_output=not ignore_hostname,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid command: {exc.errors()[0]['msg']}") from exc

    return Invocation(
        reference=WorkloadReference(kind=kind, name=name, namespace=ns),
        request=request,
        selector=selector,
    )
