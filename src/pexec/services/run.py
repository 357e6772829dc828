"""RunService — the full pipeline for one invocation.

resolve -> list -> dispatch -> summarize. Resolution errors stop the run
before anything is dispatched; dispatch failures only change counts.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from pexec.domain.errors import ConfigurationError, ResourceResolutionError
from pexec.domain.labels import selector_from_labels
from pexec.services.aggregator import ResultAggregator
from pexec.services.base import BaseService
from pexec.services.lister import InstanceLister
from pexec.services.orchestrator import ExecutionOrchestrator
from pexec.services.resolver import WorkloadResolver
from pexec.services.result import ServiceResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from pexec.domain.invocation import Invocation
    from pexec.domain.types import ExecutionResult, RunSummary
    from pexec.infrastructure.cluster import ClusterReader
    from pexec.infrastructure.executor import RemoteExecutor

logger = logging.getLogger(__name__)

OP = "pexec"


class RunService(BaseService):
    """Wire resolver, lister, orchestrator, and aggregator together.

    Parameters:
        cluster: Read access for workload and pod lookups.
        executor: Remote exec capability handed to every task.
        max_concurrency: Forwarded to :class:`ExecutionOrchestrator`.
        clock: Monotonic clock shared by the run timer and the aggregator.
    """

    def __init__(
        self,
        cluster: ClusterReader,
        executor: RemoteExecutor,
        *,
        max_concurrency: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(cluster)
        self._executor = executor
        self._clock = clock
        self._orchestrator = ExecutionOrchestrator(max_concurrency=max_concurrency)
        self._aggregator = ResultAggregator(clock)

    def run(self, invocation: Invocation) -> ServiceResult:
        ref = invocation.reference
        meta: dict[str, Any] = {
            "kind": str(ref.kind),
            "name": ref.name,
            "namespace": ref.namespace,
            "command": list(invocation.request.command),
        }

        try:
            labels = WorkloadResolver(self._cluster).resolve(ref, invocation.selector)
            meta["selector"] = selector_from_labels(labels)
            targets = InstanceLister(self._cluster).list(ref.namespace, labels)
        except (ConfigurationError, ResourceResolutionError) as exc:
            logger.debug("Resolution failed: %s", exc.message)
            return ServiceResult.failure(OP, exc, **meta)

        start = self._clock()
        results = self._orchestrator.dispatch(targets, invocation.request, self._executor)
        summary = self._aggregator.summarize(results, start)

        return ServiceResult(
            ok=True,
            op=OP,
            data=_summary_payload(summary, results),
            warnings=[_failure_line(r) for r in results if not r.succeeded],
            meta=meta,
        )


def _summary_payload(summary: RunSummary, results: list[ExecutionResult]) -> dict[str, Any]:
    data = summary.model_dump(mode="json")
    data["results"] = [r.model_dump(mode="json") for r in results]
    return data


def _failure_line(result: ExecutionResult) -> str:
    reason = result.message or str(result.error)
    return f"{result.instance_name}: {result.error} ({reason})"
