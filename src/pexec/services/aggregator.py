"""ResultAggregator — fold per-pod results into one RunSummary."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from pexec.domain.types import ExecutionResult, RunSummary


class ResultAggregator:
    """Summarize a finished dispatch.

    Parameters:
        clock: Monotonic clock, in seconds. Must be the clock that produced
            the ``start_time`` passed to :meth:`summarize`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock

    def summarize(self, results: Sequence[ExecutionResult], start_time: float) -> RunSummary:
        """Count results and measure wall-clock time since *start_time*.

        ``failed_instances`` keeps the order of *results*, which is
        completion order when they come from the orchestrator.
        """
        failed_instances = tuple(r.instance_name for r in results if not r.succeeded)
        total = len(results)
        return RunSummary(
            total=total,
            succeeded=total - len(failed_instances),
            failed=len(failed_instances),
            failed_instances=failed_instances,
            elapsed_seconds=max(0.0, self._clock() - start_time),
        )
