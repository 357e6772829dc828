"""ExecutionOrchestrator — one concurrent task per pod, one result per task.

Fan-out runs on a ``ThreadPoolExecutor``. Leaving the pool's context
manager is the completion barrier: :meth:`ExecutionOrchestrator.dispatch`
returns only after every task has appended its result.

INVARIANT: every dispatched target yields exactly one ExecutionResult.
A task's failure is data, never control flow; siblings are not cancelled.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

import structlog

from pexec.domain.errors import ErrorKind, ExecutionError
from pexec.domain.types import ExecutionResult, TaskState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pexec.domain.types import ExecutionRequest, InstanceTarget
    from pexec.infrastructure.executor import RemoteExecutor

log = structlog.get_logger(__name__)


class _ResultCollector:
    """Append-only result list guarded by a lock.

    Appending is the only cross-task write; everything else a task
    touches is local to it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: list[ExecutionResult] = []
        self._failed = 0

    def add(self, result: ExecutionResult) -> None:
        with self._lock:
            self._results.append(result)
            if not result.succeeded:
                self._failed += 1

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    def snapshot(self) -> list[ExecutionResult]:
        with self._lock:
            return list(self._results)


class ExecutionOrchestrator:
    """Dispatch one request to many pods at once.

    Parameters:
        max_concurrency: Cap on simultaneous execs. None runs every pod
            at once (one worker per target).
    """

    def __init__(self, *, max_concurrency: int | None = None) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._max_concurrency = max_concurrency

    def dispatch(
        self,
        targets: Sequence[InstanceTarget],
        request: ExecutionRequest,
        executor: RemoteExecutor,
    ) -> list[ExecutionResult]:
        """Run *request* on every target; results come back in completion order."""
        if not targets:
            return []

        workers = len(targets)
        if self._max_concurrency is not None:
            workers = min(workers, self._max_concurrency)

        collector = _ResultCollector()
        log.debug("dispatch.start", targets=len(targets), workers=workers, command=request.display)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pexec") as pool:
            futures: list[tuple[InstanceTarget, Future[None]]] = []
            for target in targets:
                log.debug(
                    "task.state",
                    pod=target.name,
                    namespace=target.namespace,
                    state=TaskState.PENDING,
                )
                future = pool.submit(self._run_one, target, request, executor, collector)
                futures.append((target, future))

        for target, future in futures:
            exc = future.exception()
            if exc is not None:
                log.warning("task.lost", pod=target.name, error=repr(exc))
                collector.add(_internal_result(target, exc, 0.0))

        results = collector.snapshot()
        log.debug("dispatch.done", results=len(results), failed=collector.failed)
        return results

    @staticmethod
    def _run_one(
        target: InstanceTarget,
        request: ExecutionRequest,
        executor: RemoteExecutor,
        collector: _ResultCollector,
    ) -> None:
        task_log = log.bind(pod=target.name, namespace=target.namespace)
        task_log.debug("task.state", state=TaskState.RUNNING)
        started = time.monotonic()

        try:
            exit_code = executor.exec(target, request)
            succeeded = exit_code == 0
            result = ExecutionResult(
                instance_name=target.name,
                succeeded=succeeded,
                error=None if succeeded else ErrorKind.COMMAND_FAILED,
                message=None if succeeded else f"command exited with code {exit_code}",
                exit_code=exit_code,
                duration_seconds=time.monotonic() - started,
            )
        except ExecutionError as exc:
            result = ExecutionResult(
                instance_name=target.name,
                succeeded=False,
                error=exc.kind,
                message=exc.message,
                exit_code=exc.exit_code,
                duration_seconds=time.monotonic() - started,
            )
        except Exception as exc:
            task_log.warning("task.crashed", exc_info=True)
            result = _internal_result(target, exc, time.monotonic() - started)

        state = TaskState.SUCCEEDED if result.succeeded else TaskState.FAILED
        task_log.debug(
            "task.state",
            state=state,
            error=result.error,
            duration_s=round(result.duration_seconds, 3),
        )
        collector.add(result)


def _internal_result(target: InstanceTarget, exc: BaseException, duration: float) -> ExecutionResult:
    return ExecutionResult(
        instance_name=target.name,
        succeeded=False,
        error=ErrorKind.INTERNAL,
        message=f"{type(exc).__name__}: {exc}",
        duration_seconds=duration,
    )
