"""Shared pytest fixtures and test doubles for pexec tests."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from typing import Any

import pytest
from click.testing import CliRunner

from pexec.domain.errors import ErrorKind, ExecutionError, PexecError, ResourceNotFoundError
from pexec.domain.types import ExecutionRequest, InstanceTarget, LabelSet, WorkloadKind


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real ``pexec.toml`` files and ``PEXEC_*`` env vars out of tests."""
    for var in ("PEXEC_CONFIG", "PEXEC_EXEC__STRICT", "PEXEC_CLUSTER__NAMESPACE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeCluster:
    """In-memory ClusterReader.

    Parameters:
        workloads: ``{(kind, namespace, name): labels}``.
        pods: ``{namespace: [(name, labels), ...]}``.
        fail_with: Raised from every call when set.
    """

    def __init__(
        self,
        workloads: dict[tuple[WorkloadKind, str, str], LabelSet] | None = None,
        pods: dict[str, list[tuple[str, LabelSet]]] | None = None,
        *,
        fail_with: PexecError | None = None,
    ) -> None:
        self.workloads = workloads or {}
        self.pods = pods or {}
        self.fail_with = fail_with
        self.read_calls: list[tuple[WorkloadKind, str, str]] = []
        self.list_calls: list[tuple[str, str]] = []
        self.closed = False

    def read_workload_labels(self, kind: WorkloadKind, name: str, namespace: str) -> LabelSet:
        self.read_calls.append((kind, name, namespace))
        if self.fail_with is not None:
            raise self.fail_with
        try:
            return dict(self.workloads[(kind, namespace, name)])
        except KeyError:
            raise ResourceNotFoundError(f"{kind} {namespace}/{name} not found") from None

    def list_pod_names(self, namespace: str, label_selector: str) -> list[str]:
        self.list_calls.append((namespace, label_selector))
        if self.fail_with is not None:
            raise self.fail_with
        wanted = dict(pair.split("=", 1) for pair in label_selector.split(",") if pair)
        return [
            name
            for name, labels in self.pods.get(namespace, [])
            if all(labels.get(k) == v for k, v in wanted.items())
        ]

    def close(self) -> None:
        self.closed = True


class RecordingExecutor:
    """RemoteExecutor that records calls and fails on demand.

    Parameters:
        failures: Pod names that raise ``ExecutionError(COMMAND_FAILED)``.
        delay: Seconds each exec blocks, to observe concurrency.
        crash: Pod names that raise a plain ``RuntimeError``.
    """

    def __init__(
        self,
        failures: Iterable[str] = (),
        *,
        delay: float = 0.0,
        crash: Iterable[str] = (),
    ) -> None:
        self.failures = set(failures)
        self.crash = set(crash)
        self.delay = delay
        self.calls: list[tuple[InstanceTarget, ExecutionRequest]] = []
        self._lock = threading.Lock()
        self._active = 0
        self.max_active = 0

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def exec(self, target: InstanceTarget, request: ExecutionRequest) -> int:
        with self._lock:
            self.calls.append((target, request))
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if target.name in self.crash:
                raise RuntimeError("boom")
            if target.name in self.failures:
                raise ExecutionError(
                    ErrorKind.COMMAND_FAILED,
                    "command exited with code 1",
                    exit_code=1,
                )
            return 0
        finally:
            with self._lock:
                self._active -= 1


def targets(*names: str, namespace: str = "default") -> list[InstanceTarget]:
    return [InstanceTarget(name=n, namespace=namespace) for n in names]


def request(*command: str, **kwargs: Any) -> ExecutionRequest:
    return ExecutionRequest(command=command or ("true",), **kwargs)


@pytest.fixture
def web_cluster() -> FakeCluster:
    """A deployment ``web`` with three pods, plus an unrelated pod."""
    labels = {"app": "web"}
    return FakeCluster(
        workloads={(WorkloadKind.DEPLOYMENT, "default", "web"): labels},
        pods={
            "default": [
                ("web-0", {"app": "web"}),
                ("web-1", {"app": "web"}),
                ("web-2", {"app": "web"}),
                ("db-0", {"app": "db"}),
            ]
        },
    )
