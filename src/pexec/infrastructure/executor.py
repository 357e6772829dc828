"""Remote exec transport over the Kubernetes websocket API.

:class:`RemoteExecutor` is the capability the orchestrator dispatches to.
:class:`KubernetesExecutor` is the production implementation.

``kubernetes.stream.stream`` swaps the ``request`` method of the
``ApiClient`` it is handed for the duration of the call, so one client
cannot be shared between concurrent tasks. Each exec builds its own
``ApiClient`` from the shared (read-only) ``Configuration``.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import TYPE_CHECKING, Protocol, TextIO

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from kubernetes.stream import stream
from kubernetes.stream.ws_client import ERROR_CHANNEL
from urllib3.exceptions import HTTPError
from websocket import WebSocketException

from pexec.domain.errors import ErrorKind, ExecutionError

if TYPE_CHECKING:
    from kubernetes.stream.ws_client import WSClient

    from pexec.domain.types import ExecutionRequest, InstanceTarget

logger = logging.getLogger(__name__)

_REJECTED_STATUSES = frozenset({400, 403, 404})


class RemoteExecutor(Protocol):
    """Run a command in one pod and block until it finishes.

    Returns 0 when the remote command succeeded. Any failure, including a
    non-zero exit, raises :class:`ExecutionError` with the matching
    :class:`ErrorKind`.
    """

    def exec(self, target: InstanceTarget, request: ExecutionRequest) -> int: ...


class LineWriter:
    """Buffer stream chunks and forward them to *sink* one complete line at a time.

    Keeps lines from different pods from being spliced mid-line. With a
    *prefix*, every line is tagged so output can be attributed to its pod.
    """

    def __init__(self, sink: TextIO, prefix: str = "") -> None:
        self._sink = sink
        self._prefix = prefix
        self._pending = ""

    def write(self, chunk: str) -> None:
        if not chunk:
            return
        self._pending += chunk
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self._emit(line)

    def flush(self) -> None:
        if self._pending:
            self._emit(self._pending)
            self._pending = ""

    def _emit(self, line: str) -> None:
        self._sink.write(f"{self._prefix}{line}\n")
        self._sink.flush()


def parse_exit_status(raw: str) -> int:
    """Extract the exit code from the exec error channel (a ``v1.Status`` JSON).

    Raises:
        ExecutionError: non-zero exit, a failure without an exit code, or a
            channel that closed before any status arrived.
    """
    if not raw:
        raise ExecutionError(ErrorKind.TRANSPORT, "connection closed before the exit status arrived")
    try:
        status = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ExecutionError(ErrorKind.TRANSPORT, f"unreadable exit status: {raw!r}") from exc

    if status.get("status") == "Success":
        return 0

    message = status.get("message") or "command failed"
    causes = (status.get("details") or {}).get("causes") or []
    for cause in causes:
        if cause.get("reason") == "ExitCode":
            code = int(cause.get("message", "1"))
            raise ExecutionError(
                ErrorKind.COMMAND_FAILED,
                f"command exited with code {code}",
                exit_code=code,
            )
    raise ExecutionError(ErrorKind.COMMAND_FAILED, message)


class KubernetesExecutor:
    """:class:`RemoteExecutor` backed by ``connect_get_namespaced_pod_exec``.

    Parameters:
        configuration: Shared client configuration. Never mutated.
        stdout: Sink for remote stdout (default: ``sys.stdout`` at call time).
        stderr: Sink for remote stderr (default: ``sys.stderr`` at call time).
        timeout: Per-pod deadline in seconds. None waits forever.
        poll_interval: How long one websocket read may block.
    """

    def __init__(
        self,
        configuration: client.Configuration,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        timeout: float | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._configuration = configuration
        self._stdout = stdout
        self._stderr = stderr
        self._timeout = timeout
        self._poll_interval = poll_interval

    def exec(self, target: InstanceTarget, request: ExecutionRequest) -> int:
        prefix = f"[{target.name}] " if request.disambiguate_output else ""
        out = LineWriter(self._stdout or sys.stdout, prefix)
        err = LineWriter(self._stderr or sys.stderr, prefix)

        kwargs: dict[str, object] = {
            "command": list(request.command),
            "stdin": False,
            "stdout": True,
            "stderr": True,
            "tty": False,
            "_preload_content": False,
        }
        if request.container:
            kwargs["container"] = request.container

        with client.ApiClient(self._configuration) as api_client:
            core = client.CoreV1Api(api_client)
            try:
                resp = stream(
                    core.connect_get_namespaced_pod_exec,
                    target.name,
                    target.namespace,
                    **kwargs,
                )
            except ApiException as exc:
                raise _exec_rejected(exc) from exc
            except (WebSocketException, HTTPError, OSError) as exc:
                raise ExecutionError(ErrorKind.TRANSPORT, f"exec handshake failed: {exc}") from exc

            try:
                self._pump(resp, out, err, target)
                raw_status = resp.read_channel(ERROR_CHANNEL)
            except ExecutionError:
                raise
            except Exception as exc:
                raise ExecutionError(ErrorKind.TRANSPORT, f"stream failed: {exc}") from exc
            finally:
                out.flush()
                err.flush()
                resp.close()

        return parse_exit_status(raw_status)

    def _pump(self, resp: WSClient, out: LineWriter, err: LineWriter, target: InstanceTarget) -> None:
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        while resp.is_open():
            resp.update(timeout=self._poll_interval)
            self._drain(resp, out, err)
            if deadline is not None and time.monotonic() > deadline:
                logger.debug("Exec in %s exceeded %.1fs", target.name, self._timeout)
                raise ExecutionError(
                    ErrorKind.TIMEOUT,
                    f"no exit status after {self._timeout:g}s",
                )
        self._drain(resp, out, err)

    @staticmethod
    def _drain(resp: WSClient, out: LineWriter, err: LineWriter) -> None:
        if resp.peek_stdout():
            out.write(resp.read_stdout())
        if resp.peek_stderr():
            err.write(resp.read_stderr())


def _exec_rejected(exc: ApiException) -> ExecutionError:
    """Classify a failed exec handshake.

    The websocket layer reports handshake failures as status 0 with the
    HTTP status in the reason text, so both places are checked.
    """
    reason = str(exc.reason or "")
    if exc.status in _REJECTED_STATUSES or "Handshake status 4" in reason:
        return ExecutionError(ErrorKind.REJECTED, f"exec rejected: {reason or exc.status}")
    return ExecutionError(ErrorKind.TRANSPORT, f"exec transport failed: {reason or exc.status}")
