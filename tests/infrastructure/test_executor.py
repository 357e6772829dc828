"""Tests for the websocket exec transport."""

from __future__ import annotations

import io
import json
from typing import Any

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from websocket import WebSocketException

from pexec.domain.errors import ErrorKind, ExecutionError
from pexec.domain.types import ExecutionRequest, InstanceTarget
from pexec.infrastructure import executor as executor_mod
from pexec.infrastructure.executor import (
    KubernetesExecutor,
    LineWriter,
    _exec_rejected,
    parse_exit_status,
)

SUCCESS = json.dumps({"status": "Success", "metadata": {}})


def _exit_status(code: int) -> str:
    return json.dumps(
        {
            "status": "Failure",
            "message": f"command terminated with non-zero exit code: exit status {code}",
            "reason": "NonZeroExitCode",
            "details": {"causes": [{"reason": "ExitCode", "message": str(code)}]},
        }
    )


class FakeWS:
    """Replays stdout/stderr chunks, then reports *status* on the error channel."""

    def __init__(self, chunks: list[tuple[str, str]], status: str = SUCCESS, *, hang: bool = False):
        self._chunks = list(chunks)
        self._status = status
        self._hang = hang
        self._out = ""
        self._err = ""
        self.closed = False

    def is_open(self) -> bool:
        return self._hang or bool(self._chunks)

    def update(self, timeout: float = 0) -> None:
        if self._chunks:
            channel, data = self._chunks.pop(0)
            if channel == "out":
                self._out += data
            else:
                self._err += data

    def peek_stdout(self) -> bool:
        return bool(self._out)

    def read_stdout(self) -> str:
        data, self._out = self._out, ""
        return data

    def peek_stderr(self) -> bool:
        return bool(self._err)

    def read_stderr(self) -> str:
        data, self._err = self._err, ""
        return data

    def read_channel(self, channel: int) -> str:
        return self._status

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_stream(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Patch ``stream`` and record the call; set ``state["ws"]`` before exec."""
    state: dict[str, Any] = {}

    def fake(func: Any, name: str, namespace: str, **kwargs: Any) -> Any:
        state["call"] = (name, namespace, kwargs)
        if "raise" in state:
            raise state["raise"]
        return state["ws"]

    monkeypatch.setattr(executor_mod, "stream", fake)
    return state


def _executor(**kwargs: Any) -> tuple[KubernetesExecutor, io.StringIO, io.StringIO]:
    out, err = io.StringIO(), io.StringIO()
    ex = KubernetesExecutor(client.Configuration(), stdout=out, stderr=err, poll_interval=0, **kwargs)
    return ex, out, err


TARGET = InstanceTarget(name="web-0", namespace="prod")


class TestLineWriter:
    def test_buffers_partial_lines(self) -> None:
        sink = io.StringIO()
        w = LineWriter(sink, "[a] ")
        w.write("hel")
        assert sink.getvalue() == ""
        w.write("lo\nwor")
        assert sink.getvalue() == "[a] hello\n"
        w.flush()
        assert sink.getvalue() == "[a] hello\n[a] wor\n"

    def test_no_prefix(self) -> None:
        sink = io.StringIO()
        w = LineWriter(sink)
        w.write("x\ny\n")
        w.flush()
        assert sink.getvalue() == "x\ny\n"

    def test_empty_chunk_ignored(self) -> None:
        sink = io.StringIO()
        w = LineWriter(sink, "[a] ")
        w.write("")
        w.flush()
        assert sink.getvalue() == ""


class TestParseExitStatus:
    def test_success(self) -> None:
        assert parse_exit_status(SUCCESS) == 0

    def test_exit_code(self) -> None:
        with pytest.raises(ExecutionError) as info:
            parse_exit_status(_exit_status(3))
        assert info.value.kind is ErrorKind.COMMAND_FAILED
        assert info.value.exit_code == 3
        assert "code 3" in info.value.message

    def test_failure_without_exit_code(self) -> None:
        raw = json.dumps({"status": "Failure", "message": "container not found"})
        with pytest.raises(ExecutionError) as info:
            parse_exit_status(raw)
        assert info.value.kind is ErrorKind.COMMAND_FAILED
        assert info.value.exit_code is None
        assert info.value.message == "container not found"

    def test_empty_is_transport(self) -> None:
        with pytest.raises(ExecutionError) as info:
            parse_exit_status("")
        assert info.value.kind is ErrorKind.TRANSPORT

    def test_garbage_is_transport(self) -> None:
        with pytest.raises(ExecutionError) as info:
            parse_exit_status("{not json")
        assert info.value.kind is ErrorKind.TRANSPORT


class TestExecRejected:
    @pytest.mark.parametrize("status", [400, 403, 404])
    def test_http_status(self, status: int) -> None:
        assert _exec_rejected(ApiException(status=status, reason="no")).kind is ErrorKind.REJECTED

    def test_handshake_reason(self) -> None:
        exc = ApiException(status=0, reason="Handshake status 404 Not Found")
        assert _exec_rejected(exc).kind is ErrorKind.REJECTED

    def test_other_is_transport(self) -> None:
        exc = ApiException(status=0, reason="Connection refused")
        assert _exec_rejected(exc).kind is ErrorKind.TRANSPORT


class TestKubernetesExecutor:
    def test_success_prefixes_output(self, fake_stream: dict[str, Any]) -> None:
        ws = FakeWS([("out", "line one\nline "), ("out", "two\n"), ("err", "warn\n")])
        fake_stream["ws"] = ws
        ex, out, err = _executor()

        assert ex.exec(TARGET, ExecutionRequest(command=("cat", "/etc/hostname"))) == 0
        assert out.getvalue() == "[web-0] line one\n[web-0] line two\n"
        assert err.getvalue() == "[web-0] warn\n"
        assert ws.closed is True

    def test_passes_argv_and_container(self, fake_stream: dict[str, Any]) -> None:
        fake_stream["ws"] = FakeWS([])
        ex, _, _ = _executor()
        ex.exec(TARGET, ExecutionRequest(command=("sh", "-c", "echo hi"), container="app"))

        name, namespace, kwargs = fake_stream["call"]
        assert (name, namespace) == ("web-0", "prod")
        assert kwargs["command"] == ["sh", "-c", "echo hi"]
        assert kwargs["container"] == "app"
        assert kwargs["stdin"] is False
        assert kwargs["tty"] is False
        assert kwargs["_preload_content"] is False

    def test_no_container_key_by_default(self, fake_stream: dict[str, Any]) -> None:
        fake_stream["ws"] = FakeWS([])
        ex, _, _ = _executor()
        ex.exec(TARGET, ExecutionRequest(command=("true",)))
        assert "container" not in fake_stream["call"][2]

    def test_ignore_hostname(self, fake_stream: dict[str, Any]) -> None:
        fake_stream["ws"] = FakeWS([("out", "plain\n")])
        ex, out, _ = _executor()
        ex.exec(TARGET, ExecutionRequest(command=("true",), disambiguate_output=False))
        assert out.getvalue() == "plain\n"

    def test_partial_line_flushed_on_exit(self, fake_stream: dict[str, Any]) -> None:
        fake_stream["ws"] = FakeWS([("out", "no newline")])
        ex, out, _ = _executor()
        ex.exec(TARGET, ExecutionRequest(command=("true",)))
        assert out.getvalue() == "[web-0] no newline\n"

    def test_non_zero_exit(self, fake_stream: dict[str, Any]) -> None:
        fake_stream["ws"] = FakeWS([("err", "boom\n")], _exit_status(2))
        ex, _, err = _executor()
        with pytest.raises(ExecutionError) as info:
            ex.exec(TARGET, ExecutionRequest(command=("false",)))
        assert info.value.kind is ErrorKind.COMMAND_FAILED
        assert info.value.exit_code == 2
        assert err.getvalue() == "[web-0] boom\n"

    def test_rejected_handshake(self, fake_stream: dict[str, Any]) -> None:
        fake_stream["raise"] = ApiException(status=0, reason="Handshake status 403 Forbidden")
        ex, _, _ = _executor()
        with pytest.raises(ExecutionError) as info:
            ex.exec(TARGET, ExecutionRequest(command=("ls",)))
        assert info.value.kind is ErrorKind.REJECTED

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionRefusedError("connection refused"),
            WebSocketException("socket is already closed."),
        ],
    )
    def test_handshake_connection_error_is_transport(
        self, fake_stream: dict[str, Any], error: Exception
    ) -> None:
        fake_stream["raise"] = error
        ex, _, _ = _executor()
        with pytest.raises(ExecutionError) as info:
            ex.exec(TARGET, ExecutionRequest(command=("ls",)))
        assert info.value.kind is ErrorKind.TRANSPORT
        assert "handshake failed" in info.value.message

    def test_timeout(self, fake_stream: dict[str, Any]) -> None:
        ws = FakeWS([], hang=True)
        fake_stream["ws"] = ws
        ex, _, _ = _executor(timeout=0.01)
        with pytest.raises(ExecutionError) as info:
            ex.exec(TARGET, ExecutionRequest(command=("sleep", "100")))
        assert info.value.kind is ErrorKind.TIMEOUT
        assert ws.closed is True

    def test_stream_error_is_transport(self, fake_stream: dict[str, Any]) -> None:
        class Broken(FakeWS):
            def update(self, timeout: float = 0) -> None:
                raise ConnectionResetError("reset by peer")

        fake_stream["ws"] = Broken([("out", "x")])
        ex, _, _ = _executor()
        with pytest.raises(ExecutionError) as info:
            ex.exec(TARGET, ExecutionRequest(command=("ls",)))
        assert info.value.kind is ErrorKind.TRANSPORT
        assert "reset by peer" in info.value.message
