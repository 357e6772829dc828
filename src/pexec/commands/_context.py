"""AppContext — per-invocation state for the pexec command.

Created once by the CLI entry point. Builds the cluster client lazily so
``--help``, ``--version``, and argument errors never touch a kubeconfig,
and centralizes result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from pexec.domain.errors import FatalError
from pexec.output.formatters import OutputSettings, format_result
from pexec.services.result import ServiceResult

if TYPE_CHECKING:
    from pexec.config.settings import PexecSettings
    from pexec.domain.invocation import Invocation
    from pexec.infrastructure.cluster import ClusterClient
    from pexec.infrastructure.executor import RemoteExecutor


class AppContext:
    """Shared context for one pexec invocation.

    Exit codes:
        * 0 — the run reached dispatch, whatever the per-pod outcome.
        * 1 — the run stopped before dispatch, or ``--strict`` and at
          least one pod failed.
    """

    def __init__(self, settings: PexecSettings) -> None:
        self.settings = settings
        self._cluster: ClusterClient | None = None

        from pexec.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def cluster(self) -> ClusterClient:
        """The cluster client (created lazily on first access).

        Raises:
            FatalError: no usable kubeconfig or in-cluster credentials.
        """
        if self._cluster is None:
            from pexec.config.discovery import resolve_kubeconfig
            from pexec.infrastructure.cluster import ClusterClient

            kubeconfig = resolve_kubeconfig(self.settings.cluster.kubeconfig)
            self._cluster = ClusterClient.connect(kubeconfig, self.settings.cluster.context)
        return self._cluster

    def build_executor(self) -> RemoteExecutor:
        from pexec.infrastructure.executor import KubernetesExecutor

        return KubernetesExecutor(
            self.cluster.configuration,
            timeout=self.settings.exec.effective_timeout,
        )

    def run(self, invocation: Invocation) -> ServiceResult:
        """Execute the pipeline, folding client construction failures into the result."""
        from pexec.services.run import OP, RunService

        try:
            cluster = self.cluster
            executor = self.build_executor()
        except FatalError as exc:
            return ServiceResult.failure(OP, exc)

        svc = RunService(cluster, executor, max_concurrency=self.settings.exec.max_concurrency)
        try:
            return svc.run(invocation)
        finally:
            cluster.close()

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout. Per-pod failures are
          emitted as warnings on stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
            color=sys.stdout.isatty(),
        )
        output = format_result(result, settings=settings)
        if not result.ok:
            click.echo(output, err=True)
            raise SystemExit(1)

        if output:
            click.echo(output)
        # In JSON mode, warnings are already in the serialized payload.
        if not settings.json_output and not settings.quiet:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
        if self.settings.exec.strict and result.data.get("failed"):
            raise SystemExit(1)
