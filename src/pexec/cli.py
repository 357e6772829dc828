"""The pexec command: parse flags, build settings, run the pipeline, emit."""

from __future__ import annotations

import click

from pexec import __version__
from pexec.commands._base import PexecCommand
from pexec.commands._context import AppContext
from pexec.config.settings import PexecSettings
from pexec.domain.errors import ConfigurationError
from pexec.domain.invocation import parse_invocation
from pexec.services.result import ServiceResult
from pexec.services.run import OP

EXAMPLES = """\
  pexec deployment nginx cat /etc/nginx/nginx.conf
  pexec deploy nginx -n web -- nginx -t
  pexec ss redis -c redis -- redis-cli info replication
  pexec ds node-exporter --ignore-hostname -- uname -r
  pexec pod -l app=api,tier=backend -- env
  pexec --json --max-concurrency 10 --timeout 60 deploy api -- df -h
  pexec --strict deploy api -- test -f /tmp/ready"""


@click.command(
    cls=PexecCommand,
    examples=EXAMPLES,
    positional_usage="KIND [NAME] [--] COMMAND...",
    context_settings={
        "ignore_unknown_options": True,
        "help_option_names": ["-h", "--help"],
    },
)
@click.version_option(version=__version__, prog_name="pexec")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Print only the names of failed pods.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and a failure table.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--config", "config_path", default=None, help="Override pexec.toml path.")
@click.option("--kubeconfig", default=None, help="Path to the kubeconfig file.")
@click.option("--context", "kube_context", default=None, help="Kubeconfig context to use.")
@click.option("-n", "--namespace", default=None, help="Namespace (default: default).")
@click.option(
    "-c",
    "--container-name",
    "container",
    default=None,
    help="Container to exec into when pods have more than one.",
)
@click.option(
    "-l",
    "--labels",
    default=None,
    help="Pod selector, key1=value1,key2=value2 (required for pod).",
)
@click.option(
    "--ignore-hostname",
    is_flag=True,
    default=None,
    help="Do not prefix output lines with the pod name.",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Run at most N pods at once (default: all).",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Per-pod timeout in seconds, 0 to disable (default: 300).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=None,
    help="Exit 1 if the command failed in any pod.",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(
    ctx: click.Context,
    args: tuple[str, ...],
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    kubeconfig: str | None,
    kube_context: str | None,
    namespace: str | None,
    container: str | None,
    labels: str | None,
    ignore_hostname: bool | None,
    max_concurrency: int | None,
    timeout_seconds: float | None,
    strict: bool | None,
) -> None:
    """Run COMMAND in every pod of a workload, concurrently.

    \b
    pexec deployment|deploy NAME [OPTIONS] -- COMMAND...
    pexec statefulset|ss    NAME [OPTIONS] -- COMMAND...
    pexec daemonset|ds      NAME [OPTIONS] -- COMMAND...
    pexec pod|po -l LABELS       [OPTIONS] -- COMMAND...
    """
    settings = PexecSettings.from_cli(
        config_path=config_path,
        cluster={"kubeconfig": kubeconfig, "context": kube_context, "namespace": namespace},
        exec_options={
            "max_concurrency": max_concurrency,
            "timeout_seconds": timeout_seconds,
            "strict": strict or None,
            "ignore_hostname": ignore_hostname or None,
        },
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app

    if not args:
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)

    try:
        invocation = parse_invocation(
            args,
            labels=labels,
            container=container,
            namespace=settings.cluster.namespace,
            ignore_hostname=settings.exec.ignore_hostname,
        )
    except ConfigurationError as exc:
        app.emit(ServiceResult.failure(OP, exc))
        return

    app.emit(app.run(invocation))
