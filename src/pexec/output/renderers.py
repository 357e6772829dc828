"""Renderers for ServiceResult.

The run summary is rendered by a :class:`SummaryRenderer`, a pluggable
capability: aggregation produces a :class:`RunSummary`, and only the
renderer decides how it looks. :func:`format_summary_line` is the plain
text contract every renderer starts from.

Failed results render as a one-line error, with code and detail when
verbose.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from rich.table import Table
from rich.text import Text

from pexec.domain.types import RunSummary
from pexec.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from pexec.services.result import ServiceResult


# ── Summary rendering ─────────────────────────────────────────────────


def format_summary_line(summary: RunSummary) -> str:
    """The one-line run summary.

    >>> format_summary_line(RunSummary(total=2, succeeded=1, failed=1,
    ...                                failed_instances=("web-1",), elapsed_seconds=1.5))
    'All pods execution done in 1.500s. Success: 1, Fail: 1, Failed pods: [web-1]'
    """
    failed = " ".join(summary.failed_instances)
    return (
        f"All pods execution done in {summary.elapsed_seconds:.3f}s. "
        f"Success: {summary.succeeded}, Fail: {summary.failed}, Failed pods: [{failed}]"
    )


class SummaryRenderer(Protocol):
    def render(self, summary: RunSummary) -> str: ...


class PlainSummaryRenderer:
    """Summary line with no styling at all."""

    def render(self, summary: RunSummary) -> str:
        return format_summary_line(summary)


class RichSummaryRenderer:
    """Summary line styled by outcome; adds a failure table when verbose."""

    def __init__(self, *, verbose: bool = False, force_color: bool = False) -> None:
        self._verbose = verbose
        self._force_color = force_color

    def render(self, summary: RunSummary, results: list[dict[str, Any]] | None = None) -> str:
        console = create_console(force_color=self._force_color)
        style = "pexec.ok" if summary.all_succeeded else "pexec.partial"
        console.print(Text(format_summary_line(summary), style=style), soft_wrap=True)
        if self._verbose and results:
            failures = [r for r in results if not r.get("succeeded")]
            if failures:
                console.print(_failure_table(failures))
        return get_output(console).rstrip("\n")


def summary_from_data(data: dict[str, Any]) -> RunSummary:
    """Rebuild the RunSummary embedded in a ``pexec`` result payload."""
    return RunSummary.model_validate({k: data[k] for k in RunSummary.model_fields if k in data})


def _failure_table(failures: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Pod", style="pexec.pod", no_wrap=True)
    table.add_column("Error", style="pexec.error")
    table.add_column("Exit", justify="right")
    table.add_column("Seconds", justify="right", style="dim")
    table.add_column("Message")
    for item in failures:
        exit_code = item.get("exit_code")
        table.add_row(
            str(item.get("instance_name", "")),
            str(item.get("error", "")),
            "" if exit_code is None else str(exit_code),
            f"{item.get('duration_seconds', 0.0):.3f}",
            str(item.get("message") or ""),
        )
    return table


# ── Public API ────────────────────────────────────────────────────────


def render_result(
    result: ServiceResult,
    *,
    verbose: bool = False,
    force_color: bool = False,
    summary_renderer: SummaryRenderer | None = None,
) -> str:
    """Render a ServiceResult to a display string.

    A custom *summary_renderer* replaces the default Rich renderer for
    successful results.
    """
    if not result.ok:
        console = create_console(force_color=force_color)
        _render_error(result, console, verbose=verbose)
        return get_output(console).rstrip("\n")

    summary = summary_from_data(result.data)
    if summary_renderer is not None:
        return summary_renderer.render(summary)
    renderer = RichSummaryRenderer(verbose=verbose, force_color=force_color)
    return renderer.render(summary, result.data.get("results"))


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode: failed pod names only."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    return "\n".join(result.data.get("failed_instances", []))


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="pexec.error")
    op = Text(f"  {result.op}", style="pexec.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg), soft_wrap=True)

    if verbose and err:
        console.print(Text(f"  code: {err.code}", style="dim"))
        if err.detail:
            console.print(Text("  detail:", style="dim"))
            for k, v in err.detail.items():
                console.print(Text(f"    {k}: {v}"), soft_wrap=True)
