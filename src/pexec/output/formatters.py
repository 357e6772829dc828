"""Rich/JSON output helpers.

The CLI renders ServiceResult for humans (Rich summary line, failure
table with --verbose), for scripts (--quiet: failed pod names), or for
machines (--json). The formatter picks the mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pexec.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from pexec.output.renderers import SummaryRenderer
    from pexec.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Output mode flags, resolved once from settings."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    color: bool = False


def format_result(
    result: ServiceResult,
    *,
    settings: OutputSettings | None = None,
    summary_renderer: SummaryRenderer | None = None,
) -> str:
    """Format a ServiceResult for display.

    JSON wins over quiet, quiet wins over the human renderer.
    """
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(
        result,
        verbose=settings.verbose,
        force_color=settings.color,
        summary_renderer=summary_renderer,
    )
