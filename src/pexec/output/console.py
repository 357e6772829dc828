"""Rich Console factory and theme for pexec output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

PEXEC_THEME = Theme(
    {
        "pexec.ok": "bold green",
        "pexec.partial": "bold yellow",
        "pexec.error": "bold red",
        "pexec.op": "bold cyan",
        "pexec.pod": "bold blue",
        "pexec.key": "dim",
    }
)


def create_console(
    *,
    no_color: bool = False,
    force_color: bool = False,
    width: int | None = None,
) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        force_color: Emit ANSI codes even though the buffer is not a TTY;
            set when the final destination (stdout) is a terminal.
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=PEXEC_THEME,
        no_color=no_color,
        force_terminal=True if force_color and not no_color else None,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
