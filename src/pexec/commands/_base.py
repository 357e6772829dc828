"""Click command class for pexec.

Adds two things to a plain ``click.Command``:

- ``--examples``: prints usage examples and exits, keeping ``--help`` short.
- ``positional_usage``: replaces click's generic ``[ARGS]...`` in the usage
  line, since pexec's positionals are parsed by hand.
"""

from __future__ import annotations

from typing import Any

import click


class PexecCommand(click.Command):
    """Click Command with ``--examples`` and a custom positional usage string."""

    def __init__(
        self,
        *args: Any,
        examples: str | None = None,
        positional_usage: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        self.positional_usage = positional_usage
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)

    def collect_usage_pieces(self, ctx: click.Context) -> list[str]:
        if not self.positional_usage:
            return super().collect_usage_pieces(ctx)
        return [self.options_metavar or "[OPTIONS]", self.positional_usage]
