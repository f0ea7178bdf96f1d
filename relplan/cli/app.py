from __future__ import annotations

import typer

from relplan import __version__
from relplan.cli.commands.plan_cmd import plan


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


app.command()(plan)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", callback=_print_version, is_eager=True
    ),
) -> None:
    """Resolve and validate package versions for a deployment release."""


def main() -> None:
    app()
