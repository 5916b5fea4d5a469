from __future__ import annotations

import typer

from relpipe import __version__
from relpipe.cli.commands.all_cmd import all_phases
from relpipe.cli.commands.archive_cmd import archive
from relpipe.cli.commands.build_cmd import build
from relpipe.cli.commands.release_cmd import release

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Build, archive and publish a release.",
)


# Commands
app.command()(build)
app.command()(archive)
app.command()(release)
app.command("all")(all_phases)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    pass


def main() -> None:
    app()
