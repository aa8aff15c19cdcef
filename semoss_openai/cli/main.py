"""Typer CLI for semoss-openai: wiring hub for command modules."""

from __future__ import annotations

from typing import Annotated

import typer

from semoss_openai.cli._helpers import console

app = typer.Typer(
    name="semoss-openai",
    help="OpenAI-compatible chat completions for SEMOSS.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from semoss_openai import __version__

        console.print(f"semoss-openai {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """semoss-openai: OpenAI-compatible chat completions for SEMOSS."""
    from semoss_openai._log import setup_logging

    setup_logging(verbose=verbose)


# ---------------------------------------------------------------------------
# Command registrations
# ---------------------------------------------------------------------------

from semoss_openai.cli.chat_cmd import chat, models  # noqa: E402
from semoss_openai.cli.server_cmd import serve  # noqa: E402

app.command()(chat)
app.command()(models)
app.command()(serve)


def app_entry() -> None:
    """Entry point for the CLI."""
    app()
