"""Server command: serve."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from semoss_openai.cli._helpers import console, load_config_or_exit


def serve(
    host: Annotated[str, typer.Option(help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on")] = 8000,
    api_key: Annotated[
        str | None,
        typer.Option(help="API key for authentication", envvar="SEMOSS_OPENAI_API_KEY"),
    ] = None,
    config: Annotated[Path | None, typer.Option(help="Path to a YAML config file")] = None,
    cors_origin: Annotated[
        list[str] | None,
        typer.Option("--cors-origin", help="Allowed CORS origin (repeatable)"),
    ] = None,
) -> None:
    """Serve SEMOSS models as an OpenAI-compatible API."""
    from semoss_openai.server.app import run_server

    cfg = load_config_or_exit(config)

    console.print(f"Serving SEMOSS at [cyan]{cfg.base_url}[/cyan] on http://{host}:{port}")
    console.print(f"  Health:   http://{host}:{port}/health")
    console.print(f"  Models:   http://{host}:{port}/v1/models")
    if api_key:
        console.print("  Auth:     [yellow]enabled[/yellow] (Bearer token required)")
    if cors_origin:
        console.print(f"  CORS:     {', '.join(cors_origin)}")

    run_server(cfg, host=host, port=port, api_key=api_key, cors_origins=cors_origin)
