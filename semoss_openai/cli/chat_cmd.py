"""Chat commands: chat, models."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from semoss_openai.cli._helpers import console, load_config_or_exit
from semoss_openai.config import SemossConfig
from semoss_openai.errors import SemossError


async def _run_chat(
    cfg: SemossConfig, messages: list[dict], model: str | None, stream: bool
) -> None:
    from semoss_openai.client import SemossOpenAI

    async with SemossOpenAI(cfg) as client:
        result = await client.chat.completions.create(
            messages=messages, model=model, stream=stream
        )
        if not stream:
            reply = result.choices[0].message.content  # type: ignore[union-attr]
            console.print(reply, markup=False)
            return
        async with result as chunks:  # type: ignore[union-attr]
            async for chunk in chunks:
                content = chunk.choices[0].delta.content
                if content:
                    console.print(content, end="", markup=False, highlight=False)
        console.print()


def chat(
    prompt: Annotated[str, typer.Argument(help="User message to send")],
    model: Annotated[str | None, typer.Option(help="Model name (see 'models')")] = None,
    system: Annotated[str | None, typer.Option(help="System prompt")] = None,
    no_stream: Annotated[bool, typer.Option("--no-stream", help="Wait for the full reply")] = False,
    config: Annotated[Path | None, typer.Option(help="Path to a YAML config file")] = None,
) -> None:
    """Send one prompt to a SEMOSS model and print the reply."""
    cfg = load_config_or_exit(config)

    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    try:
        asyncio.run(_run_chat(cfg, messages, model, not no_stream))
    except SemossError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def models(
    config: Annotated[Path | None, typer.Option(help="Path to a YAML config file")] = None,
) -> None:
    """List model names and the SEMOSS engines they map to."""
    from semoss_openai.model_map import build_model_map

    cfg = load_config_or_exit(config)

    table = Table(title="Models")
    table.add_column("Name", style="cyan")
    table.add_column("Engine ID")
    for name, engine_id in build_model_map(cfg.models).items():
        table.add_row(name, engine_id)
    console.print(table)
    console.print(f"[dim]Unknown names use {cfg.default_engine_id}[/dim]")
