"""Shared CLI helpers: console and config loading."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from semoss_openai.config import SemossConfig, load_config
from semoss_openai.errors import ConfigError

console = Console()


def load_config_or_exit(config_file: Path | None) -> SemossConfig:
    try:
        return load_config(config_file)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
