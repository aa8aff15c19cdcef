"""Settings and path configuration for semoss-openai.

Settings come from three layers, later layers winning:

1. ``.env`` files (current directory, then the home directory) loaded
   without overriding variables that are already set
2. an optional YAML file
3. ``SEMOSS_*`` environment variables

The home directory respects ``SEMOSS_OPENAI_HOME``, then
``XDG_DATA_HOME/semoss-openai``, and falls back to ``~/.semoss-openai``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import BaseModel, Field, ValidationError

from semoss_openai.errors import ConfigError
from semoss_openai.model_map import DEFAULT_ENGINE_ID

DEFAULT_MODEL = "gpt-3.5-turbo"

_ENV_OVERRIDES = {
    "SEMOSS_BASE_URL": "base_url",
    "SEMOSS_ACCESS_KEY": "access_key",
    "SEMOSS_SECRET_KEY": "secret_key",
}


class SemossConfig(BaseModel):
    base_url: str = "http://localhost:8080/Monolith/api"
    access_key: str | None = None
    secret_key: str | None = None
    timeout: Annotated[float, Field(gt=0)] = 120.0
    default_model: str = DEFAULT_MODEL
    default_engine_id: str = DEFAULT_ENGINE_ID
    models: dict[str, str] = {}
    poll_interval: Annotated[float, Field(gt=0)] = 0.25
    warmup: Annotated[float, Field(ge=0)] = 0.3
    race_timeout: Annotated[float, Field(gt=0)] = 0.1


@lru_cache(maxsize=1)
def get_home_dir() -> Path:
    """Return the semoss-openai data directory."""
    env = os.environ.get("SEMOSS_OPENAI_HOME")
    if env:
        return Path(env)
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "semoss-openai"
    return Path.home() / ".semoss-openai"


def get_global_env_path() -> Path:
    return get_home_dir() / ".env"


def load_dotenv_files(cwd: Path | None = None) -> None:
    """Load .env files, local first, then global as fallback.

    Uses ``override=False`` so existing env vars always win.
    """
    from dotenv import load_dotenv

    local_env = (cwd or Path.cwd()) / ".env"
    if local_env.is_file():
        load_dotenv(local_env, override=False)
    global_env = get_global_env_path()
    if global_env.is_file():
        load_dotenv(global_env, override=False)


def _read_yaml(path: Path) -> dict:
    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_config(path: Path | None = None, *, load_env_files: bool = True) -> SemossConfig:
    """Build a :class:`SemossConfig` from .env files, *path* and the environment."""
    if load_env_files:
        load_dotenv_files()

    data = _read_yaml(path) if path is not None else {}
    for env_var, field in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field] = value

    try:
        return SemossConfig.model_validate(data)
    except ValidationError as e:
        source = str(path) if path is not None else "environment"
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e
