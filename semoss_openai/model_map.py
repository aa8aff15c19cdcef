"""Public model names to SEMOSS engine ids."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

DEFAULT_ENGINE_ID = "305f694d-c91c-400f-bd6c-b7e1dfbb5a4b"  # Llama-3.1-8B-Instruct

MODEL_MAP: Mapping[str, str] = MappingProxyType(
    {
        "Llama-3.1-8B-Instruct": "305f694d-c91c-400f-bd6c-b7e1dfbb5a4b",
        "Qwen2.5-7B-Instruct": "a1b1b9ad-17c7-473a-9dfb-b2b8c29cdef0",
    }
)


def build_model_map(extra: Mapping[str, str] | None = None) -> Mapping[str, str]:
    """Return a read-only table of the built-in models merged with *extra*.

    Entries in *extra* win over built-in names.
    """
    if not extra:
        return MODEL_MAP
    return MappingProxyType({**MODEL_MAP, **extra})


def resolve_engine_id(
    model: str,
    table: Mapping[str, str] = MODEL_MAP,
    default: str = DEFAULT_ENGINE_ID,
) -> str:
    """Return the engine id for *model*, or *default* for unknown names."""
    return table.get(model) or default
