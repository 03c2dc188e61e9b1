"""Model allow-list used to keep callers on supported upstream models."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, FrozenSet, Mapping

DEFAULT_MODEL = "gpt-4.1-mini"

ALLOWED_MODELS: FrozenSet[str] = frozenset({"gpt-4.1-mini", "gpt-4o-mini", "gpt-4.1"})

# Names sent by older browser clients.
LEGACY_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "gpt-4": "gpt-4.1",
        "gpt-4-turbo": "gpt-4.1",
        "gpt-4o": "gpt-4.1",
        "gpt-3.5-turbo": "gpt-4o-mini",
        "gpt-4.1-nano": "gpt-4.1-mini",
        "gpt-4o-mini-2024-07-18": "gpt-4o-mini",
    }
)


def resolve_model(requested: Any = None) -> str:
    """Return the upstream model token to use for *requested*.

    Exact allow-list members pass through, legacy aliases are remapped, and
    anything else (including ``None`` and non-strings) falls back to
    :data:`DEFAULT_MODEL`.
    """

    if not isinstance(requested, str):
        return DEFAULT_MODEL
    candidate = requested.strip()
    if candidate in ALLOWED_MODELS:
        return candidate
    return LEGACY_ALIASES.get(candidate, DEFAULT_MODEL)


__all__ = ["ALLOWED_MODELS", "DEFAULT_MODEL", "LEGACY_ALIASES", "resolve_model"]
