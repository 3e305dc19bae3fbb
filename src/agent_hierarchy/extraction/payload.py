"""Tolerant accessors for loosely shaped parsed documents (YAML, JSON, JSON5)."""

from __future__ import annotations

from collections.abc import Mapping


def compact_string(value: object) -> str | None:
    """Return the trimmed string, or ``None`` for non-strings and blank strings."""

    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def string_list(value: object) -> tuple[str, ...]:
    """Return the non-blank trimmed strings of a list; anything else yields ``()``."""

    if not isinstance(value, list | tuple):
        return ()
    items: list[str] = []
    for item in value:
        text = compact_string(item)
        if text is not None:
            items.append(text)
    return tuple(items)


def as_mapping(value: object) -> Mapping[str, object] | None:
    if isinstance(value, Mapping):
        return value
    return None


def optional_bool(payload: Mapping[str, object] | None, key: str) -> bool | None:
    """Return ``payload[key]`` only when it is a real boolean."""

    if payload is None:
        return None
    value = payload.get(key)
    if isinstance(value, bool):
        return value
    return None


__all__ = ["as_mapping", "compact_string", "optional_bool", "string_list"]
