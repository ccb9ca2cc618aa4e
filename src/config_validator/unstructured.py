"""Typed lookups into nested mappings decoded from JSON or YAML."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

__all__ = [
    "nested_get",
    "nested_string",
    "nested_string_list",
    "nested_map",
    "api_group",
]

_MISSING = object()


def nested_get(obj: Mapping[str, Any], *keys: str) -> Tuple[Any, bool]:
    """Return ``(value, found)`` for the value at ``keys``."""
    current: Any = obj
    for key in keys:
        if not isinstance(current, Mapping):
            return None, False
        current = current.get(key, _MISSING)
        if current is _MISSING:
            return None, False
    return current, True


def nested_string(obj: Mapping[str, Any], *keys: str) -> Optional[str]:
    """String at ``keys`` or ``None`` when missing or not a string."""
    value, found = nested_get(obj, *keys)
    if found and isinstance(value, str):
        return value
    return None


def nested_string_list(obj: Mapping[str, Any], *keys: str) -> Optional[List[str]]:
    """List of strings at ``keys`` or ``None`` when missing or mistyped."""
    value, found = nested_get(obj, *keys)
    if not found or not isinstance(value, list):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return value


def nested_map(obj: Mapping[str, Any], *keys: str) -> Optional[Dict[str, Any]]:
    """Mapping at ``keys`` or ``None`` when missing or not a mapping."""
    value, found = nested_get(obj, *keys)
    if found and isinstance(value, dict):
        return value
    return None


def api_group(api_version: str) -> Tuple[str, str]:
    """Split ``group/version`` into its parts; the core group is ``""``."""
    if "/" in api_version:
        group, version = api_version.split("/", 1)
        return group, version
    return "", api_version
