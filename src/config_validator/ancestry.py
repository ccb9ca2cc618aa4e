"""Ancestry path resolution.

A resource can describe its place in the resource hierarchy two ways: an
``ancestors`` list in asset inventory order (closest ancestor first, e.g.
``["projects/3", "folders/2", "organizations/1"]``) or an already encoded
``ancestry_path`` string. Both collapse into one canonical, root-first
``ancestry_path`` such as ``organization/1/folder/2/project/3``.

The ``ancestors`` list wins whenever it is present and well typed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .exceptions import AncestryError

if TYPE_CHECKING:  # pragma: no cover
    from .asset import Asset

__all__ = [
    "ANCESTRY_PATH_KEY",
    "ANCESTORS_KEY",
    "normalize_ancestry",
    "ancestry_path",
    "resolve_ancestry",
    "sanitize_ancestry_path",
]

ANCESTRY_PATH_KEY = "ancestry_path"
ANCESTORS_KEY = "ancestors"

_SEGMENT_REPLACEMENTS = (
    ("organizations/", "organization/"),
    ("folders/", "folder/"),
    ("projects/", "project/"),
)


def normalize_ancestry(path: str) -> str:
    """Rewrite plural hierarchy segments to their singular form.

    Applying it to an already normalized path returns the path unchanged.
    """
    for plural, singular in _SEGMENT_REPLACEMENTS:
        path = path.replace(plural, singular)
    return path


def ancestry_path(ancestors: List[str]) -> str:
    """Encode a closest-first ancestor list as a root-first ancestry path."""
    return normalize_ancestry("/".join(reversed(ancestors)))


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return value


def _encode(name: Any, ancestors: List[str]) -> str:
    if not all(ancestors):
        raise AncestryError(
            f"asset {name!r} has an empty entry in {ANCESTORS_KEY}: {ancestors!r}"
        )
    return ancestry_path(ancestors)


def resolve_ancestry(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Set the canonical ancestry path on ``resource`` in place.

    Raises:
        AncestryError: If neither a usable ``ancestors`` list nor an
            ``ancestry_path`` string is present, or ``ancestors`` holds an
            empty entry.
    """
    name = resource.get("name", "<unnamed>")
    ancestors = _string_list(resource.get(ANCESTORS_KEY))
    if ancestors:
        resource[ANCESTRY_PATH_KEY] = _encode(name, ancestors)
        return resource

    path = resource.get(ANCESTRY_PATH_KEY)
    if isinstance(path, str) and path:
        resource[ANCESTRY_PATH_KEY] = normalize_ancestry(path)
        return resource

    raise AncestryError(
        f"asset {name!r} missing ancestry information: "
        f"{ANCESTORS_KEY}={resource.get(ANCESTORS_KEY)!r}, "
        f"{ANCESTRY_PATH_KEY}={resource.get(ANCESTRY_PATH_KEY)!r}"
    )


def sanitize_ancestry_path(asset: "Asset") -> None:
    """Apply the same precedence to a typed asset.

    An asset with neither form is left alone; shape validation reports the
    missing path.

    Raises:
        AncestryError: If ``ancestors`` holds an empty entry.
    """
    if asset.ancestors:
        asset.ancestry_path = _encode(asset.name or "<unnamed>", asset.ancestors)
    elif asset.ancestry_path:
        asset.ancestry_path = normalize_ancestry(asset.ancestry_path)
