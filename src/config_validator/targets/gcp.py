"""GCP asset target."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..ancestry import normalize_ancestry
from ..unstructured import nested_string_list
from .base import TargetHandler
from .domain import TargetDomain
from .match import any_glob_match

if TYPE_CHECKING:  # pragma: no cover
    from ..configs.objects import Constraint

__all__ = ["GCPTarget"]

_REQUIRED_FIELDS = ("name", "asset_type", "ancestry_path")


def _patterns(match: Dict[str, Any], *keys: str) -> Optional[List[str]]:
    for key in keys:
        patterns = nested_string_list(match, key)
        if patterns is not None:
            return patterns
    return None


class GCPTarget(TargetHandler):
    """Reviews Cloud Asset Inventory style assets as they are."""

    domain = TargetDomain.GCP

    def handle_review(self, obj: Any) -> Tuple[bool, Optional[Dict[str, Any]]]:
        if not isinstance(obj, dict):
            return False, None
        if not all(isinstance(obj.get(field), str) for field in _REQUIRED_FIELDS):
            return False, None
        return True, obj

    def matches(self, constraint: "Constraint", review: Dict[str, Any]) -> bool:
        match = constraint.match
        ancestry = review.get("ancestry_path", "")

        # "target"/"exclude" are the pre-v1beta1 spellings.
        included = _patterns(match, "ancestries", "target") or ["**"]
        excluded = _patterns(match, "excludedAncestries", "exclude") or []
        included = [normalize_ancestry(pattern) for pattern in included]
        excluded = [normalize_ancestry(pattern) for pattern in excluded]

        if not any_glob_match(included, ancestry):
            return False
        if any_glob_match(excluded, ancestry):
            return False

        asset_types = _patterns(match, "assetTypes") or ["**"]
        return any_glob_match(asset_types, review.get("asset_type", ""))
