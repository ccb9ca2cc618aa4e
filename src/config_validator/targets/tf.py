"""Terraform planned resource change target."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..unstructured import nested_string_list
from .base import TargetHandler
from .domain import TargetDomain
from .match import any_glob_match

if TYPE_CHECKING:  # pragma: no cover
    from ..configs.objects import Constraint

__all__ = ["TFTarget"]

_REQUIRED_STRINGS = ("address", "name", "type")


class TFTarget(TargetHandler):
    """Reviews ``resource_changes`` entries of a Terraform plan."""

    domain = TargetDomain.TF

    def handle_review(self, obj: Any) -> Tuple[bool, Optional[Dict[str, Any]]]:
        if not isinstance(obj, dict):
            return False, None
        if not all(isinstance(obj.get(field), str) for field in _REQUIRED_STRINGS):
            return False, None
        if not isinstance(obj.get("change"), dict):
            return False, None
        return True, obj

    def missing_fields(self, obj: Any) -> List[str]:
        """Names of the fields that keep ``obj`` from being handled."""
        if not isinstance(obj, dict):
            return ["<object>"]
        missing = [field for field in _REQUIRED_STRINGS if not isinstance(obj.get(field), str)]
        if not isinstance(obj.get("change"), dict):
            missing.append("change")
        return missing

    def matches(self, constraint: "Constraint", review: Dict[str, Any]) -> bool:
        match = constraint.match
        address = review.get("address", "")
        included = nested_string_list(match, "addresses") or ["**"]
        excluded = nested_string_list(match, "excludedAddresses") or []
        if not any_glob_match(included, address, separator="."):
            return False
        return not any_glob_match(excluded, address, separator=".")
