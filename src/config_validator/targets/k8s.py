"""Kubernetes object target."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..unstructured import api_group, nested_string, nested_string_list
from .base import TargetHandler
from .domain import TargetDomain
from .match import any_glob_match

if TYPE_CHECKING:  # pragma: no cover
    from ..configs.objects import Constraint

__all__ = ["K8sTarget"]


def _kind_matches(criteria: List[Any], group: str, kind: str) -> bool:
    for entry in criteria:
        if not isinstance(entry, dict):
            continue
        groups = nested_string_list(entry, "apiGroups") or ["*"]
        kinds = nested_string_list(entry, "kinds") or ["*"]
        if ("*" in groups or group in groups) and ("*" in kinds or kind in kinds):
            return True
    return False


class K8sTarget(TargetHandler):
    """Reviews Kubernetes objects wrapped in an admission-style request."""

    domain = TargetDomain.K8S

    def handle_review(self, obj: Any) -> Tuple[bool, Optional[Dict[str, Any]]]:
        if not isinstance(obj, dict):
            return False, None
        api_version = obj.get("apiVersion")
        kind = obj.get("kind")
        if not isinstance(api_version, str) or not isinstance(kind, str):
            return False, None

        group, version = api_group(api_version)
        review = {
            "kind": {"group": group, "version": version, "kind": kind},
            "name": nested_string(obj, "metadata", "name") or "",
            "namespace": nested_string(obj, "metadata", "namespace") or "",
            "operation": "CREATE",
            "object": obj,
        }
        return True, review

    def matches(self, constraint: "Constraint", review: Dict[str, Any]) -> bool:
        match = constraint.match
        group = review["kind"]["group"]
        kind = review["kind"]["kind"]

        criteria = match.get("kinds")
        if isinstance(criteria, list) and criteria and not _kind_matches(criteria, group, kind):
            return False

        namespace = review.get("namespace", "")
        if group == "" and kind == "Namespace":
            namespace = review.get("name", "")

        scope = match.get("scope", "*")
        if scope == "Namespaced" and not namespace:
            return False
        if scope == "Cluster" and namespace and kind != "Namespace":
            return False

        # Namespace criteria do not apply to cluster scoped objects.
        if namespace:
            namespaces = nested_string_list(match, "namespaces")
            if namespaces and not any_glob_match(namespaces, namespace):
                return False
            excluded = nested_string_list(match, "excludedNamespaces") or []
            if any_glob_match(excluded, namespace):
                return False

        return True
