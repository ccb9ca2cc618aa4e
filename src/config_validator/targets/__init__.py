"""Target domains, their handlers and resource classification.

The domain set is closed: each ``TargetDomain`` carries its handler, the
adapter that turns a reviewed resource into the shape its handler expects,
and the path of the field used as the resource's display identifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from ..asset import convert_cai_to_k8s, is_k8s
from .base import TargetHandler
from .domain import TargetDomain
from .gcp import GCPTarget
from .k8s import K8sTarget
from .tf import TFTarget

__all__ = [
    "TargetDomain",
    "TargetHandler",
    "TargetSpec",
    "GCPTarget",
    "K8sTarget",
    "TFTarget",
    "TARGETS",
    "classify",
]


def _unchanged(resource: Dict[str, Any]) -> Dict[str, Any]:
    return resource


@dataclass(frozen=True)
class TargetSpec:
    """Everything the validator needs to know about one domain."""

    domain: TargetDomain
    handler_factory: Callable[[], TargetHandler]
    adapt: Callable[[Dict[str, Any]], Dict[str, Any]]
    identifier_path: Tuple[str, ...]


TARGETS: Dict[TargetDomain, TargetSpec] = {
    TargetDomain.GCP: TargetSpec(TargetDomain.GCP, GCPTarget, _unchanged, ("name",)),
    TargetDomain.K8S: TargetSpec(
        TargetDomain.K8S, K8sTarget, convert_cai_to_k8s, ("metadata", "name")
    ),
    TargetDomain.TF: TargetSpec(TargetDomain.TF, TFTarget, _unchanged, ("address",)),
}


def classify(resource: Dict[str, Any]) -> TargetDomain:
    """Pick the domain for an asset-shaped resource.

    Terraform changes have their own entry point and are never classified.
    """
    if is_k8s(resource):
        return TargetDomain.K8S
    return TargetDomain.GCP
