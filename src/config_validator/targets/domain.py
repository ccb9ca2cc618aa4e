"""The closed set of policy evaluation domains."""

from __future__ import annotations

from enum import Enum

__all__ = ["TargetDomain"]


class TargetDomain(str, Enum):
    """Evaluation domain, valued by its constraint framework target name."""

    GCP = "validation.gcp.forsetisecurity.org"
    K8S = "admission.k8s.gatekeeper.sh"
    TF = "validation.resourcechange.terraform.cloud.google.com"

    @property
    def label(self) -> str:
        """Short name used in log events and error messages."""
        return self.name
