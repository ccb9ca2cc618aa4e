"""Constraint templates and constraints parsed from policy YAML."""

from __future__ import annotations

import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigurationError
from ..unstructured import api_group, nested_get, nested_map, nested_string

__all__ = [
    "TEMPLATE_GROUP",
    "CONSTRAINT_GROUP",
    "TEMPLATE_KIND",
    "ConstraintTemplate",
    "Constraint",
    "object_group",
]

TEMPLATE_GROUP = "templates.gatekeeper.sh"
CONSTRAINT_GROUP = "constraints.gatekeeper.sh"
TEMPLATE_KIND = "ConstraintTemplate"

_PACKAGE_LINE = re.compile(r"^\s*package\s+([A-Za-z_][A-Za-z0-9_.]*)\s*$", re.MULTILINE)


class ConstraintTemplate(BaseModel):
    """A constraint template bound to exactly one target."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: str = Field(description="Kind of the constraints this template defines")
    target: str
    rego: str
    libs: List[str] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def package_path(self) -> str:
        """Data path of the template's rego package, e.g. ``templates/gcp/X``."""
        match = _PACKAGE_LINE.search(self.rego)
        if match is None:
            raise ConfigurationError(f"template {self.name} rego has no package declaration")
        return match.group(1).replace(".", "/")

    @classmethod
    def from_object(cls, obj: Dict[str, Any]) -> "ConstraintTemplate":
        """Parse a ``ConstraintTemplate`` object.

        Raises:
            ConfigurationError: If a required field is missing or the template
                does not declare exactly one target.
        """
        name = nested_string(obj, "metadata", "name")
        if not name:
            raise ConfigurationError("constraint template missing metadata.name")

        kind = nested_string(obj, "spec", "crd", "spec", "names", "kind")
        if not kind:
            raise ConfigurationError(
                f"constraint template {name} missing spec.crd.spec.names.kind"
            )

        targets, _ = nested_get(obj, "spec", "targets")
        if isinstance(targets, dict):
            targets = [{"target": key, **(value or {})} for key, value in targets.items()]
        if not isinstance(targets, list) or len(targets) != 1:
            raise ConfigurationError(
                f"constraint template {name} must declare exactly one target"
            )

        entry = targets[0]
        target = entry.get("target") if isinstance(entry, dict) else None
        rego = entry.get("rego") if isinstance(entry, dict) else None
        if not isinstance(target, str) or not isinstance(rego, str) or not rego.strip():
            raise ConfigurationError(
                f"constraint template {name} target needs a name and rego source"
            )

        libs = entry.get("libs") or []
        if not isinstance(libs, list) or not all(isinstance(lib, str) for lib in libs):
            raise ConfigurationError(f"constraint template {name} libs must be strings")

        return cls(name=name, kind=kind, target=target, rego=rego, libs=libs, raw=obj)


class Constraint(BaseModel):
    """A constraint instance of some template's kind."""

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str
    spec: Dict[str, Any] = Field(default_factory=dict)
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.kind}/{self.name}"

    @property
    def parameters(self) -> Dict[str, Any]:
        return nested_map(self.spec, "parameters") or {}

    @property
    def match(self) -> Dict[str, Any]:
        return nested_map(self.spec, "match") or {}

    @property
    def severity(self) -> str:
        return nested_string(self.spec, "severity") or ""

    @property
    def enforcement_action(self) -> str:
        return nested_string(self.spec, "enforcementAction") or "deny"

    @classmethod
    def from_object(cls, obj: Dict[str, Any]) -> "Constraint":
        """Parse a constraint object.

        Raises:
            ConfigurationError: If kind or name is missing, or spec is not a
                mapping.
        """
        kind = obj.get("kind")
        name = nested_string(obj, "metadata", "name")
        if not isinstance(kind, str) or not kind or not name:
            raise ConfigurationError("constraint missing kind or metadata.name")

        spec = obj.get("spec", {})
        if spec is None:
            spec = {}
        if not isinstance(spec, dict):
            raise ConfigurationError(f"constraint {kind}/{name} spec must be a mapping")

        return cls(kind=kind, name=name, spec=spec, raw=obj)


def object_group(obj: Dict[str, Any]) -> str:
    """API group of an object's ``apiVersion``."""
    api_version = obj.get("apiVersion")
    if not isinstance(api_version, str):
        return ""
    return api_group(api_version)[0]
