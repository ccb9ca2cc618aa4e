"""Per-target policy configuration.

Splits the loaded templates and constraints by the target domain that will
evaluate them and attaches the shared rego library to every template.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import ConfigurationError
from ..logging import get_logger
from ..targets.domain import TargetDomain
from .file_loader import PolicyFile, load_library, load_policy_files
from .objects import (
    CONSTRAINT_GROUP,
    TEMPLATE_GROUP,
    TEMPLATE_KIND,
    Constraint,
    ConstraintTemplate,
    object_group,
)
from .parser import load_unstructured_from_contents

logger = get_logger(__name__)

__all__ = ["Configuration"]


def _by_domain() -> Dict[TargetDomain, list]:
    return {domain: [] for domain in TargetDomain}


@dataclass
class Configuration:
    """Templates and constraints grouped by target domain."""

    templates: Dict[TargetDomain, List[ConstraintTemplate]] = field(default_factory=_by_domain)
    constraints: Dict[TargetDomain, List[Constraint]] = field(default_factory=_by_domain)
    library: List[str] = field(default_factory=list)

    def templates_for(self, domain: TargetDomain) -> List[ConstraintTemplate]:
        return self.templates.get(domain, [])

    def constraints_for(self, domain: TargetDomain) -> List[Constraint]:
        return self.constraints.get(domain, [])

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Template and constraint counts per domain."""
        return {
            domain.label: {
                "templates": len(self.templates_for(domain)),
                "constraints": len(self.constraints_for(domain)),
            }
            for domain in TargetDomain
        }

    @classmethod
    def from_objects(
        cls, objects: Iterable[Dict[str, Any]], library: Optional[List[str]] = None
    ) -> "Configuration":
        """Build a configuration from parsed policy objects.

        Every problem found is reported at once.

        Raises:
            ConfigurationError: If an object is neither a template nor a
                constraint, a template names an unknown target or a duplicate
                kind, or a constraint has no template.
        """
        library = list(library or [])
        config = cls(library=library)
        errors: List[str] = []
        kind_domains: Dict[str, TargetDomain] = {}
        pending: List[Constraint] = []
        seen_constraints: set = set()

        for obj in objects:
            group = object_group(obj)
            kind = obj.get("kind")
            try:
                if group == TEMPLATE_GROUP and kind == TEMPLATE_KIND:
                    template = ConstraintTemplate.from_object(obj)
                    try:
                        domain = TargetDomain(template.target)
                    except ValueError:
                        errors.append(
                            f"template {template.name} has unknown target {template.target!r}"
                        )
                        continue
                    if template.kind in kind_domains:
                        errors.append(f"duplicate template for kind {template.kind}")
                        continue
                    if library:
                        template = template.model_copy(
                            update={"libs": [*template.libs, *library]}
                        )
                    kind_domains[template.kind] = domain
                    config.templates[domain].append(template)
                elif group == CONSTRAINT_GROUP:
                    constraint = Constraint.from_object(obj)
                    if constraint.key in seen_constraints:
                        errors.append(f"duplicate constraint {constraint.key}")
                        continue
                    seen_constraints.add(constraint.key)
                    pending.append(constraint)
                else:
                    errors.append(
                        f"unexpected object {obj.get('apiVersion')}/{kind} in policy files"
                    )
            except ConfigurationError as e:
                errors.append(str(e))

        for constraint in pending:
            domain = kind_domains.get(constraint.kind)
            if domain is None:
                errors.append(
                    f"constraint {constraint.key} has no template for kind {constraint.kind}"
                )
                continue
            config.constraints[domain].append(constraint)

        if errors:
            raise ConfigurationError(
                "Invalid policy configuration: " + "; ".join(errors),
                details={"errors": errors},
            )

        logger.info("Policy configuration loaded", summary=config.summary())
        return config

    @classmethod
    def from_contents(
        cls, policy_files: Iterable[PolicyFile], library: Optional[List[str]] = None
    ) -> "Configuration":
        """Build a configuration from in-memory policy file contents."""
        return cls.from_objects(load_unstructured_from_contents(policy_files), library)

    @classmethod
    def load(cls, policy_paths: Iterable[str], policy_library_dir: str) -> "Configuration":
        """Read policy files and the rego library from disk."""
        policy_files = load_policy_files(policy_paths)
        library = load_library(policy_library_dir)
        return cls.from_contents(policy_files, library)
