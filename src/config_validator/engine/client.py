"""Constraint framework client for one target domain."""

from __future__ import annotations

import asyncio
import hashlib
from typing import Any, Dict, List, Protocol

from ..configs.objects import Constraint, ConstraintTemplate
from ..exceptions import ConfigurationError, EngineError, UnhandledResourceError
from ..logging import get_logger
from ..targets.base import TargetHandler
from .models import RawResult, Response, Responses

logger = get_logger(__name__)

__all__ = [
    "Driver",
    "EvaluationClient",
    "ConstraintClient",
]

# Rule names a template may report violations under; "deny" is the legacy
# Forseti spelling.
VIOLATION_RULES = ("violation", "deny")


class Driver(Protocol):
    """Policy engine backend used by a ConstraintClient."""

    async def put_module(self, module_id: str, rego: str) -> None: ...

    async def query(self, path: str, input_data: Dict[str, Any]) -> Any: ...

    async def close(self) -> None: ...


class EvaluationClient(Protocol):
    """What the validator needs from a per-domain evaluation client."""

    @property
    def target(self) -> str: ...

    async def review(self, obj: Any) -> Responses: ...

    async def close(self) -> None: ...


def _library_module_id(source: str) -> str:
    # Identical library sources share one module so re-uploads are idempotent.
    return "lib/" + hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]


def _violations(document: Any) -> List[Dict[str, Any]]:
    if not isinstance(document, dict):
        return []
    found: List[Dict[str, Any]] = []
    for rule in VIOLATION_RULES:
        entries = document.get(rule)
        if isinstance(entries, list):
            found.extend(entry for entry in entries if isinstance(entry, dict))
    return found


class ConstraintClient:
    """Holds the templates and constraints of one target and reviews objects.

    Templates and constraints are added only while the client is being
    bootstrapped. ``review`` never mutates client state, so one client can
    serve concurrent reviews.
    """

    def __init__(self, handler: TargetHandler, driver: Driver):
        self._handler = handler
        self._driver = driver
        self._templates: Dict[str, ConstraintTemplate] = {}
        self._constraints: List[Constraint] = []
        self._constraint_keys: set = set()
        self.logger = logger.bind(target=handler.domain.label)

    @property
    def target(self) -> str:
        return self._handler.name

    @property
    def handler(self) -> TargetHandler:
        return self._handler

    @property
    def templates(self) -> List[ConstraintTemplate]:
        return list(self._templates.values())

    @property
    def constraints(self) -> List[Constraint]:
        return list(self._constraints)

    async def add_template(self, template: ConstraintTemplate) -> None:
        """Compile a template into the engine.

        Raises:
            ConfigurationError: If the template belongs to another target or
                its kind is already loaded.
            EngineError: If the engine rejects the template's rego.
        """
        if template.target != self.target:
            raise ConfigurationError(
                f"template {template.name} targets {template.target}, not {self.target}"
            )
        if template.kind in self._templates:
            raise ConfigurationError(f"template kind {template.kind} already loaded")

        package_path = template.package_path
        for lib in template.libs:
            await self._driver.put_module(_library_module_id(lib), lib)
        await self._driver.put_module(f"{self.target}/templates/{template.kind}", template.rego)

        self._templates[template.kind] = template
        self.logger.debug("Template added", kind=template.kind, package=package_path)

    async def add_constraint(self, constraint: Constraint) -> None:
        """Register a constraint of a loaded template's kind.

        Raises:
            ConfigurationError: If no template defines the constraint's kind or
                a constraint of the same kind and name is already loaded.
        """
        if constraint.kind not in self._templates:
            raise ConfigurationError(
                f"constraint {constraint.key} has no loaded template for kind {constraint.kind}"
            )
        if constraint.key in self._constraint_keys:
            raise ConfigurationError(f"constraint {constraint.key} already loaded")

        self._constraint_keys.add(constraint.key)
        self._constraints.append(constraint)
        self.logger.debug("Constraint added", constraint=constraint.key)

    async def review(self, obj: Any) -> Responses:
        """Evaluate ``obj`` against every matching constraint.

        Matching constraints are evaluated concurrently; results keep the
        order in which constraints were added. The first failing evaluation
        cancels the ones still in flight.

        Raises:
            UnhandledResourceError: If the target cannot review ``obj``.
            EngineError: If an evaluation call fails.
        """
        handled, review = self._handler.handle_review(obj)
        if not handled or review is None:
            raise UnhandledResourceError(
                f"{self._handler.domain.label} target cannot review the resource",
                target=self.target,
            )

        matched = [c for c in self._constraints if self._handler.matches(c, review)]
        tasks = [asyncio.ensure_future(self._evaluate(c, review)) for c in matched]
        try:
            batches = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results = [result for batch in batches for result in batch]
        self.logger.debug(
            "Review evaluated", matched_constraints=len(matched), results=len(results)
        )
        return Responses({self.target: Response(target=self.target, results=results)})

    async def _evaluate(self, constraint: Constraint, review: Dict[str, Any]) -> List[RawResult]:
        template = self._templates[constraint.kind]
        input_data = {
            "review": review,
            "parameters": constraint.parameters,
            "constraint": constraint.raw,
        }
        try:
            document = await self._driver.query(template.package_path, input_data)
        except EngineError as e:
            raise EngineError(
                f"evaluating constraint {constraint.key} failed: {e}",
                status_code=e.status_code,
            ) from e

        return [
            RawResult(
                msg=str(entry.get("msg", "")),
                metadata={"details": entry.get("details") or {}},
                constraint=constraint.raw,
                enforcement_action=constraint.enforcement_action,
            )
            for entry in _violations(document)
        ]

    async def close(self) -> None:
        await self._driver.close()

