"""Translation of raw review responses into violations."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .engine.models import RawResult, Responses
from .unstructured import nested_map, nested_string

__all__ = ["Violation", "Result"]


class Violation(BaseModel):
    """One constraint violated by one resource."""

    model_config = ConfigDict(frozen=True)

    constraint: str = Field(description="Name of the violated constraint")
    constraint_kind: str = ""
    constraint_config: Dict[str, Any] = Field(default_factory=dict)
    resource: str = Field(description="Display identifier of the reviewed resource")
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    severity: str = ""


@dataclass
class Result:
    """Outcome of reviewing one resource against one target.

    Attributes:
        target: Target name the resource was reviewed by
        name: Display identifier of the resource
        input_resource: Resource as the caller supplied it
        review_resource: Resource as the target evaluated it
        responses: Raw responses from the evaluation client
    """

    target: str
    name: str
    input_resource: Dict[str, Any]
    review_resource: Dict[str, Any]
    responses: Responses

    def to_violations(self) -> List[Violation]:
        """Violations in response order.

        Only reads the stored responses, so repeated calls return equal lists.
        """
        response = self.responses.for_target(self.target)
        if response is None:
            return []
        return [self._violation(raw) for raw in response.results]

    def _violation(self, raw: RawResult) -> Violation:
        constraint = raw.constraint
        metadata: Dict[str, Any] = {
            "details": raw.metadata.get("details") or {},
            "constraint": {
                "annotations": nested_map(constraint, "metadata", "annotations") or {},
                "labels": nested_map(constraint, "metadata", "labels") or {},
                "parameters": nested_map(constraint, "spec", "parameters") or {},
            },
        }
        return Violation(
            constraint=nested_string(constraint, "metadata", "name") or "",
            constraint_kind=constraint.get("kind") or "",
            constraint_config=copy.deepcopy(constraint),
            resource=self.name,
            message=raw.msg,
            metadata=metadata,
            severity=nested_string(constraint, "spec", "severity") or "",
        )
