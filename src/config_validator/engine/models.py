"""Raw review responses returned by evaluation clients.

These stay internal to the validator; callers get them wrapped in a
``Result``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

__all__ = [
    "RawResult",
    "Response",
    "Responses",
]


@dataclass(frozen=True, slots=True)
class RawResult:
    """One violation reported by one constraint."""

    msg: str
    metadata: Dict[str, Any]
    constraint: Dict[str, Any]
    enforcement_action: str = "deny"


@dataclass(slots=True)
class Response:
    """All results one target produced for one reviewed object."""

    target: str
    results: List[RawResult] = field(default_factory=list)


@dataclass(slots=True)
class Responses:
    """Responses keyed by target name."""

    by_target: Dict[str, Response] = field(default_factory=dict)

    def for_target(self, target: str) -> Optional[Response]:
        return self.by_target.get(target)

    def results(self) -> List[RawResult]:
        """Every result across targets, in target insertion order."""
        return [result for response in self.by_target.values() for result in response.results]
