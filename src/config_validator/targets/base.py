"""Target handler interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from .domain import TargetDomain

if TYPE_CHECKING:  # pragma: no cover
    from ..configs.objects import Constraint

__all__ = ["TargetHandler"]


class TargetHandler(ABC):
    """Adapts resources of one domain for review and matches constraints.

    Handlers are stateless and safe to share between concurrent reviews.
    """

    domain: TargetDomain

    @property
    def name(self) -> str:
        return self.domain.value

    @abstractmethod
    def handle_review(self, obj: Any) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """Return ``(handled, review)`` for ``obj``.

        ``handled`` is ``False`` when the object is not a shape this target
        evaluates; ``review`` is then ``None``.
        """

    @abstractmethod
    def matches(self, constraint: "Constraint", review: Dict[str, Any]) -> bool:
        """Whether ``constraint`` applies to the reviewed object."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
