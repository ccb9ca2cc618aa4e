"""Policy evaluation engine access.

- OPADriver: HTTP driver for an Open Policy Agent server
- ConstraintClient: templates, constraints and reviews for one target
"""

from .client import ConstraintClient, Driver, EvaluationClient
from .driver import OPADriver
from .models import RawResult, Response, Responses

__all__ = [
    "ConstraintClient",
    "Driver",
    "EvaluationClient",
    "OPADriver",
    "RawResult",
    "Response",
    "Responses",
]
