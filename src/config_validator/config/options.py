"""Construction options for evaluation clients."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Tuple

DEFAULT_OPA_URL = "http://localhost:8181"


@dataclass(frozen=True)
class ClientOptions:
    """Options applied to every evaluation client before it is built.

    Attributes:
        tracing: Ask the engine for a full evaluation explanation on every
            query and log it at debug level. Defaults to ``False``.
        disabled_builtins: Engine builtins templates may not call, e.g.
            ``("http.send",)``. Defaults to none.
        opa_url: Base URL of the Open Policy Agent server.
        timeout_seconds: Per-request timeout for engine calls.
        max_retries: Attempts for transient transport failures.
    """

    tracing: bool = False
    disabled_builtins: Tuple[str, ...] = field(default_factory=tuple)
    opa_url: str = DEFAULT_OPA_URL
    timeout_seconds: float = 30.0
    max_retries: int = 3

    def disable_builtins(self, *builtins: str) -> "ClientOptions":
        """Return a copy with ``builtins`` added to the disabled set."""
        merged = tuple(dict.fromkeys(self.disabled_builtins + tuple(builtins)))
        return replace(self, disabled_builtins=merged)
