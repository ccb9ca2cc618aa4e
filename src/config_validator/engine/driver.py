"""HTTP driver for an Open Policy Agent (OPA) server."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, Optional

import httpx

from ..config.options import ClientOptions
from ..exceptions import EngineError
from ..utils.retry import RetryConfig

logger = logging.getLogger(__name__)

__all__ = ["OPADriver"]


class OPADriver:
    """Uploads rego modules to OPA and evaluates data documents.

    One driver backs one evaluation client. Modules are only written while
    the client is bootstrapped; afterwards the driver is used for queries
    only and can serve concurrent reviews.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8181",
        timeout: float = 30.0,
        max_retries: int = 3,
        tracing: bool = False,
        disabled_builtins: Iterable[str] = (),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.tracing = tracing
        self.disabled_builtins = tuple(disabled_builtins)
        self._builtin_calls = [
            (builtin, re.compile(rf"(?<![\w.]){re.escape(builtin)}\s*\("))
            for builtin in self.disabled_builtins
        ]

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": "config-validator-opa-driver/0.1.0"},
            transport=transport,
        )

        retry = RetryConfig(
            max_attempts=max_retries,
            base_delay=0.5,
            max_delay=5.0,
            exceptions=(httpx.TransportError,),
        )
        self._send = retry.create_decorator()(self._send_once)

    @classmethod
    def from_options(
        cls, options: ClientOptions, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "OPADriver":
        return cls(
            base_url=options.opa_url,
            timeout=options.timeout_seconds,
            max_retries=options.max_retries,
            tracing=options.tracing,
            disabled_builtins=options.disabled_builtins,
            transport=transport,
        )

    async def _send_once(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self.client.request(method, url, **kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._send(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "OPA request failed: %s",
                e,
                extra={"url": url, "opa_endpoint": self.base_url},
            )
            raise EngineError(
                f"OPA request {method} {url} failed: {e}", endpoint=self.base_url
            ) from e
        return self._handle_response(response, method, url)

    def _handle_response(self, response: httpx.Response, method: str, url: str) -> Dict[str, Any]:
        """Decode an OPA response, raising EngineError for error statuses."""
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"message": response.text}
            if not isinstance(body, dict):
                body = {"message": str(body)}
            message = body.get("message") or response.reason_phrase
            errors = body.get("errors") or []
            rendered = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            if rendered:
                message = f"{message}: {rendered}"
            raise EngineError(
                f"OPA {method} {url} returned {response.status_code}: {message}",
                endpoint=self.base_url,
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise EngineError(
                f"OPA {method} {url} returned invalid JSON", endpoint=self.base_url
            ) from e
        if not isinstance(data, dict):
            raise EngineError(
                f"OPA {method} {url} returned a non-object body", endpoint=self.base_url
            )
        return data

    def check_builtins(self, module_id: str, rego: str) -> None:
        """Reject rego that calls a disabled builtin.

        Raises:
            EngineError: Naming the module and the builtin.
        """
        for builtin, call in self._builtin_calls:
            if call.search(rego):
                raise EngineError(
                    f"module {module_id} calls disabled builtin {builtin}"
                )

    async def put_module(self, module_id: str, rego: str) -> None:
        """Create or replace a rego module.

        Raises:
            EngineError: If a disabled builtin is called or OPA rejects the
                module.
        """
        self.check_builtins(module_id, rego)
        await self._request(
            "PUT",
            f"/v1/policies/{module_id}",
            content=rego.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )

    async def query(self, path: str, input_data: Dict[str, Any]) -> Any:
        """Evaluate the data document at ``path`` against ``input_data``.

        Returns ``None`` when the document is undefined.
        """
        params = {"explain": "full"} if self.tracing else None
        body = await self._request(
            "POST", f"/v1/data/{path}", json={"input": input_data}, params=params
        )
        if self.tracing and "explanation" in body:
            logger.debug(
                "OPA evaluation trace",
                extra={"path": path, "explanation": body["explanation"]},
            )
        return body.get("result")

    async def health(self) -> bool:
        """Whether the OPA server reports itself healthy."""
        try:
            await self._request("GET", "/health")
        except EngineError:
            return False
        return True

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
