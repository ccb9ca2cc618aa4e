"""Exception hierarchy for the config validator.

Every failure point of the review pipeline raises its own subclass so callers
can tell an ancestry problem from an engine outage without parsing messages.
Stages wrap the underlying error with ``raise ... from err`` instead of
replacing it.
"""

from typing import Any, Dict, List, Optional


class ValidatorError(Exception):
    """Base exception for all validator errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error_code": self.error_code,
            "message": str(self),
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.message}: {self.__cause__}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}'"
            f")"
        )


class ConfigurationError(ValidatorError):
    """Raised for missing or malformed policy configuration."""

    def __init__(
        self,
        message: str = "Configuration error",
        error_code: str = "CONFIGURATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ):
        super().__init__(message, error_code, details)
        if source:
            self.details["source"] = source


class BootstrapError(ValidatorError):
    """Raised when templates or constraints fail to load into a client.

    Carries every cause in the order it was collected.
    """

    def __init__(
        self,
        message: str = "Bootstrap failed",
        error_code: str = "BOOTSTRAP_ERROR",
        causes: Optional[List[Exception]] = None,
        target: Optional[str] = None,
    ):
        super().__init__(message, error_code)
        self.causes = list(causes or [])
        self.target = target
        if target:
            self.details["target"] = target
        if self.causes:
            self.details["causes"] = [str(cause) for cause in self.causes]

    def __str__(self) -> str:
        if not self.causes:
            return super().__str__()
        rendered = "\n".join(f"  * {cause}" for cause in self.causes)
        return f"{self.message} ({len(self.causes)} errors):\n{rendered}"


class AncestryError(ValidatorError):
    """Raised when a resource carries no usable ancestry information."""

    def __init__(self, message: str, error_code: str = "ANCESTRY_ERROR"):
        super().__init__(message, error_code)


class InvalidAssetError(ValidatorError):
    """Raised when a resource fails shape validation."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_ASSET",
        field_errors: Optional[List[str]] = None,
    ):
        super().__init__(message, error_code)
        self.field_errors = list(field_errors or [])
        if self.field_errors:
            self.details["field_errors"] = self.field_errors


class ConversionError(ValidatorError):
    """Raised when a resource cannot be adapted to a target's shape."""

    def __init__(self, message: str, error_code: str = "CONVERSION_ERROR"):
        super().__init__(message, error_code)


class UnhandledResourceError(ValidatorError):
    """Raised when a target refuses to handle a resource."""

    def __init__(
        self,
        message: str = "Unhandled resource",
        error_code: str = "UNHANDLED_RESOURCE",
        target: Optional[str] = None,
    ):
        super().__init__(message, error_code)
        if target:
            self.details["target"] = target


class IdentifierError(ValidatorError):
    """Raised when the display identifier field is missing or mistyped."""

    def __init__(
        self,
        message: str,
        error_code: str = "IDENTIFIER_ERROR",
        field: Optional[str] = None,
    ):
        super().__init__(message, error_code)
        if field:
            self.details["field"] = field


class ReviewError(ValidatorError):
    """Raised when a target's evaluation call fails."""

    def __init__(
        self,
        message: str,
        error_code: str = "REVIEW_ERROR",
        target: Optional[str] = None,
    ):
        super().__init__(message, error_code)
        if target:
            self.details["target"] = target


class EngineError(ValidatorError):
    """Raised when the policy evaluation engine rejects a request."""

    def __init__(
        self,
        message: str,
        error_code: str = "ENGINE_ERROR",
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, error_code)
        self.status_code = status_code
        if endpoint:
            self.details["endpoint"] = endpoint
        if status_code is not None:
            self.details["status_code"] = status_code


class ErrorCollection:
    """Ordered collection of errors reported together as one BootstrapError."""

    def __init__(self) -> None:
        self._errors: List[Exception] = []

    def add(self, error: Exception) -> None:
        self._errors.append(error)

    def empty(self) -> bool:
        return not self._errors

    def __len__(self) -> int:
        return len(self._errors)

    @property
    def errors(self) -> List[Exception]:
        return list(self._errors)

    def to_error(self, message: str, target: Optional[str] = None) -> BootstrapError:
        return BootstrapError(message, causes=self._errors, target=target)
