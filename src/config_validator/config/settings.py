"""Validator settings loaded from environment variables and YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationError
from .options import DEFAULT_OPA_URL, ClientOptions


def _split_csv(value: Any) -> List[str]:
    if isinstance(value, str):
        return [token.strip() for token in value.split(",") if token.strip()]
    return list(value or [])


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )


class PolicyConfig(BaseModel):
    """Where constraints, templates and the shared rego library live."""

    policy_paths: List[str] = Field(
        default_factory=list,
        description="Files or directories holding constraint and template YAML",
    )
    policy_library_dir: Optional[str] = Field(
        default=None, description="Directory holding shared rego library files"
    )

    @field_validator("policy_paths", mode="before")
    @classmethod
    def _parse_policy_paths(cls, value: Any) -> List[str]:
        return _split_csv(value)


class EngineConfig(BaseModel):
    """Policy evaluation engine settings."""

    opa_url: str = Field(default=DEFAULT_OPA_URL, description="OPA server base URL")
    timeout_seconds: float = Field(
        default=30.0, gt=0, le=600, description="Per-request timeout"
    )
    max_retries: int = Field(
        default=3, ge=1, le=10, description="Attempts for transient failures"
    )
    tracing: bool = Field(default=False, description="Log evaluation explanations")
    disabled_builtins: List[str] = Field(
        default_factory=list, description="Builtins templates may not call"
    )

    @field_validator("disabled_builtins", mode="before")
    @classmethod
    def _parse_disabled_builtins(cls, value: Any) -> List[str]:
        return _split_csv(value)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json, console)")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = (value or "INFO").upper()
        if level not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}")
        return level

    @field_validator("format")
    @classmethod
    def _validate_format(cls, value: str) -> str:
        if value not in {"json", "console"}:
            raise ValueError("format must be 'json' or 'console'")
        return value


class ValidatorSettings(BaseSettings):
    """Main validator settings.

    Environment variables use the ``CONFIG_VALIDATOR_`` prefix and ``__`` for
    nesting, e.g. ``CONFIG_VALIDATOR_ENGINE__OPA_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFIG_VALIDATOR_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "ValidatorSettings":
        """Load settings from a YAML file.

        Values in the file take precedence; environment variables fill in
        whatever the file leaves unset.
        """
        path = Path(config_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Configuration file not found: {path}", source=str(path)
            ) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}", source=str(path)
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {path} must contain a mapping", source=str(path)
            )
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration file: {path}: {_describe(e)}", source=str(path)
            ) from e

    def client_options(self) -> ClientOptions:
        """Build evaluation client options from the engine settings."""
        return ClientOptions(
            tracing=self.engine.tracing,
            disabled_builtins=tuple(self.engine.disabled_builtins),
            opa_url=self.engine.opa_url,
            timeout_seconds=self.engine.timeout_seconds,
            max_retries=self.engine.max_retries,
        )
