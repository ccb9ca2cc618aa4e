"""Configuration for the config validator."""

from .options import ClientOptions
from .settings import EngineConfig, LoggingConfig, PolicyConfig, ValidatorSettings

__all__ = [
    "ClientOptions",
    "EngineConfig",
    "LoggingConfig",
    "PolicyConfig",
    "ValidatorSettings",
]
