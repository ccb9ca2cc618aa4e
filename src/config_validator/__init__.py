"""
Config Validator: policy checks for cloud assets, Kubernetes objects and
Terraform resource changes.

Resources are routed to the constraint framework target that evaluates them
and the raw results are translated into a uniform list of violations.
"""

__version__ = "0.1.0"

from .asset import Asset
from .config import ClientOptions, ValidatorSettings
from .configs import Configuration, PolicyFile
from .exceptions import ValidatorError
from .logging import get_logger, setup_logging
from .result import Result, Violation
from .targets import TargetDomain
from .validator import ConfigValidator, Validator, new_validator_config

__all__ = [
    "Asset",
    "ClientOptions",
    "ConfigValidator",
    "Configuration",
    "PolicyFile",
    "Result",
    "TargetDomain",
    "Validator",
    "ValidatorError",
    "ValidatorSettings",
    "Violation",
    "get_logger",
    "new_validator_config",
    "setup_logging",
]
