"""
Metadata-only logging configuration for the config validator.

Resources under review routinely embed IAM bindings, secrets in Kubernetes
objects and Terraform attribute values, so log events carry identifiers and
counts only; payload fields are stripped before rendering.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, cast

import structlog
from structlog.types import FilteringBoundLogger


class MetadataOnlyProcessor:
    """
    Structlog processor that removes resource payloads from log events.

    Note: This class has only one public method (__call__) as it's designed
    to be used as a single-purpose structlog processor.
    """

    PAYLOAD_FIELDS = {
        "resource",
        "iam_policy",
        "org_policy",
        "access_policy",
        "change",
        "object",
        "review",
        "input",
        "asset",
    }

    def __call__(
        self, logger: FilteringBoundLogger, method_name: str, event_dict: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Drop payload fields from the event.

        Args:
            logger: Structlog logger instance
            method_name: Log method name (info, error, etc.)
            event_dict: Event dictionary to process

        Returns:
            Event dictionary without payload fields
        """
        return {
            key: value
            for key, value in event_dict.items()
            if key not in self.PAYLOAD_FIELDS
        }


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
) -> None:
    """
    Set up structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json, console)
        log_file: Optional log file path
    """
    level = getattr(logging, log_level.upper())

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        MetadataOnlyProcessor(),
    ]

    if log_format == "json":
        processors.extend(
            [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        )
    else:
        processors.extend([structlog.dev.ConsoleRenderer(colors=False)])

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))
