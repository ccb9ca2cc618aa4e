"""Validator: routes resources to per-domain evaluation clients.

Expected usage::

    async with await Validator.create(policy_paths, library_dir) as validator:
        violations = await validator.review_asset(asset)

Construction loads every template and constraint once. The loaded clients
are only read afterwards, so one validator can serve concurrent reviews.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .ancestry import resolve_ancestry, sanitize_ancestry_path
from .asset import Asset, validate_asset
from .bootstrap import new_constraint_client
from .config.options import ClientOptions
from .configs.configuration import Configuration
from .configs.file_loader import PolicyFile
from .engine.client import EvaluationClient
from .engine.models import Responses
from .exceptions import (
    BootstrapError,
    ConfigurationError,
    ConversionError,
    EngineError,
    IdentifierError,
    InvalidAssetError,
    ReviewError,
    UnhandledResourceError,
    ValidatorError,
)
from .logging import get_logger
from .result import Result, Violation
from .targets import TARGETS, TargetDomain, TFTarget, classify
from .unstructured import nested_get

logger = get_logger(__name__)

__all__ = [
    "ConfigValidator",
    "Validator",
    "new_validator_config",
]


class ConfigValidator(Protocol):
    """Anything that can review a typed asset."""

    async def review_asset(self, asset: Asset) -> List[Violation]: ...


def new_validator_config(
    policy_paths: Iterable[str], policy_library_dir: Optional[str]
) -> Configuration:
    """Load the policy configuration from disk.

    Raises:
        ConfigurationError: If no policy path or library directory is set, or
            the policy files are invalid.
    """
    policy_paths = list(policy_paths or [])
    if not policy_paths:
        raise ConfigurationError(
            "No policy path set, provide at least one policy file or directory"
        )
    if not policy_library_dir:
        raise ConfigurationError("No policy library set")

    logger.debug(
        "Loading policy configuration",
        policy_paths=policy_paths,
        policy_library_dir=policy_library_dir,
    )
    return Configuration.load(policy_paths, policy_library_dir)


def _identifier(domain: TargetDomain, obj: Dict[str, Any]) -> str:
    path = TARGETS[domain].identifier_path
    value, found = nested_get(obj, *path)
    field = ".".join(path)
    if not found:
        raise IdentifierError(f"{domain.label} resource missing {field}", field=field)
    if not isinstance(value, str):
        raise IdentifierError(
            f"{domain.label} resource {field} must be a string, got {type(value).__name__}",
            field=field,
        )
    return value


class Validator:
    """Reviews resources against the GCP, K8S and TF policy sets."""

    def __init__(
        self,
        gcp_client: EvaluationClient,
        k8s_client: EvaluationClient,
        tf_client: EvaluationClient,
    ):
        self._clients: Dict[TargetDomain, EvaluationClient] = {
            TargetDomain.GCP: gcp_client,
            TargetDomain.K8S: k8s_client,
            TargetDomain.TF: tf_client,
        }
        self._tf_target = TFTarget()

    @classmethod
    async def from_config(
        cls, config: Configuration, options: Optional[ClientOptions] = None
    ) -> "Validator":
        """Build and load one evaluation client per domain.

        Domains are set up in GCP, K8S, TF order and the first failure aborts
        construction; clients already built are closed.

        Raises:
            BootstrapError: Naming the domain whose client failed.
        """
        options = options or ClientOptions()
        clients: List[EvaluationClient] = []
        for domain in (TargetDomain.GCP, TargetDomain.K8S, TargetDomain.TF):
            try:
                client = await new_constraint_client(
                    TARGETS[domain].handler_factory(),
                    config.templates_for(domain),
                    config.constraints_for(domain),
                    options,
                )
            except ValidatorError as e:
                for built in clients:
                    await built.close()
                logger.error("Client setup failed", target=domain.label, error=str(e))
                raise BootstrapError(
                    f"unable to set up {domain.label} Constraint Framework client",
                    target=domain.value,
                ) from e
            clients.append(client)

        logger.info("Validator ready", summary=config.summary())
        return cls(*clients)

    @classmethod
    async def create(
        cls,
        policy_paths: Iterable[str],
        policy_library_dir: Optional[str],
        options: Optional[ClientOptions] = None,
    ) -> "Validator":
        """Load policies from disk and build a validator."""
        config = new_validator_config(policy_paths, policy_library_dir)
        return await cls.from_config(config, options)

    @classmethod
    async def from_contents(
        cls,
        policy_files: List[PolicyFile],
        policy_library: List[str],
        options: Optional[ClientOptions] = None,
    ) -> "Validator":
        """Build a validator from in-memory policy files and library sources.

        Raises:
            ConfigurationError: If either input is empty or the policy files
                are invalid.
        """
        if not policy_files:
            raise ConfigurationError("No policy constraints provided")
        if not policy_library:
            raise ConfigurationError("No policy library provided")

        config = Configuration.from_contents(policy_files, policy_library)
        return await cls.from_config(config, options)

    async def close(self) -> None:
        """Release every evaluation client."""
        for client in self._clients.values():
            await client.close()

    async def __aenter__(self) -> "Validator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def review_asset(self, asset: Asset) -> List[Violation]:
        """Review a typed asset and return its violations.

        Raises:
            InvalidAssetError: If the asset is missing required fields.
            ValidatorError: Any error raised while reviewing.
        """
        # Ancestors are resolved before validation so an asset that only
        # carries an ancestors list passes the ancestry path check.
        sanitize_ancestry_path(asset)
        validate_asset(asset)

        result = await self.review_unmarshalled_json(asset.to_dict())
        return result.to_violations()

    def fix_ancestry(self, resource: Dict[str, Any]) -> None:
        """Set the canonical ``ancestry_path`` on ``resource`` in place."""
        resolve_ancestry(resource)

    async def review_json(self, data: str) -> Result:
        """Review an asset given as JSON text."""
        try:
            resource = json.loads(data)
        except ValueError as e:
            raise InvalidAssetError("failed to unmarshal json") from e
        if not isinstance(resource, dict):
            raise InvalidAssetError("failed to unmarshal json: expected a JSON object")
        return await self.review_unmarshalled_json(resource)

    async def review_unmarshalled_json(self, resource: Dict[str, Any]) -> Result:
        """Review a decoded asset.

        ``resource`` gets its ancestry path resolved in place.

        Raises:
            AncestryError: If the asset has no ancestry information.
            ValidatorError: Any error raised by the selected target.
        """
        self.fix_ancestry(resource)

        if classify(resource) is TargetDomain.K8S:
            return await self._review_k8s(resource)
        return await self._review_gcp(resource)

    async def _review_k8s(self, resource: Dict[str, Any]) -> Result:
        try:
            obj = TARGETS[TargetDomain.K8S].adapt(resource)
        except ConversionError as e:
            raise ConversionError("failed to convert asset to admission request") from e

        name = _identifier(TargetDomain.K8S, obj)
        responses = await self._review(TargetDomain.K8S, obj)
        return Result(TargetDomain.K8S.value, name, resource, obj, responses)

    async def _review_gcp(self, resource: Dict[str, Any]) -> Result:
        name = _identifier(TargetDomain.GCP, resource)
        responses = await self._review(TargetDomain.GCP, resource)
        return Result(TargetDomain.GCP.value, name, resource, resource, responses)

    async def review_tf_resource_change(self, resource: Dict[str, Any]) -> List[Violation]:
        """Review one Terraform planned resource change.

        Raises:
            UnhandledResourceError: If the change lacks the fields the TF
                target needs; no evaluation is attempted.
            ReviewError: If the evaluation call fails.
        """
        handled, _ = self._tf_target.handle_review(resource)
        if not handled:
            missing = ", ".join(self._tf_target.missing_fields(resource))
            raise UnhandledResourceError(
                f"Unhandled resource: missing or invalid {missing}",
                target=TargetDomain.TF.value,
            )

        name = _identifier(TargetDomain.TF, resource)
        responses = await self._review(TargetDomain.TF, resource)
        result = Result(TargetDomain.TF.value, name, resource, resource, responses)
        return result.to_violations()

    async def _review(self, domain: TargetDomain, obj: Dict[str, Any]) -> Responses:
        logger.debug("Reviewing resource", target=domain.label)
        try:
            return await self._clients[domain].review(obj)
        except EngineError as e:
            logger.error("Review call failed", target=domain.label, error=str(e))
            raise ReviewError(
                f"{domain.label} target Constraint Framework review call failed",
                target=domain.value,
            ) from e
