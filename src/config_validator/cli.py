"""Command-line interface for the config validator."""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml
from pydantic import ValidationError

from .asset import Asset
from .config import ValidatorSettings
from .exceptions import ConfigurationError, ValidatorError
from .logging import get_logger, setup_logging
from .result import Violation
from .validator import Validator, new_validator_config


def _load_settings(config: Optional[str]) -> ValidatorSettings:
    if config:
        return ValidatorSettings.from_yaml(config)
    try:
        return ValidatorSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in environment: {e}") from e


def _read_documents(path: str) -> Any:
    # YAML is a superset of JSON, so one parser covers both formats.
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _resources(data: Any, terraform: bool) -> List[Dict[str, Any]]:
    if terraform and isinstance(data, dict) and "resource_changes" in data:
        data = data["resource_changes"]
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise click.BadParameter("expected an object or a list of objects", param_hint="FILE")
    return data


async def _review(
    settings: ValidatorSettings, resources: List[Dict[str, Any]], terraform: bool
) -> List[Violation]:
    validator = await Validator.create(
        settings.policy.policy_paths,
        settings.policy.policy_library_dir,
        settings.client_options(),
    )
    violations: List[Violation] = []
    async with validator:
        for resource in resources:
            if terraform:
                violations.extend(await validator.review_tf_resource_change(resource))
            else:
                asset = Asset.from_dict(resource)
                violations.extend(await validator.review_asset(asset))
    return violations


def _apply_overrides(
    settings: ValidatorSettings,
    policy_paths: Tuple[str, ...],
    policy_library: Optional[str],
    opa_url: Optional[str],
) -> None:
    if policy_paths:
        settings.policy.policy_paths = list(policy_paths)
    if policy_library:
        settings.policy.policy_library_dir = policy_library
    if opa_url:
        settings.engine.opa_url = opa_url


@click.group()
@click.option(
    "--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path"
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
)
@click.pass_context
def main(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """Config Validator CLI - review cloud resources against policy constraints."""
    ctx.ensure_object(dict)

    try:
        settings = _load_settings(config)
    except ValidatorError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj["settings"] = settings

    setup_logging(
        log_level=log_level or settings.logging.level,
        log_format=settings.logging.format,
    )

    logger = get_logger(__name__)
    logger.debug("Config validator CLI initialized", config_path=config)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--terraform", is_flag=True, help="Treat FILE as Terraform resource changes")
@click.option("--policy-path", "policy_paths", multiple=True, help="Policy file or directory")
@click.option("--policy-library", type=str, default=None, help="Rego library directory")
@click.option("--opa-url", type=str, default=None, help="OPA server base URL")
@click.option("--format", "fmt", type=click.Choice(["json", "text"]), default="text")
@click.pass_context
def review(
    ctx: click.Context,
    file: str,
    terraform: bool,
    policy_paths: Tuple[str, ...],
    policy_library: Optional[str],
    opa_url: Optional[str],
    fmt: str,
) -> None:
    """Review the assets (or Terraform changes) in FILE.

    Exits with status 1 when any violation is found.
    """
    logger = get_logger(__name__)
    settings: ValidatorSettings = ctx.obj["settings"]
    _apply_overrides(settings, policy_paths, policy_library, opa_url)

    try:
        data = _read_documents(file)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Could not parse {file}: {e}") from e
    resources = _resources(data, terraform)

    try:
        violations = asyncio.run(_review(settings, resources, terraform))
    except ValidatorError as e:
        logger.error("Review failed", error_code=e.error_code)
        raise click.ClickException(str(e)) from e

    if fmt == "json":
        click.echo(json.dumps([v.model_dump() for v in violations], indent=2))
    elif violations:
        for violation in violations:
            severity = f" [{violation.severity}]" if violation.severity else ""
            click.echo(
                f"{violation.resource}: {violation.constraint_kind}/{violation.constraint}"
                f"{severity}: {violation.message}"
            )
    else:
        click.echo(f"No violations found in {len(resources)} resource(s)")

    logger.info("Review finished", resources=len(resources), violations=len(violations))
    if violations:
        ctx.exit(1)


@main.command()
@click.option("--policy-path", "policy_paths", multiple=True, help="Policy file or directory")
@click.option("--policy-library", type=str, default=None, help="Rego library directory")
@click.pass_context
def check_policies(
    ctx: click.Context, policy_paths: Tuple[str, ...], policy_library: Optional[str]
) -> None:
    """Load the policy configuration and report what each target holds."""
    settings: ValidatorSettings = ctx.obj["settings"]
    _apply_overrides(settings, policy_paths, policy_library, None)

    try:
        config = new_validator_config(
            settings.policy.policy_paths, settings.policy.policy_library_dir
        )
    except ValidatorError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Policy library: {Path(settings.policy.policy_library_dir).resolve()}")
    click.echo(f"Library modules: {len(config.library)}")
    for target, counts in config.summary().items():
        click.echo(
            f"  {target}: {counts['templates']} template(s), "
            f"{counts['constraints']} constraint(s)"
        )


if __name__ == "__main__":
    main()
