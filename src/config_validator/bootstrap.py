"""Evaluation client construction.

A client is loaded all-or-nothing: every template is added first, and
constraints are only attempted once all templates loaded cleanly.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .config.options import ClientOptions
from .configs.objects import Constraint, ConstraintTemplate
from .engine.client import ConstraintClient, Driver
from .engine.driver import OPADriver
from .exceptions import ErrorCollection, ValidatorError
from .logging import get_logger
from .targets.base import TargetHandler

logger = get_logger(__name__)

__all__ = ["new_constraint_client"]


async def new_constraint_client(
    handler: TargetHandler,
    templates: Iterable[ConstraintTemplate],
    constraints: Iterable[Constraint],
    options: Optional[ClientOptions] = None,
    driver: Optional[Driver] = None,
) -> ConstraintClient:
    """Create a client for ``handler`` loaded with templates and constraints.

    Args:
        handler: Target handler the client reviews with
        templates: Templates for the handler's target
        constraints: Constraints of those templates' kinds
        options: Engine options; defaults apply when omitted
        driver: Engine driver to use instead of an ``OPADriver`` built from
            ``options``

    Raises:
        BootstrapError: Listing every template that failed to load, or every
            constraint that failed once all templates loaded.
    """
    options = options or ClientOptions()
    if driver is None:
        driver = OPADriver.from_options(options)
    client = ConstraintClient(handler, driver)
    log = logger.bind(target=handler.domain.label)

    errors = ErrorCollection()
    for template in templates:
        try:
            await client.add_template(template)
        except ValidatorError as e:
            log.error("Failed to add template", template=template.name, error=str(e))
            errors.add(e)
    if not errors.empty():
        await client.close()
        raise errors.to_error("failed to add templates", target=handler.name)

    for constraint in constraints:
        try:
            await client.add_constraint(constraint)
        except ValidatorError as e:
            log.error("Failed to add constraint", constraint=constraint.key, error=str(e))
            errors.add(e)
    if not errors.empty():
        await client.close()
        raise errors.to_error("failed to add constraints", target=handler.name)

    log.info(
        "Constraint client ready",
        templates=len(client.templates),
        constraints=len(client.constraints),
    )
    return client
