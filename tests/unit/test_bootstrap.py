"""Tests for evaluation client bootstrapping."""

import pytest

from config_validator.bootstrap import new_constraint_client
from config_validator.config.options import ClientOptions
from config_validator.configs.objects import Constraint, ConstraintTemplate
from config_validator.engine.driver import OPADriver
from config_validator.exceptions import BootstrapError
from config_validator.targets import GCPTarget, TargetDomain
from tests.utils.fakes import FakeDriver
from tests.utils.policies import constraint_object, template_object


def _templates(*kinds, domain=TargetDomain.GCP):
    return [ConstraintTemplate.from_object(template_object(kind, domain)) for kind in kinds]


def _constraints(*pairs):
    return [Constraint.from_object(constraint_object(kind, name)) for kind, name in pairs]


class TestNewConstraintClient:
    """Test all-or-nothing client loading."""

    @pytest.mark.asyncio
    async def test_loads_templates_and_constraints(self):
        driver = FakeDriver()
        client = await new_constraint_client(
            GCPTarget(),
            _templates("A", "B"),
            _constraints(("A", "a1"), ("B", "b1"), ("A", "a2")),
            driver=driver,
        )

        assert [t.kind for t in client.templates] == ["A", "B"]
        assert [c.key for c in client.constraints] == ["A/a1", "B/b1", "A/a2"]
        assert not driver.closed

    @pytest.mark.asyncio
    async def test_bad_template_aborts_before_constraints(self):
        driver = FakeDriver(rejected_modules=("templates/Bad",))
        templates = _templates("Good", "Bad", "AlsoBad")
        templates[2] = templates[2].model_copy(update={"target": TargetDomain.K8S.value})

        with pytest.raises(BootstrapError) as exc_info:
            await new_constraint_client(
                GCPTarget(), templates, _constraints(("Good", "g")), driver=driver
            )

        error = exc_info.value
        assert len(error.causes) == 2
        assert "Bad failed to compile" in str(error.causes[0])
        assert "template alsobad targets" in str(error.causes[1])
        assert error.details["target"] == TargetDomain.GCP.value
        assert driver.closed
        # All three templates were attempted; no constraint was.
        assert len(driver.module_writes) == 2

    @pytest.mark.asyncio
    async def test_bad_constraints_reported_together(self):
        driver = FakeDriver()
        with pytest.raises(BootstrapError) as exc_info:
            await new_constraint_client(
                GCPTarget(),
                _templates("A"),
                _constraints(("A", "a"), ("Missing", "m"), ("A", "a")),
                driver=driver,
            )

        rendered = str(exc_info.value)
        assert "failed to add constraints (2 errors)" in rendered
        assert "Missing/m" in rendered
        assert "A/a already loaded" in rendered
        assert driver.closed

    @pytest.mark.asyncio
    async def test_empty_domain(self):
        client = await new_constraint_client(GCPTarget(), [], [], driver=FakeDriver())
        assert client.templates == []
        assert client.constraints == []

    @pytest.mark.asyncio
    async def test_builds_opa_driver_from_options(self):
        options = ClientOptions(opa_url="http://opa.internal:8181")
        client = await new_constraint_client(GCPTarget(), [], [], options)

        assert isinstance(client._driver, OPADriver)
        assert client._driver.base_url == "http://opa.internal:8181"
        await client.close()
