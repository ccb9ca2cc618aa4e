"""Shared fixtures for config validator tests."""

from typing import Dict

import pytest

from config_validator.targets import TargetDomain
from config_validator.validator import Validator
from tests.utils.fakes import FakeClient
from tests.utils.policies import LIBRARY_REGO


@pytest.fixture
def fake_clients() -> Dict[TargetDomain, FakeClient]:
    """One recording client per domain."""
    return {domain: FakeClient(domain.value) for domain in TargetDomain}


@pytest.fixture
def validator(fake_clients: Dict[TargetDomain, FakeClient]) -> Validator:
    """Validator wired to the recording clients."""
    return Validator(
        fake_clients[TargetDomain.GCP],
        fake_clients[TargetDomain.K8S],
        fake_clients[TargetDomain.TF],
    )


@pytest.fixture
def policy_library(tmp_path):
    """Directory holding one rego library file."""
    library = tmp_path / "lib"
    library.mkdir()
    (library / "util.rego").write_text(LIBRARY_REGO, encoding="utf-8")
    return library
