"""Tests for the command-line interface."""

import json
import logging

import pytest
import structlog
from click.testing import CliRunner

from config_validator import cli
from config_validator.engine.models import RawResult
from config_validator.targets import TargetDomain
from config_validator.validator import Validator
from tests.utils.fakes import FakeClient
from tests.utils.policies import constraint_object, gcp_asset, template_object, tf_change, to_yaml


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the logging setup each CLI invocation performs."""
    handlers = list(logging.root.handlers)
    level = logging.root.level
    yield
    structlog.reset_defaults()
    logging.root.handlers[:] = handlers
    logging.root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def policy_dir(tmp_path):
    policies = tmp_path / "policies"
    policies.mkdir()
    (policies / "policy.yaml").write_text(
        to_yaml(
            [
                template_object("GCPBucketV1"),
                template_object("TFBucketV1", TargetDomain.TF),
                constraint_object("GCPBucketV1", "bucket"),
            ]
        ),
        encoding="utf-8",
    )
    return policies


@pytest.fixture
def fake_validator(monkeypatch):
    """Replace validator construction with recording clients."""
    clients = {domain: FakeClient(domain.value) for domain in TargetDomain}
    calls = []

    class _FakeValidator:
        @staticmethod
        async def create(policy_paths, policy_library_dir, options):
            calls.append((list(policy_paths), policy_library_dir, options))
            return Validator(clients[TargetDomain.GCP], clients[TargetDomain.K8S], clients[TargetDomain.TF])

    monkeypatch.setattr(cli, "Validator", _FakeValidator)
    return clients, calls


def _raw(msg):
    constraint = constraint_object("GCPBucketV1", "bucket", {"severity": "high"})
    return RawResult(msg=msg, metadata={"details": {}}, constraint=constraint)


class TestCheckPolicies:
    """Test the check-policies command."""

    def test_reports_counts(self, runner, policy_dir, policy_library):
        result = runner.invoke(
            cli.main,
            [
                "--log-level", "ERROR",
                "check-policies",
                "--policy-path", str(policy_dir),
                "--policy-library", str(policy_library),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Library modules: 1" in result.output
        assert "GCP: 1 template(s), 1 constraint(s)" in result.output
        assert "TF: 1 template(s), 0 constraint(s)" in result.output

    def test_missing_library(self, runner, policy_dir):
        result = runner.invoke(
            cli.main, ["--log-level", "ERROR", "check-policies", "--policy-path", str(policy_dir)]
        )

        assert result.exit_code == 1
        assert "No policy library set" in result.output


class TestReview:
    """Test the review command."""

    def test_no_violations(self, runner, tmp_path, fake_validator):
        clients, calls = fake_validator
        assets = tmp_path / "assets.json"
        assets.write_text(json.dumps([gcp_asset(), gcp_asset(name="//storage.googleapis.com/b2")]))

        result = runner.invoke(
            cli.main,
            [
                "--log-level", "ERROR",
                "review", str(assets),
                "--policy-path", "policies",
                "--policy-library", "lib",
                "--opa-url", "http://opa:8181",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "No violations found in 2 resource(s)" in result.output
        assert len(clients[TargetDomain.GCP].reviewed) == 2
        policy_paths, library_dir, options = calls[0]
        assert (policy_paths, library_dir, options.opa_url) == (["policies"], "lib", "http://opa:8181")

    def test_violations_exit_nonzero(self, runner, tmp_path, fake_validator):
        clients, _ = fake_validator
        clients[TargetDomain.GCP].results = [_raw("bucket outside EU")]
        assets = tmp_path / "asset.yaml"
        assets.write_text(to_yaml([gcp_asset()]))

        result = runner.invoke(
            cli.main, ["--log-level", "ERROR", "review", str(assets), "--format", "json"]
        )

        assert result.exit_code == 1
        violations = json.loads(result.output)
        assert violations[0]["message"] == "bucket outside EU"
        assert violations[0]["severity"] == "high"

    def test_text_format(self, runner, tmp_path, fake_validator):
        clients, _ = fake_validator
        clients[TargetDomain.GCP].results = [_raw("bucket outside EU")]
        assets = tmp_path / "asset.json"
        assets.write_text(json.dumps(gcp_asset()))

        result = runner.invoke(cli.main, ["--log-level", "ERROR", "review", str(assets)])

        assert result.exit_code == 1
        assert (
            "//storage.googleapis.com/my-bucket: GCPBucketV1/bucket [high]: bucket outside EU"
            in result.output
        )

    def test_terraform_plan(self, runner, tmp_path, fake_validator):
        clients, _ = fake_validator
        plan = tmp_path / "plan.json"
        plan.write_text(json.dumps({"resource_changes": [tf_change(), tf_change(address="google_storage_bucket.b")]}))

        result = runner.invoke(cli.main, ["--log-level", "ERROR", "review", str(plan), "--terraform"])

        assert result.exit_code == 0, result.output
        assert [c["address"] for c in clients[TargetDomain.TF].reviewed] == [
            "google_storage_bucket.logs",
            "google_storage_bucket.b",
        ]

    def test_review_error(self, runner, tmp_path, fake_validator):
        assets = tmp_path / "asset.json"
        asset = gcp_asset()
        asset.pop("ancestry_path")
        assets.write_text(json.dumps(asset))

        result = runner.invoke(cli.main, ["--log-level", "ERROR", "review", str(assets)])

        assert result.exit_code == 1
        assert "missing ancestry path" in result.output

    def test_not_an_object(self, runner, tmp_path, fake_validator):
        assets = tmp_path / "asset.json"
        assets.write_text("42")

        result = runner.invoke(cli.main, ["--log-level", "ERROR", "review", str(assets)])

        assert result.exit_code == 2
        assert "expected an object or a list of objects" in result.output

    def test_mistyped_asset_field(self, runner, tmp_path, fake_validator):
        clients, _ = fake_validator
        assets = tmp_path / "asset.json"
        assets.write_text(json.dumps(gcp_asset(name=5)))

        result = runner.invoke(cli.main, ["--log-level", "ERROR", "review", str(assets)])

        assert result.exit_code == 1
        assert "invalid asset 5" in result.output
        assert "name: Input should be a valid string" in result.output
        assert clients[TargetDomain.GCP].reviewed == []


class TestSettingsErrors:
    """Test how invalid settings are reported."""

    def test_invalid_config_file(self, runner, tmp_path):
        config = tmp_path / "validator.yaml"
        config.write_text("logging:\n  format: xml\n", encoding="utf-8")

        result = runner.invoke(cli.main, ["--config", str(config), "check-policies"])

        assert result.exit_code == 1
        assert "Invalid configuration file" in result.output
        assert "logging.format" in result.output

    def test_invalid_environment(self, runner, monkeypatch):
        monkeypatch.setenv("CONFIG_VALIDATOR_ENGINE__MAX_RETRIES", "0")

        result = runner.invoke(cli.main, ["--log-level", "ERROR", "check-policies"])

        assert result.exit_code == 1
        assert "Invalid settings in environment" in result.output
