"""Tests for the validator orchestrator."""

import json

import pytest

from config_validator.asset import Asset
from config_validator.engine.models import RawResult
from config_validator.exceptions import (
    AncestryError,
    BootstrapError,
    ConfigurationError,
    ConversionError,
    EngineError,
    IdentifierError,
    InvalidAssetError,
    ReviewError,
    UnhandledResourceError,
)
from config_validator.configs import PolicyFile
from config_validator.targets import TargetDomain
from config_validator.validator import Validator, new_validator_config
from tests.utils.fakes import FakeClient
from tests.utils.policies import (
    LIBRARY_REGO,
    constraint_object,
    gcp_asset,
    k8s_asset,
    template_object,
    tf_change,
    to_yaml,
)

GCP, K8S, TF = TargetDomain.GCP, TargetDomain.K8S, TargetDomain.TF


def _raw(msg: str) -> RawResult:
    return RawResult(msg=msg, metadata={"details": {}}, constraint=constraint_object("Kind", "c"))


class TestNewValidatorConfig:
    """Test loading configuration from disk."""

    def test_requires_policy_path(self, policy_library):
        with pytest.raises(ConfigurationError, match="No policy path set"):
            new_validator_config([], str(policy_library))

    def test_requires_library(self, tmp_path):
        with pytest.raises(ConfigurationError, match="No policy library set"):
            new_validator_config([str(tmp_path)], "")

    def test_loads_configuration(self, tmp_path, policy_library):
        policy = tmp_path / "policy.yaml"
        policy.write_text(
            to_yaml([template_object("GCPBucketV1"), constraint_object("GCPBucketV1", "b")]),
            encoding="utf-8",
        )
        config = new_validator_config([str(policy)], str(policy_library))
        assert config.summary()["GCP"] == {"templates": 1, "constraints": 1}


class TestConstruction:
    """Test building validators."""

    @pytest.mark.asyncio
    async def test_from_contents_requires_policies(self):
        with pytest.raises(ConfigurationError, match="No policy constraints provided"):
            await Validator.from_contents([], [LIBRARY_REGO])

    @pytest.mark.asyncio
    async def test_from_contents_requires_library(self):
        files = [PolicyFile("p.yaml", to_yaml([template_object("A")]))]
        with pytest.raises(ConfigurationError, match="No policy library provided"):
            await Validator.from_contents(files, [])

    @pytest.mark.asyncio
    async def test_failing_domain_is_named(self, monkeypatch):
        built = []

        async def fake_new_client(handler, templates, constraints, options):
            if handler.domain is K8S:
                raise BootstrapError("failed to add templates", causes=[ValueError("boom")])
            client = FakeClient(handler.name)
            built.append(client)
            return client

        monkeypatch.setattr("config_validator.validator.new_constraint_client", fake_new_client)
        files = [PolicyFile("p.yaml", to_yaml([template_object("A")]))]

        with pytest.raises(BootstrapError, match="unable to set up K8S Constraint Framework client") as exc_info:
            await Validator.from_contents(files, [LIBRARY_REGO])

        assert isinstance(exc_info.value.__cause__, BootstrapError)
        assert [c.target for c in built] == [GCP.value]
        assert built[0].closed

    @pytest.mark.asyncio
    async def test_context_manager_closes_clients(self, validator, fake_clients):
        async with validator:
            pass
        assert all(client.closed for client in fake_clients.values())


class TestReviewUnmarshalledJSON:
    """Test routing of decoded assets."""

    @pytest.mark.asyncio
    async def test_ancestors_win(self, validator, fake_clients):
        asset = gcp_asset(ancestors=["folders/2", "organizations/1"], ancestry_path="organization/9")

        result = await validator.review_unmarshalled_json(asset)

        reviewed = fake_clients[GCP].reviewed[0]
        assert reviewed["ancestry_path"] == "organization/1/folder/2"
        assert result.review_resource["ancestry_path"] == "organization/1/folder/2"

    @pytest.mark.asyncio
    async def test_path_idempotent(self, validator, fake_clients):
        asset = gcp_asset(ancestry_path="organization/1/project/3")
        await validator.review_unmarshalled_json(asset)
        assert fake_clients[GCP].reviewed[0]["ancestry_path"] == "organization/1/project/3"

    @pytest.mark.asyncio
    async def test_missing_ancestry(self, validator, fake_clients):
        asset = gcp_asset()
        asset.pop("ancestry_path")
        with pytest.raises(AncestryError):
            await validator.review_unmarshalled_json(asset)
        assert all(not client.reviewed for client in fake_clients.values())

    @pytest.mark.asyncio
    async def test_empty_ancestor_rejected(self, validator, fake_clients):
        with pytest.raises(AncestryError, match="empty entry"):
            await validator.review_unmarshalled_json(gcp_asset(ancestors=[""]))
        assert all(not client.reviewed for client in fake_clients.values())

    @pytest.mark.asyncio
    async def test_gcp_resource_reviewed_verbatim(self, validator, fake_clients):
        asset = gcp_asset()
        result = await validator.review_unmarshalled_json(asset)

        assert result.target == GCP.value
        assert result.name == asset["name"]
        assert result.input_resource is asset
        assert result.review_resource is asset
        assert fake_clients[GCP].reviewed == [asset]
        assert not fake_clients[K8S].reviewed

    @pytest.mark.asyncio
    async def test_gcp_identifier_must_be_string(self, validator, fake_clients):
        with pytest.raises(IdentifierError):
            await validator.review_unmarshalled_json(gcp_asset(name=7))
        assert not fake_clients[GCP].reviewed

    @pytest.mark.asyncio
    async def test_k8s_identifier_is_object_name(self, validator, fake_clients):
        asset = k8s_asset()
        result = await validator.review_unmarshalled_json(asset)

        assert result.target == K8S.value
        assert result.name == "web"
        assert result.input_resource is asset
        assert result.review_resource["kind"] == "Pod"
        assert fake_clients[K8S].reviewed[0]["metadata"]["name"] == "web"
        assert not fake_clients[GCP].reviewed

    @pytest.mark.asyncio
    async def test_k8s_object_without_name(self, validator, fake_clients):
        asset = k8s_asset()
        asset["resource"]["data"]["metadata"].pop("name")

        with pytest.raises(IdentifierError, match="metadata.name"):
            await validator.review_unmarshalled_json(asset)
        assert not fake_clients[K8S].reviewed

    @pytest.mark.asyncio
    async def test_k8s_conversion_failure(self, validator):
        asset = k8s_asset(resource={"version": "v1"})
        with pytest.raises(ConversionError, match="failed to convert asset to admission request"):
            await validator.review_unmarshalled_json(asset)

    @pytest.mark.asyncio
    async def test_engine_failure_names_domain(self, validator, fake_clients):
        fake_clients[GCP].error = EngineError("opa down")
        with pytest.raises(ReviewError, match="GCP target Constraint Framework review call failed") as exc_info:
            await validator.review_unmarshalled_json(gcp_asset())
        assert isinstance(exc_info.value.__cause__, EngineError)


class TestReviewJSON:
    """Test reviewing JSON text."""

    @pytest.mark.asyncio
    async def test_reviews_decoded_asset(self, validator, fake_clients):
        result = await validator.review_json(json.dumps(gcp_asset()))
        assert result.name == "//storage.googleapis.com/my-bucket"
        assert fake_clients[GCP].reviewed[0]["ancestry_path"] == "organization/1/folder/2/project/3"

    @pytest.mark.asyncio
    async def test_invalid_json(self, validator):
        with pytest.raises(InvalidAssetError, match="failed to unmarshal json"):
            await validator.review_json("{not json")

    @pytest.mark.asyncio
    async def test_non_object_json(self, validator):
        with pytest.raises(InvalidAssetError, match="failed to unmarshal json"):
            await validator.review_json("[1, 2]")


class TestReviewAsset:
    """Test reviewing typed assets."""

    @pytest.mark.asyncio
    async def test_returns_violations(self, validator, fake_clients):
        fake_clients[GCP].results = [_raw("first"), _raw("second")]
        asset = Asset(**gcp_asset())

        violations = await validator.review_asset(asset)

        assert [v.message for v in violations] == ["first", "second"]
        assert all(v.resource == asset.name for v in violations)

    @pytest.mark.asyncio
    async def test_ancestors_only_asset_passes_validation(self, validator, fake_clients):
        data = gcp_asset(ancestors=["projects/3", "organizations/1"])
        data.pop("ancestry_path")

        await validator.review_asset(Asset(**data))
        assert fake_clients[GCP].reviewed[0]["ancestry_path"] == "organization/1/project/3"

    @pytest.mark.asyncio
    async def test_invalid_asset(self, validator, fake_clients):
        with pytest.raises(InvalidAssetError):
            await validator.review_asset(Asset(name="only-a-name"))
        assert not fake_clients[GCP].reviewed

    @pytest.mark.asyncio
    async def test_scenario_folder_and_organization(self, validator, fake_clients):
        asset = Asset(
            name="//cloudresourcemanager.googleapis.com/projects/3",
            asset_type="cloudresourcemanager.googleapis.com/Project",
            ancestors=["folders/2", "organizations/1"],
            resource={"data": {"projectNumber": "3"}},
        )
        await validator.review_asset(asset)
        assert fake_clients[GCP].reviewed[0]["ancestry_path"] == "organization/1/folder/2"


class TestReviewTFResourceChange:
    """Test reviewing Terraform resource changes."""

    @pytest.mark.asyncio
    async def test_reviews_change(self, validator, fake_clients):
        fake_clients[TF].results = [_raw("bucket in US")]
        change = tf_change()

        violations = await validator.review_tf_resource_change(change)

        assert fake_clients[TF].reviewed == [change]
        assert [(v.resource, v.message) for v in violations] == [
            ("google_storage_bucket.logs", "bucket in US")
        ]
        assert not fake_clients[GCP].reviewed

    @pytest.mark.asyncio
    async def test_missing_address_is_unhandled(self, validator, fake_clients):
        change = tf_change()
        change.pop("address")

        with pytest.raises(UnhandledResourceError, match="Unhandled resource") as exc_info:
            await validator.review_tf_resource_change(change)

        assert "address" in str(exc_info.value)
        assert all(not client.reviewed for client in fake_clients.values())

    @pytest.mark.asyncio
    async def test_no_ancestry_needed(self, validator, fake_clients):
        await validator.review_tf_resource_change(tf_change())
        assert "ancestry_path" not in fake_clients[TF].reviewed[0]

    @pytest.mark.asyncio
    async def test_engine_failure_names_domain(self, validator, fake_clients):
        fake_clients[TF].error = EngineError("opa down")
        with pytest.raises(ReviewError, match="TF target Constraint Framework review call failed"):
            await validator.review_tf_resource_change(tf_change())
