"""Cloud asset model, shape validation and the Kubernetes adapter."""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .ancestry import ANCESTRY_PATH_KEY
from .exceptions import ConversionError, InvalidAssetError

__all__ = [
    "Asset",
    "validate_asset",
    "is_k8s",
    "convert_cai_to_k8s",
    "ANCESTRY_PATH_ANNOTATION",
    "ORIGINAL_NAME_ANNOTATION",
]

ANCESTRY_PATH_ANNOTATION = "validation.gcp.forsetisecurity.org/ancestrypath"
ORIGINAL_NAME_ANNOTATION = "validation.gcp.forsetisecurity.org/originalName"

# Kubernetes assets are typed "<group>.k8s.io/<Kind>" or "k8s.io/<Kind>" for
# the core group.
_K8S_ASSET_TYPE = re.compile(r"^(?:(?P<group>[a-z0-9.-]+)\.)?k8s\.io/(?P<kind>[A-Za-z0-9]+)$")

# Built-in API groups that asset types suffix with ".k8s.io" although the
# group itself does not carry it.
_UNSUFFIXED_GROUPS = {"apps", "autoscaling", "batch", "extensions", "policy"}

_RESOURCE_FIELDS = (
    "resource",
    "iam_policy",
    "org_policy",
    "access_policy",
    "service_perimeter",
    "access_level",
)


class Asset(BaseModel):
    """A Cloud Asset Inventory style asset.

    Unknown fields are kept so policies can read them.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(default="", description="Full resource name")
    asset_type: str = Field(default="", description="Asset type, e.g. storage.googleapis.com/Bucket")
    ancestry_path: str = Field(default="", description="Canonical ancestry path")
    ancestors: List[str] = Field(
        default_factory=list, description="Ancestors, closest first"
    )
    resource: Optional[Dict[str, Any]] = None
    iam_policy: Optional[Dict[str, Any]] = None
    org_policy: Optional[List[Dict[str, Any]]] = None
    access_policy: Optional[Dict[str, Any]] = None
    service_perimeter: Optional[Dict[str, Any]] = None
    access_level: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        """Build an asset from decoded JSON or YAML.

        Raises:
            InvalidAssetError: Listing every field with a value of the wrong type.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise InvalidAssetError(
                f"invalid asset {data.get('name', '<unnamed>')!r}: {'; '.join(errors)}",
                field_errors=errors,
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping of the asset with unset fields omitted."""
        return {
            key: value
            for key, value in self.model_dump().items()
            if value not in (None, "", [], {})
        }


def validate_asset(asset: Asset) -> None:
    """Check that required asset fields are present.

    Raises:
        InvalidAssetError: Listing every missing field.
    """
    errors: List[str] = []
    label = asset.name or "<unnamed>"

    if not asset.name:
        errors.append("missing asset name")
    if not asset.ancestry_path:
        errors.append(f"asset {label!r} missing ancestry path")
    if not asset.asset_type:
        errors.append(f"asset {label!r} missing type")
    if not any(getattr(asset, field) for field in _RESOURCE_FIELDS):
        errors.append(f"asset {label!r} missing resource data")

    if errors:
        raise InvalidAssetError("; ".join(errors), field_errors=errors)


def is_k8s(resource: Dict[str, Any]) -> bool:
    """Whether the asset type names a Kubernetes object."""
    asset_type = resource.get("asset_type")
    return isinstance(asset_type, str) and bool(_K8S_ASSET_TYPE.match(asset_type))


def convert_cai_to_k8s(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Extract the Kubernetes object carried in an asset's ``resource.data``.

    ``apiVersion`` and ``kind`` are derived from the asset type and
    ``resource.version`` when the object lacks them. The ancestry path and the
    asset name are recorded as annotations. ``resource`` is not modified.

    Raises:
        ConversionError: If the asset carries no object or its type cannot be
            turned into a group/kind.
    """
    asset_type = resource.get("asset_type")
    match = _K8S_ASSET_TYPE.match(asset_type) if isinstance(asset_type, str) else None
    if match is None:
        raise ConversionError(f"asset type {asset_type!r} is not a Kubernetes type")

    payload = resource.get("resource")
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise ConversionError(
            f"asset {resource.get('name')!r} has no resource.data object"
        )

    obj = copy.deepcopy(data)

    if not isinstance(obj.get("kind"), str):
        obj["kind"] = match.group("kind")
    if not isinstance(obj.get("apiVersion"), str):
        version = payload.get("version")
        if not isinstance(version, str) or not version:
            raise ConversionError(
                f"asset {resource.get('name')!r} has no apiVersion and no resource.version"
            )
        obj["apiVersion"] = _api_version(match.group("group"), version)

    metadata = obj.setdefault("metadata", {})
    if not isinstance(metadata, dict):
        raise ConversionError(
            f"asset {resource.get('name')!r} has a non-object metadata field"
        )
    annotations = metadata.get("annotations") or {}
    if not isinstance(annotations, dict):
        raise ConversionError(
            f"asset {resource.get('name')!r} has a non-object metadata.annotations field"
        )
    annotations = dict(annotations)
    ancestry = resource.get(ANCESTRY_PATH_KEY)
    if isinstance(ancestry, str):
        annotations[ANCESTRY_PATH_ANNOTATION] = ancestry
    name = resource.get("name")
    if isinstance(name, str):
        annotations[ORIGINAL_NAME_ANNOTATION] = name
    metadata["annotations"] = annotations

    return obj


def _api_version(group: Optional[str], version: str) -> str:
    if not group:
        return version
    if group not in _UNSUFFIXED_GROUPS:
        group = f"{group}.k8s.io"
    return f"{group}/{version}"
