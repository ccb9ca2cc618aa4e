"""YAML parsing for policy files."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

import yaml

from ..exceptions import ConfigurationError
from .file_loader import PolicyFile

__all__ = [
    "load_unstructured_from_contents",
]


def load_unstructured_from_contents(policy_files: Iterable[PolicyFile]) -> List[Dict[str, Any]]:
    """Parse every YAML document of every file into a mapping.

    Blank documents are ignored.

    Args:
        policy_files: Files to parse

    Returns:
        Parsed objects in file and document order

    Raises:
        ConfigurationError: If a file is not valid YAML or a document is not a
            mapping
    """
    objects: List[Dict[str, Any]] = []

    for policy_file in policy_files:
        try:
            documents = list(yaml.safe_load_all(policy_file.content))
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in policy file {policy_file.path}",
                source=policy_file.path,
            ) from e

        for index, document in enumerate(documents):
            if document is None:
                continue
            if not isinstance(document, dict):
                raise ConfigurationError(
                    f"Document {index} in policy file {policy_file.path} is not a mapping",
                    source=policy_file.path,
                )
            objects.append(document)

    return objects
