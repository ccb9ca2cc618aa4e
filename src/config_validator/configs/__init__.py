"""Policy source loading: templates, constraints and the rego library."""

from ..ancestry import normalize_ancestry
from .configuration import Configuration
from .file_loader import PolicyFile, load_library, load_policy_files
from .objects import Constraint, ConstraintTemplate
from .parser import load_unstructured_from_contents

__all__ = [
    "Configuration",
    "Constraint",
    "ConstraintTemplate",
    "PolicyFile",
    "load_library",
    "load_policy_files",
    "load_unstructured_from_contents",
    "normalize_ancestry",
]
