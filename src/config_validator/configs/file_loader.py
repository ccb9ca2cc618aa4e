"""Policy file loading operations.

Reads constraint/template YAML and rego library files from disk. Parsing
happens in ``parser``; this module only finds and reads files.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from ..exceptions import ConfigurationError
from ..logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "PolicyFile",
    "POLICY_SUFFIXES",
    "load_policy_file",
    "load_policy_files",
    "load_library",
]

POLICY_SUFFIXES = (".yaml", ".yml")
LIBRARY_SUFFIX = ".rego"


@dataclass(frozen=True)
class PolicyFile:
    """Contents of one policy file and where they came from."""

    path: str
    content: str


def load_policy_file(policy_file: Path) -> str:
    """Load content from a policy or library file.

    Args:
        policy_file: Path to the file

    Returns:
        File content

    Raises:
        ConfigurationError: If file cannot be read
    """
    try:
        with open(policy_file, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Policy file not found: {policy_file}", source=str(policy_file)
        ) from e
    except PermissionError as e:
        raise ConfigurationError(
            f"Permission denied reading policy file: {policy_file}",
            source=str(policy_file),
        ) from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(
            f"Invalid encoding in policy file: {policy_file}", source=str(policy_file)
        ) from e


def _collect(path: Path, suffixes: Iterable[str]) -> List[Path]:
    suffixes = tuple(suffixes)
    if path.is_file():
        return [path] if path.suffix in suffixes else []
    if path.is_dir():
        return sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in suffixes)
    raise ConfigurationError(f"Policy path does not exist: {path}", source=str(path))


def load_policy_files(policy_paths: Iterable[str]) -> List[PolicyFile]:
    """Load every YAML file under the given files or directories.

    Empty files are skipped. Directories are walked recursively in sorted
    order so loading is reproducible.

    Raises:
        ConfigurationError: If a path does not exist or a file cannot be read
    """
    loaded: List[PolicyFile] = []
    for raw_path in policy_paths:
        for policy_file in _collect(Path(raw_path), POLICY_SUFFIXES):
            content = load_policy_file(policy_file)
            if not content.strip():
                logger.warning("Skipping empty policy file", path=str(policy_file))
                continue
            loaded.append(PolicyFile(path=str(policy_file), content=content))

    logger.debug("Loaded policy files", count=len(loaded))
    return loaded


def load_library(library_dir: str) -> List[str]:
    """Load every ``.rego`` file under the library directory.

    Raises:
        ConfigurationError: If the directory does not exist or a file cannot
            be read
    """
    path = Path(library_dir)
    if not path.is_dir():
        raise ConfigurationError(
            f"Policy library directory does not exist: {library_dir}",
            source=library_dir,
        )

    library = [load_policy_file(rego_file) for rego_file in _collect(path, (LIBRARY_SUFFIX,))]
    if not library:
        logger.warning("No .rego library files found", directory=library_dir)

    logger.debug("Loaded policy library", count=len(library), directory=library_dir)
    return library
