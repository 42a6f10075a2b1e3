"""YAML loading shared by the manifest, recipe and settings parsers.

PyYAML silently keeps the last value of a repeated mapping key. For the
project manifest that would hide a second definition of the same project, so
the loader here rejects duplicates.
"""

import logging
from pathlib import Path
from typing import Any, Type

import yaml

from devstrap.core.exceptions import DevstrapError, DuplicateKeyError

logger = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that raises DuplicateKeyError on repeated mapping keys."""

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            self.flatten_mapping(node)
            seen = set()
            for key_node, _ in node.value:
                key = self.construct_object(key_node, deep=deep)
                try:
                    duplicate = key in seen
                except TypeError:
                    continue
                if duplicate:
                    raise DuplicateKeyError(str(key), key_node.start_mark.line + 1)
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


def load_yaml_text(text: str, error_cls: Type[DevstrapError], source: str = "<string>") -> Any:
    """
    Parse YAML text.

    Args:
        text: YAML document
        error_cls: Exception raised for syntax errors
        source: Name used in error messages

    Raises:
        DuplicateKeyError: If a mapping repeats a key
        error_cls: If the YAML is malformed
    """
    try:
        return yaml.load(text, Loader=UniqueKeyLoader)
    except DuplicateKeyError as e:
        if issubclass(DuplicateKeyError, error_cls):
            raise
        raise error_cls(f"Invalid YAML in {source}: {e}") from e
    except yaml.YAMLError as e:
        raise error_cls(f"Invalid YAML in {source}: {e}") from e


def load_yaml_file(path: Path, error_cls: Type[DevstrapError]) -> Any:
    """
    Load and parse a YAML file.

    Raises:
        error_cls: If the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise error_cls(f"File not found: {path}")

    logger.debug(f"Loading {path}")
    with open(path, "r", encoding="utf-8") as f:
        return load_yaml_text(f.read(), error_cls, str(path))
