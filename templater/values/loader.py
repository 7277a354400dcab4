"""Loading and merging of YAML value sources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from ..core.errors import FileAccessError, NotFoundError, ParseError

logger = logging.getLogger(__name__)


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Merge overlay into base, overlay wins.

    Nested mappings are merged key by key; any other overlay value (lists and
    None included) replaces the base value outright. Neither input is modified.

    Args:
        base: Earlier values
        overlay: Later values taking precedence

    Returns:
        New merged dictionary
    """
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_value_file(path: Path) -> dict[str, Any]:
    """Parse a single YAML value source.

    Args:
        path: Path to the YAML document

    Returns:
        Top-level mapping (empty documents yield an empty mapping)
    """
    if not path.exists():
        raise NotFoundError(str(path), "value file not found")

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(str(path), f"not valid UTF-8 text: {e}") from e
    except OSError as e:
        raise FileAccessError(str(path), f"cannot read value file: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(str(path), f"invalid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(
            str(path), f"top-level value must be a mapping, got {type(data).__name__}"
        )
    return data


def load_values(paths: Sequence[Path]) -> dict[str, Any]:
    """Load every value source and merge them in order.

    Args:
        paths: Value sources; later ones override earlier ones

    Returns:
        Merged value mapping
    """
    values: dict[str, Any] = {}
    for path in paths:
        logger.debug(f"Loading values from {path}")
        values = deep_merge(values, load_value_file(path))

    logger.debug(f"Loaded {len(values)} top-level key(s) from {len(paths)} file(s)")
    return values
