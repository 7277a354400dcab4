"""Mapping of template inputs to output destinations."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from ..core.errors import FileAccessError, NotFoundError
from ..core.models import STDIN, RenderTarget

logger = logging.getLogger(__name__)


def resolve_targets(input_spec: str, output: Path | None = None) -> list[RenderTarget]:
    """Resolve an input specification into ordered render targets.

    Args:
        input_spec: Template file, template directory, or ``-`` for stdin
        output: Output file (single input) or output root (directory input)

    Returns:
        Render targets in processing order
    """
    if input_spec == STDIN:
        if output is not None:
            logger.warning(
                f"Input is read from stdin; ignoring output path {output} and writing to stdout"
            )
        return [RenderTarget()]

    input_path = Path(input_spec)
    try:
        mode = input_path.stat().st_mode
    except FileNotFoundError as e:
        raise NotFoundError(input_spec, "input path does not exist") from e
    except OSError as e:
        raise FileAccessError(input_spec, f"cannot access input path: {e}") from e

    if stat.S_ISDIR(mode):
        return walk_directory(input_path, output)
    if stat.S_ISREG(mode):
        return [RenderTarget(input_path=input_path, output_path=output)]
    raise FileAccessError(input_spec, "input is neither a regular file nor a directory")


def _dir_key(path: str) -> tuple[int, int]:
    try:
        info = os.stat(path)
    except OSError as e:
        raise FileAccessError(path, f"cannot access directory: {e}") from e
    return info.st_dev, info.st_ino


def _raise_walk_error(error: OSError) -> None:
    raise FileAccessError(
        str(error.filename), f"cannot read directory: {error.strerror or error}"
    ) from error


def walk_directory(root: Path, output_root: Path | None = None) -> list[RenderTarget]:
    """Collect every regular file under ``root`` in lexical order.

    Symbolic links are followed, but a directory reached a second time (by
    device and inode) is not descended again. When the output root lies inside
    ``root`` it is left out of the walk.

    Args:
        root: Template directory
        output_root: Directory mirroring ``root``; None writes to stdout

    Returns:
        One render target per regular file
    """
    visited: set[tuple[int, int]] = set()
    excluded = output_root.resolve() if output_root is not None else None
    targets: list[RenderTarget] = []

    for dirpath, dirnames, filenames in os.walk(
        root, onerror=_raise_walk_error, followlinks=True
    ):
        key = _dir_key(dirpath)
        if key in visited:
            logger.debug(f"Skipping already visited directory: {dirpath}")
            dirnames.clear()
            continue
        visited.add(key)

        dirnames[:] = sorted(
            name
            for name in dirnames
            if excluded is None or Path(dirpath, name).resolve() != excluded
        )

        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if not path.is_file():
                logger.debug(f"Skipping non-regular file: {path}")
                continue
            relative = path.relative_to(root)
            output_path = output_root / relative if output_root is not None else None
            targets.append(RenderTarget(input_path=path, output_path=output_path))

    logger.debug(f"Found {len(targets)} template(s) under {root}")
    return targets
