"""File I/O operations for rendering."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, TextIO

from ..core.errors import CompileError, FileAccessError
from ..core.models import STDIN_NAME, RenderTarget


def ensure_parent(path: Path) -> None:
    """Ensure parent directories exist for the given path.

    Args:
        path: Path whose parent directories should be created
    """
    path.parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def atomic_open(path: Path, mode: int = 0o644) -> Iterator[BinaryIO]:
    """Open a temporary binary file that replaces ``path`` on success.

    The temporary file lives next to the destination. If the block raises,
    the temporary file is removed and ``path`` is left untouched.

    Args:
        path: Destination file path
        mode: File permissions (octal)
    """
    ensure_parent(path)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as tmp:
            yield tmp
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def read_source(target: RenderTarget, stdin: TextIO, encoding: str = "utf-8") -> str:
    """Read the template text for a render target.

    Args:
        target: Render target whose input should be read
        stdin: Stream used when the target reads standard input
        encoding: Text encoding of template files

    Returns:
        Template source text
    """
    if target.reads_stdin:
        return _read_stdin(stdin, encoding)

    try:
        with target.input_path.open(encoding=encoding, newline="") as handle:
            return handle.read()
    except UnicodeDecodeError as e:
        raise CompileError(target.source_name, f"not valid {encoding} text: {e}") from e
    except OSError as e:
        raise FileAccessError(str(target.input_path), f"cannot read template: {e}") from e


def _read_stdin(stdin: TextIO, encoding: str) -> str:
    """Read standard input as ``encoding``, bypassing the locale decoder."""
    raw = getattr(stdin, "buffer", None)
    if raw is None:
        return stdin.read()

    data = raw.read()
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        raise CompileError(STDIN_NAME, f"not valid {encoding} text: {e}") from e
