"""CLI argument parsers and validators."""

from __future__ import annotations

import typer


def parse_file_mode(value: str) -> int:
    """Parse octal file mode string."""
    try:
        mode = int(value, 8)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid octal mode: {value!r}") from e
    if not 0 <= mode <= 0o7777:
        raise typer.BadParameter(f"File mode out of range: {value!r}")
    return mode
