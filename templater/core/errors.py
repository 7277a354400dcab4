"""Error taxonomy for the rendering pipeline."""

from __future__ import annotations


class TemplaterError(Exception):
    """Base class for every fatal rendering error.

    Attributes:
        source: Name of the file, template or value source that failed
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


class NotFoundError(TemplaterError):
    """Raised when an input path or value source does not exist."""


class ParseError(TemplaterError):
    """Raised when a value source is not a valid YAML mapping."""


class CompileError(TemplaterError):
    """Raised when a template is malformed or calls an unknown function."""


class ExecutionError(TemplaterError):
    """Raised when a template fails while rendering."""


class FileAccessError(TemplaterError):
    """Raised when reading, writing or traversing the filesystem fails."""
