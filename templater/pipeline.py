"""End-to-end rendering: load values, resolve targets, render."""

from __future__ import annotations

import logging
from typing import BinaryIO, TextIO

from .core.models import RenderRequest, RenderTarget
from .core.settings import Settings, get_settings
from .rendering import engine, paths
from .rendering.functions import function_library
from .values import loader

logger = logging.getLogger(__name__)


def run(
    request: RenderRequest,
    settings: Settings | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: BinaryIO | None = None,
) -> list[RenderTarget]:
    """Execute a render request.

    Values are loaded in full before any template is read, and the first
    failing target stops the run.

    Args:
        request: Validated render request
        settings: Rendering settings (defaults to environment settings)
        stdin: Standard input stream
        stdout: Binary standard output stream

    Returns:
        Targets rendered
    """
    settings = settings or get_settings()

    values = loader.load_values(request.value_files)
    library = function_library()
    targets = paths.resolve_targets(request.input, request.output)

    logger.debug(f"Resolved {len(targets)} target(s) for input {request.input}")

    return engine.render_all(
        targets,
        values,
        library,
        settings=settings,
        file_mode=request.file_mode,
        stdin=stdin,
        stdout=stdout,
    )
