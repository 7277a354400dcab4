"""Main CLI application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from .. import __version__, pipeline
from ..core.errors import TemplaterError
from ..core.models import RenderRequest
from ..core.settings import get_settings
from .parsers import parse_file_mode

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="templater",
    help="Render Jinja2 templates against layered YAML values.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"templater {__version__}")
        raise typer.Exit()


@app.command()
def render(
    input_path: Annotated[
        str,
        typer.Option(
            "--input",
            "-i",
            help="Template file or directory, or - to read the template from stdin.",
            metavar="PATH",
        ),
    ],
    value_files: Annotated[
        list[Path],
        typer.Option(
            "--values",
            "-f",
            help="YAML values file. Repeatable; later files override earlier ones.",
            metavar="FILE",
        ),
    ] = [],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output file, or output directory when rendering a directory (default: stdout).",
            metavar="PATH",
        ),
    ] = None,
    file_mode: Annotated[
        str,
        typer.Option(
            "--mode",
            help="Output file permissions in octal (default: 0644).",
            metavar="OCTAL",
        ),
    ] = "",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable verbose logging.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Print the version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Render templates with values from YAML files."""
    # Configure logging; stdout is reserved for rendered output
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    logger.debug("Starting templater")

    try:
        settings = get_settings()
    except ValidationError as e:
        typer.echo(f"Error: invalid TEMPLATER_* settings: {e}", err=True)
        raise typer.Exit(code=1) from e

    mode = parse_file_mode(file_mode) if file_mode else settings.file_mode

    request = RenderRequest(
        input=input_path,
        value_files=list(value_files or []),
        output=output,
        file_mode=mode,
    )

    logger.debug(
        f"Request: input={request.input} values={len(request.value_files)} output={request.output}"
    )

    try:
        targets = pipeline.run(request, settings)
    except TemplaterError as e:
        logger.debug("Rendering failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    logger.debug(f"Completed: {len(targets)} template(s) rendered")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
