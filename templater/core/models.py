"""Domain models for render targets and requests."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

STDIN = "-"
STDIN_NAME = "<stdin>"


class RenderTarget(BaseModel):
    """A single template input paired with its output destination."""

    model_config = ConfigDict(frozen=True)

    input_path: Path | None = Field(
        default=None, description="Template file path; None reads standard input"
    )
    output_path: Path | None = Field(
        default=None, description="Output file path; None writes standard output"
    )

    @property
    def reads_stdin(self) -> bool:
        return self.input_path is None

    @property
    def writes_stdout(self) -> bool:
        return self.output_path is None

    @property
    def source_name(self) -> str:
        """Name used for diagnostics: the template's base file name."""
        if self.reads_stdin:
            return STDIN_NAME
        return self.input_path.name

    def describe(self) -> str:
        source = STDIN_NAME if self.reads_stdin else str(self.input_path)
        dest = "<stdout>" if self.writes_stdout else str(self.output_path)
        return f"{source} → {dest}"


class RenderRequest(BaseModel):
    """Validated invocation of the rendering pipeline."""

    input: str = Field(..., min_length=1, description="Template path or '-' for stdin")
    value_files: list[Path] = Field(
        default_factory=list, description="YAML value sources, applied in order"
    )
    output: Path | None = Field(
        default=None, description="Output file or output root directory"
    )
    file_mode: int = Field(default=0o644, description="File permissions (octal)")
