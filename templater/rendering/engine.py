"""Template rendering engine."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterable, Iterator, Mapping, Sequence, TextIO

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    TemplateSyntaxError,
    Undefined,
    nodes,
)
from jinja2.lexer import TOKEN_DATA, Lexer, Token, TokenStream, newline_re

from ..core.errors import CompileError, ExecutionError, FileAccessError
from ..core.models import RenderTarget
from ..core.settings import Settings, get_settings
from .io import atomic_open, read_source

logger = logging.getLogger(__name__)

# Names Jinja binds implicitly inside macros and blocks.
_IMPLICIT_NAMES = frozenset({"caller", "varargs", "kwargs", "super", "loop", "self"})


@dataclass(frozen=True)
class CompiledTemplate:
    """A parsed and compiled template together with its diagnostic name."""

    name: str
    template: Template


class LineEndingLexer(Lexer):
    """Lexer that gives template text back its original line endings.

    Jinja joins source lines with ``\\n`` before tokenizing. Every data token
    starts on a known line, so the k-th newline inside it ends line
    ``lineno + k`` and takes that line's original ending.
    """

    def tokenize(
        self,
        source: str,
        name: str | None = None,
        filename: str | None = None,
        state: str | None = None,
    ) -> TokenStream:
        endings = newline_re.findall(source)
        tokens = self.wrap(self.tokeniter(source, name, filename, state), name, filename)
        return TokenStream(_restore_endings(tokens, endings), name, filename)


def _restore_endings(tokens: Iterable[Token], endings: list[str]) -> Iterator[Token]:
    for token in tokens:
        if token.type == TOKEN_DATA and "\n" in token.value:
            lines = token.value.split("\n")
            first = token.lineno - 1
            value = lines[0]
            for offset, line in enumerate(lines[1:]):
                index = first + offset
                value += (endings[index] if index < len(endings) else "\n") + line
            token = Token(token.lineno, token.type, value)
        yield token


class RenderEnvironment(Environment):
    """Jinja2 environment that leaves template line endings untouched."""

    @cached_property
    def lexer(self) -> Lexer:
        return LineEndingLexer(self)


def create_environment(
    library: Mapping[str, Callable[..., Any]],
    search_path: Path | None = None,
    settings: Settings | None = None,
) -> Environment:
    """Create a Jinja2 environment with the function library installed.

    Args:
        library: Functions to expose as both filters and globals
        search_path: Directory used to resolve ``include`` and ``import``
        settings: Rendering settings (defaults to environment settings)

    Returns:
        Configured Jinja2 environment
    """
    settings = settings or get_settings()
    loader = FileSystemLoader(str(search_path)) if search_path is not None else None
    env = RenderEnvironment(
        loader=loader,
        undefined=StrictUndefined if settings.strict_undefined else Undefined,
        autoescape=False,
        trim_blocks=settings.trim_blocks,
        lstrip_blocks=settings.lstrip_blocks,
        keep_trailing_newline=True,
    )
    env.filters.update(library)
    env.globals.update(library)
    return env


def _bound_names(ast: nodes.Template) -> set[str]:
    """Collect names a template binds itself (macros, sets, loops, imports)."""
    bound = set(_IMPLICIT_NAMES)
    for node in ast.find_all((nodes.Name, nodes.Macro, nodes.Import, nodes.FromImport)):
        if isinstance(node, nodes.Name):
            if node.ctx in ("store", "param"):
                bound.add(node.name)
        elif isinstance(node, nodes.Macro):
            bound.add(node.name)
        elif isinstance(node, nodes.Import):
            bound.add(node.target)
        else:
            for entry in node.names:
                bound.add(entry[1] if isinstance(entry, tuple) else entry)
    return bound


def _check_names(env: Environment, ast: nodes.Template, name: str) -> None:
    """Reject unknown filters, tests and functions before compiling."""
    for node in ast.find_all(nodes.Filter):
        if node.name not in env.filters:
            raise CompileError(name, f"line {node.lineno}: unknown filter {node.name!r}")

    for node in ast.find_all(nodes.Test):
        if node.name not in env.tests:
            raise CompileError(name, f"line {node.lineno}: unknown test {node.name!r}")

    bound = _bound_names(ast)
    for node in ast.find_all(nodes.Call):
        callee = node.node
        if not isinstance(callee, nodes.Name):
            continue
        if callee.name not in env.globals and callee.name not in bound:
            raise CompileError(
                name, f"line {node.lineno}: unknown function {callee.name!r}"
            )


def compile_template(
    source: str,
    name: str,
    library: Mapping[str, Callable[..., Any]],
    *,
    search_path: Path | None = None,
    settings: Settings | None = None,
) -> CompiledTemplate:
    """Parse and compile template text.

    Args:
        source: Template text
        name: Name used in diagnostics
        library: Template function library
        search_path: Directory used to resolve ``include`` and ``import``
        settings: Rendering settings

    Returns:
        Compiled template
    """
    env = create_environment(library, search_path, settings)
    try:
        ast = env.parse(source, name=name)
        _check_names(env, ast, name)
        code = env.compile(ast, name=name)
    except TemplateSyntaxError as e:
        raise CompileError(name, f"line {e.lineno}: {e.message or e}") from e

    template = env.template_class.from_code(env, code, env.make_globals(None))
    return CompiledTemplate(name=name, template=template)


def execute_template(
    compiled: CompiledTemplate,
    values: Mapping[str, Any],
    sink: BinaryIO,
    *,
    encoding: str = "utf-8",
) -> None:
    """Render a compiled template, streaming encoded output to ``sink``.

    Output written before a failure stays in the sink.

    Args:
        compiled: Template to execute
        values: Value mapping bound as the top-level context
        sink: Binary stream receiving the output
        encoding: Output encoding
    """
    try:
        for chunk in compiled.template.generate(values):
            sink.write(chunk.encode(encoding))
    except TemplateError as e:
        raise ExecutionError(compiled.name, e.message or type(e).__name__) from e
    except OSError as e:
        raise FileAccessError(compiled.name, f"write failed: {e}") from e
    except Exception as e:
        raise ExecutionError(compiled.name, f"{type(e).__name__}: {e}") from e


def render_target(
    target: RenderTarget,
    values: Mapping[str, Any],
    library: Mapping[str, Callable[..., Any]],
    *,
    settings: Settings,
    file_mode: int,
    stdin: TextIO,
    stdout: BinaryIO,
) -> None:
    """Render a single target into its destination.

    Args:
        target: Render target to execute
        values: Value mapping
        library: Template function library
        settings: Rendering settings
        file_mode: Output file permissions
        stdin: Stream read when the target reads standard input
        stdout: Binary stream written when the target writes standard output
    """
    logger.debug(f"Rendering template: {target.source_name}")

    source = read_source(target, stdin, settings.encoding)
    search_path = None if target.reads_stdin else target.input_path.parent
    compiled = compile_template(
        source,
        target.source_name,
        library,
        search_path=search_path,
        settings=settings,
    )

    if target.writes_stdout:
        try:
            execute_template(compiled, values, stdout, encoding=settings.encoding)
        finally:
            stdout.flush()
    else:
        try:
            with atomic_open(target.output_path, mode=file_mode) as sink:
                execute_template(compiled, values, sink, encoding=settings.encoding)
        except OSError as e:
            raise FileAccessError(
                str(target.output_path), f"cannot write output: {e}"
            ) from e

    logger.info(f"Rendered {target.describe()}")


def render_all(
    targets: Sequence[RenderTarget],
    values: Mapping[str, Any],
    library: Mapping[str, Callable[..., Any]],
    *,
    settings: Settings | None = None,
    file_mode: int = 0o644,
    stdin: TextIO | None = None,
    stdout: BinaryIO | None = None,
) -> list[RenderTarget]:
    """Render every target in order, stopping at the first failure.

    Args:
        targets: Render targets in processing order
        values: Value mapping
        library: Template function library
        settings: Rendering settings
        file_mode: Output file permissions
        stdin: Standard input stream (default: ``sys.stdin``)
        stdout: Binary standard output stream (default: ``sys.stdout.buffer``)

    Returns:
        Targets rendered
    """
    settings = settings or get_settings()
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout.buffer

    logger.info(f"Rendering {len(targets)} template(s)")

    for target in targets:
        render_target(
            target,
            values,
            library,
            settings=settings,
            file_mode=file_mode,
            stdin=stdin,
            stdout=stdout,
        )

    logger.info(f"Successfully rendered {len(targets)} template(s)")
    return list(targets)
