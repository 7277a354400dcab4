"""Tests for template compilation and execution."""

import io

import pytest

from templater.core.errors import CompileError, ExecutionError
from templater.core.models import RenderTarget
from templater.rendering.engine import (
    compile_template,
    execute_template,
    render_target,
)
from templater.rendering.functions import function_library


@pytest.fixture
def library():
    return function_library()


@pytest.fixture
def render(library, settings):
    """Compile and execute a template string, returning the output bytes."""

    def _render(source, values=None, name="test.tpl", settings_override=None):
        compiled = compile_template(
            source, name, library, settings=settings_override or settings
        )
        sink = io.BytesIO()
        execute_template(compiled, values or {}, sink)
        return sink.getvalue()

    return _render


class TestPassthrough:
    """Templates without directives come out unchanged."""

    @pytest.mark.parametrize(
        "source",
        [
            "plain text",
            "line one\nline two\n\n",
            "  indented:\n    - item\n",
            "",
            "windows\r\nline endings\r\n",
            "old mac\rline endings\r",
            "mixed\r\nline\nendings\n",
            "one\rtwo\r\nthree\n",
            "unicode: héllo ✓\n",
        ],
    )
    def test_output_is_byte_identical(self, render, source):
        for values in ({}, {"a": 1}, {"nested": {"b": [1, 2]}}):
            assert render(source, values) == source.encode("utf-8")

    def test_line_endings_kept_around_expressions(self, render):
        source = "{{ a }}\r\nplain\n{{ a }}\r"
        assert render(source, {"a": 1}) == b"1\r\nplain\n1\r"

    def test_crlf_loop_with_trimmed_blocks(self, render):
        source = "{% for i in items %}\r\n- {{ i }}\r\n{% endfor %}\r\ndone\r\n"
        assert render(source, {"items": [1, 2]}) == b"- 1\r\n- 2\r\ndone\r\n"


class TestExecution:
    """Tests for rendering values into templates."""

    def test_substitution(self, render):
        assert render("name={{ name }}", {"name": "foo"}) == b"name=foo"

    def test_upper_filter(self, render):
        assert render("{{ x | upper }}", {"x": "hi"}) == b"HI"

    def test_library_function_as_filter_and_call(self, render):
        values = {"secret": "abc"}
        assert render("{{ secret | b64encode }}", values) == b"YWJj"
        assert render("{{ b64encode(secret) }}", values) == b"YWJj"

    def test_control_flow(self, render):
        source = (
            "{% for port in ports %}\n"
            "- {{ port }}\n"
            "{% endfor %}\n"
            "{% if enabled %}on{% else %}off{% endif %}\n"
        )
        assert render(source, {"ports": [80, 443], "enabled": False}) == b"- 80\n- 443\noff"

    def test_to_yaml_with_nindent(self, render):
        source = "spec:{{ resources | to_yaml | nindent(2) }}\n"
        values = {"resources": {"limits": {"cpu": "500m"}, "requests": {"cpu": "100m"}}}
        assert render(source, values) == (
            b"spec:\n  limits:\n    cpu: 500m\n  requests:\n    cpu: 100m\n"
        )

    def test_macro_is_callable(self, render):
        source = "{% macro greet(n) %}hi {{ n }}{% endmacro %}{{ greet(name) }}"
        assert render(source, {"name": "bob"}) == b"hi bob"

    def test_deterministic(self, render):
        source = "{{ data | to_yaml }}\n{{ data | to_json }}"
        values = {"data": {"z": 1, "a": [3, 2, 1], "m": {"k": "v"}}}
        assert render(source, values) == render(source, values)

    def test_include_resolves_next_to_template(self, tmp_path, library, settings):
        (tmp_path / "_helpers.tpl").write_text("helper={{ name }}")
        (tmp_path / "main.tpl").write_text('{% include "_helpers.tpl" %}!')
        target = RenderTarget(input_path=tmp_path / "main.tpl")
        stdout = io.BytesIO()
        render_target(
            target,
            {"name": "x"},
            library,
            settings=settings,
            file_mode=0o644,
            stdin=io.StringIO(),
            stdout=stdout,
        )
        assert stdout.getvalue() == b"helper=x!"


class TestCompileErrors:
    """Tests for errors raised while compiling."""

    def test_syntax_error_names_source(self, render):
        with pytest.raises(CompileError) as exc_info:
            render("{% if x %}unterminated", name="broken.tpl")
        assert exc_info.value.source == "broken.tpl"
        assert "broken.tpl" in str(exc_info.value)
        assert "line" in str(exc_info.value)

    def test_unmatched_delimiter(self, render):
        with pytest.raises(CompileError):
            render("{{ name ")

    def test_unknown_function(self, render):
        with pytest.raises(CompileError, match="unknown function 'nope'"):
            render("{{ nope(1) }}")

    def test_unknown_filter(self, render):
        with pytest.raises(CompileError, match="unknown filter 'nope'"):
            render("{{ x | nope }}", {"x": 1})

    def test_unknown_filter_in_untaken_branch(self, render):
        with pytest.raises(CompileError, match="unknown filter"):
            render("{% if false %}{{ x | nope }}{% endif %}")

    def test_unknown_test(self, render):
        with pytest.raises(CompileError, match="unknown test"):
            render("{% if x is nope %}{% endif %}", {"x": 1})


class TestExecutionErrors:
    """Tests for errors raised while rendering."""

    def test_undefined_value_is_fatal(self, render):
        with pytest.raises(ExecutionError) as exc_info:
            render("{{ missing }}", name="app.tpl")
        assert exc_info.value.source == "app.tpl"
        assert "missing" in str(exc_info.value)

    def test_undefined_value_renders_empty_when_lenient(self, render, settings):
        lenient = settings.model_copy(update={"strict_undefined": False})
        assert render("[{{ missing }}]", settings_override=lenient) == b"[]"

    def test_required_value(self, render):
        with pytest.raises(ExecutionError, match="image is required"):
            render('{{ required(image, "image is required") }}', {"image": ""})

    def test_function_error(self, render):
        with pytest.raises(ExecutionError, match="Invalid semantic version"):
            render("{{ semver_compare(v, '>1.0') }}", {"v": "not-a-version"})

    def test_streamed_output_is_not_rolled_back(self, library, settings):
        compiled = compile_template(
            "before {{ fail('boom') }} after", "partial.tpl", library, settings=settings
        )
        sink = io.BytesIO()
        with pytest.raises(ExecutionError, match="boom"):
            execute_template(compiled, {}, sink)
        assert sink.getvalue() == b"before "
