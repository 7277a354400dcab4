"""Functions available inside templates.

Jinja2's built-in filters and globals form the foundation; this module adds a
general-purpose set on top (strings, math, dates, semantic versions,
encodings, collections). Every function takes its subject as the first
argument, so it works as a filter (``{{ name | quote }}``) and as a call
(``{{ quote(name) }}``).
"""

from __future__ import annotations

import base64
import datetime as dt
import hashlib
import json
import math
import re
from typing import Any, Callable

import yaml
from jinja2 import TemplateRuntimeError, Undefined

from ..values.loader import deep_merge
from . import semver

_WORD_BOUNDARY = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])")


def _words(value: str) -> list[str]:
    return _WORD_BOUNDARY.findall(str(value))


def _is_empty(value: Any) -> bool:
    if isinstance(value, Undefined) or value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


# strings


def quote(value: Any) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def squote(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def nindent(value: Any, width: int = 2) -> str:
    """Indent every non-empty line and prefix a newline, like Helm's nindent."""
    pad = " " * width
    lines = str(value).split("\n")
    return "\n" + "\n".join(pad + line if line else line for line in lines)


def trim_prefix(value: str, prefix: str) -> str:
    return value[len(prefix) :] if value.startswith(prefix) else value


def trim_suffix(value: str, suffix: str) -> str:
    if suffix and value.endswith(suffix):
        return value[: -len(suffix)]
    return value


def has_prefix(value: str, prefix: str) -> bool:
    return str(value).startswith(prefix)


def has_suffix(value: str, suffix: str) -> bool:
    return str(value).endswith(suffix)


def repeat(value: Any, count: int) -> str:
    return str(value) * int(count)


def snakecase(value: str) -> str:
    return "_".join(word.lower() for word in _words(value))


def kebabcase(value: str) -> str:
    return "-".join(word.lower() for word in _words(value))


def camelcase(value: str) -> str:
    return "".join(word.capitalize() for word in _words(value))


def regex_replace(value: str, pattern: str, replacement: str) -> str:
    return re.sub(pattern, replacement, str(value))


def regex_search(value: str, pattern: str) -> str:
    match = re.search(pattern, str(value))
    return match.group(0) if match else ""


def regex_findall(value: str, pattern: str) -> list[str]:
    return re.findall(pattern, str(value))


def split_list(value: str, separator: str) -> list[str]:
    return str(value).split(separator)


# math


def add(value: Any, *others: Any) -> Any:
    total = value
    for other in others:
        total += other
    return total


def sub(value: Any, other: Any) -> Any:
    return value - other


def mul(value: Any, *others: Any) -> Any:
    product = value
    for other in others:
        product *= other
    return product


def div(value: int, other: int) -> int:
    """Integer division truncating toward zero."""
    if other == 0:
        raise ZeroDivisionError("division by zero in template")
    return int(value / other)


def mod(value: int, other: int) -> int:
    return value % other


def ceil(value: float) -> int:
    return math.ceil(value)


def floor(value: float) -> int:
    return math.floor(value)


# dates


def now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def strftime(value: dt.date | str, fmt: str = "%Y-%m-%dT%H:%M:%S%z") -> str:
    if isinstance(value, str):
        value = to_datetime(value)
    return value.strftime(fmt)


def to_datetime(value: str, fmt: str | None = None) -> dt.datetime:
    if fmt is None:
        return dt.datetime.fromisoformat(str(value))
    return dt.datetime.strptime(str(value), fmt)


def unix_epoch(value: dt.datetime | str) -> int:
    if isinstance(value, str):
        value = to_datetime(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return int(value.timestamp())


# semantic versions


def semver_parse(value: str) -> semver.SemanticVersion:
    return semver.parse_version(value)


def semver_compare(value: str, constraint: str) -> bool:
    return semver.satisfies(value, constraint)


# encodings


def b64encode(value: Any) -> str:
    data = value if isinstance(value, bytes) else str(value).encode("utf-8")
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str) -> str:
    return base64.b64decode(str(value)).decode("utf-8")


def to_json(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, sort_keys=True, indent=indent, default=str)


def from_json(value: str) -> Any:
    return json.loads(value)


def from_yaml(value: str) -> Any:
    return yaml.safe_load(value)


def sha256sum(value: Any) -> str:
    return hashlib.sha256(str(value).encode("utf-8")).hexdigest()


def sha1sum(value: Any) -> str:
    return hashlib.sha1(str(value).encode("utf-8")).hexdigest()


# collections and flow control


def coalesce(*values: Any) -> Any:
    """Return the first non-empty argument, or None."""
    for value in values:
        if not _is_empty(value):
            return value
    return None


def ternary(condition: Any, true_value: Any, false_value: Any) -> Any:
    return true_value if condition else false_value


def compact(values: list[Any]) -> list[Any]:
    return [value for value in values if not _is_empty(value)]


def merge(base: dict[str, Any], *overlays: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for overlay in overlays:
        merged = deep_merge(merged, overlay)
    return merged


def required(value: Any, message: str = "a required value is missing") -> Any:
    if _is_empty(value):
        raise TemplateRuntimeError(message)
    return value


def fail(message: str) -> None:
    raise TemplateRuntimeError(message)


def to_yaml(value: Any) -> str:
    """Serialize a value as block-style YAML with sorted keys.

    The trailing newline and any document-end marker are dropped so the
    result can be indented in place with ``nindent``.
    """
    text = yaml.safe_dump(
        value,
        default_flow_style=False,
        sort_keys=True,
        indent=2,
        allow_unicode=True,
    )
    if text.endswith("\n...\n"):
        text = text[: -len("\n...\n")]
    return text.rstrip("\n")


def general_functions() -> dict[str, Callable[..., Any]]:
    """Return the general-purpose function set."""
    return {
        "quote": quote,
        "squote": squote,
        "nindent": nindent,
        "trim_prefix": trim_prefix,
        "trim_suffix": trim_suffix,
        "has_prefix": has_prefix,
        "has_suffix": has_suffix,
        "repeat": repeat,
        "snakecase": snakecase,
        "kebabcase": kebabcase,
        "camelcase": camelcase,
        "regex_replace": regex_replace,
        "regex_search": regex_search,
        "regex_findall": regex_findall,
        "split_list": split_list,
        "add": add,
        "sub": sub,
        "mul": mul,
        "div": div,
        "mod": mod,
        "ceil": ceil,
        "floor": floor,
        "now": now,
        "strftime": strftime,
        "to_datetime": to_datetime,
        "unix_epoch": unix_epoch,
        "semver": semver_parse,
        "semver_compare": semver_compare,
        "b64encode": b64encode,
        "b64decode": b64decode,
        "to_json": to_json,
        "from_json": from_json,
        "from_yaml": from_yaml,
        "sha256sum": sha256sum,
        "sha1sum": sha1sum,
        "coalesce": coalesce,
        "ternary": ternary,
        "compact": compact,
        "merge": merge,
        "required": required,
        "fail": fail,
    }


def function_library() -> dict[str, Callable[..., Any]]:
    """Return the function set installed into every template environment.

    This is the general set with ``to_yaml`` added for stable structured
    output.
    """
    library = general_functions()
    library["to_yaml"] = to_yaml
    return library
