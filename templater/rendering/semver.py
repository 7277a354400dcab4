"""Semantic version parsing and constraint matching for templates.

Versions follow SemVer 2.0 precedence: build metadata is ignored, and a
pre-release sorts before its release. Constraints accept the operators
``=``, ``!=``, ``>``, ``>=``, ``<``, ``<=``, caret (``^1.2``), tilde
(``~1.2.3``) and wildcards (``1.2.x``, ``*``). Clauses separated by commas
or spaces must all match; alternatives separated by ``||`` are OR-ed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Callable

_VERSION_PATTERN = re.compile(
    r"^[vV]?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_PARTIAL_PATTERN = re.compile(
    r"^[vV]?(?P<major>\d+|[xX*])(?:\.(?P<minor>\d+|[xX*]))?(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

_CLAUSE_PATTERN = re.compile(r"(\^|~|>=|<=|!=|==|=|>|<)?\s*([^\s,<>=!^~]+)")

Predicate = Callable[["SemanticVersion"], bool]


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """A parsed semantic version."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    build: str = ""

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    def _key(self) -> tuple:
        if not self.prerelease:
            pre: tuple = (1,)
        else:
            identifiers = tuple(
                (0, int(part), "") if part.isdigit() else (1, 0, part)
                for part in self.prerelease.split(".")
            )
            pre = (0, identifiers)
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())


def parse_version(text: str) -> SemanticVersion:
    """Parse a version string such as ``v1.2.3-rc.1+build.5``.

    Missing minor or patch components default to zero.

    Raises:
        ValueError: If the text is not a semantic version
    """
    match = _VERSION_PATTERN.match(str(text).strip())
    if not match:
        raise ValueError(f"Invalid semantic version: {text!r}")
    return SemanticVersion(
        major=int(match["major"]),
        minor=int(match["minor"] or 0),
        patch=int(match["patch"] or 0),
        prerelease=match["prerelease"] or "",
        build=match["build"] or "",
    )


def _bump(parts: list[int], position: int) -> SemanticVersion:
    bumped = parts[: position + 1] + [0] * (2 - position)
    bumped[position] += 1
    return SemanticVersion(*bumped)


def _between(lower: SemanticVersion, upper: SemanticVersion) -> Predicate:
    return lambda v: lower <= v < upper


def _clause_predicate(op: str, text: str) -> Predicate:
    match = _PARTIAL_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid version in constraint: {text!r}")

    raw = [match["major"], match["minor"], match["patch"]]
    parts: list[int] = []
    for component in raw:
        if component is None or not component.isdigit():
            break
        parts.append(int(component))
    precision = len(parts)

    if precision == 0:
        return lambda v: True

    base = SemanticVersion(
        *(parts + [0] * (3 - precision)), prerelease=match["prerelease"] or ""
    )
    exact = precision == 3
    upper = None if exact else _bump(parts, precision - 1)

    if op in ("", "=", "=="):
        return (lambda v: v == base) if exact else _between(base, upper)
    if op == "!=":
        if exact:
            return lambda v: v != base
        in_range = _between(base, upper)
        return lambda v: not in_range(v)
    if op == ">":
        return (lambda v: v > base) if exact else (lambda v: v >= upper)
    if op == ">=":
        return lambda v: v >= base
    if op == "<":
        return lambda v: v < base
    if op == "<=":
        return (lambda v: v <= base) if exact else (lambda v: v < upper)
    if op == "~":
        return _between(base, _bump(parts, 1 if precision >= 2 else 0))
    if op == "^":
        if parts[0] > 0 or precision == 1:
            position = 0
        elif (precision >= 2 and parts[1] > 0) or precision == 2:
            position = 1
        else:
            position = 2
        return _between(base, _bump(parts + [0] * (3 - precision), position))
    raise ValueError(f"Unknown constraint operator: {op!r}")


def _parse_alternative(text: str) -> list[Predicate]:
    predicates: list[Predicate] = []
    remaining = text.replace(",", " ").strip()
    position = 0
    while position < len(remaining):
        if remaining[position].isspace():
            position += 1
            continue
        match = _CLAUSE_PATTERN.match(remaining, position)
        if not match:
            raise ValueError(f"Invalid version constraint: {text!r}")
        predicates.append(_clause_predicate(match.group(1) or "", match.group(2)))
        position = match.end()
    if not predicates:
        raise ValueError(f"Empty version constraint: {text!r}")
    return predicates


def satisfies(version: str | SemanticVersion, constraint: str) -> bool:
    """Check whether a version matches a constraint expression.

    Args:
        version: Version string or parsed version
        constraint: Constraint such as ``">=1.2.0, <2.0.0"`` or ``"^1.4 || ~2.0"``

    Returns:
        True when any alternative matches in full
    """
    if not isinstance(version, SemanticVersion):
        version = parse_version(version)

    for alternative in str(constraint).split("||"):
        predicates = _parse_alternative(alternative)
        if all(predicate(version) for predicate in predicates):
            return True
    return False
