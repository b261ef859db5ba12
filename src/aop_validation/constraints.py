"""
aop_validation.constraints.

Field constraints are plain pydantic / annotated-types metadata attached with
`typing.Annotated`, so pydantic performs the actual checking:

    @dataclass
    class Product:
        id: Annotated[str, required()]
        code: Annotated[int, in_range(minimum=1, maximum=100)]
        name: Annotated[str, Field(max_length=20)]

The helpers below are thin builders over that metadata. They reject malformed
arguments when the class is defined rather than when an object is validated,
and they back the `kind` names used by mapping schemas. Any metadata pydantic
understands (`Field(...)`, `annotated_types.*`, `StringConstraints`) can be
used directly.

`Message` overrides the text reported for a failing field.
"""

from __future__ import annotations

import math
import re
import string
from dataclasses import dataclass
from numbers import Real
from typing import TYPE_CHECKING, Any

import annotated_types as at
from pydantic import StringConstraints
from pydantic.fields import FieldInfo

from .errors import raise_invalid_constraint

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

# -----------------------------------------------------------------------------
# Constraint builders
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FiniteInterval(at.GroupedMetadata):
    """Inclusive `ge`/`le` bounds that also reject NaN and infinities."""

    ge: float
    le: float

    def __iter__(self) -> Iterator[at.BaseMetadata]:
        yield at.Ge(self.ge)
        yield at.Le(self.le)
        yield at.Predicate(math.isfinite)


def required() -> StringConstraints:
    """Text must be present and not blank."""
    return StringConstraints(strip_whitespace=True, min_length=1)


def in_range(*, minimum: float, maximum: float) -> FiniteInterval:
    """Finite number within inclusive bounds."""
    for name, bound in (("minimum", minimum), ("maximum", maximum)):
        if (
            isinstance(bound, bool)
            or not isinstance(bound, Real)
            or not math.isfinite(bound)
        ):
            raise_invalid_constraint(
                constraint="range", detail=f"{name} must be a finite real number"
            )
    if minimum > maximum:
        raise_invalid_constraint(
            constraint="range", detail=f"minimum {minimum} exceeds maximum {maximum}"
        )
    return FiniteInterval(ge=minimum, le=maximum)


def _length_bound(kind: str, name: str, bound: object) -> int:
    if isinstance(bound, bool) or not isinstance(bound, int) or bound < 0:
        raise_invalid_constraint(
            constraint=kind, detail=f"{name} must be a non-negative integer"
        )
    return bound


def max_length(*, maximum: int) -> at.MaxLen:
    """String or collection no longer than `maximum`."""
    return at.MaxLen(_length_bound("max_length", "maximum", maximum))


def min_length(*, minimum: int) -> at.MinLen:
    """String or collection at least `minimum` long."""
    return at.MinLen(_length_bound("min_length", "minimum", minimum))


def pattern(*, regex: str) -> StringConstraints:
    """Whole string matches `regex`."""
    if not isinstance(regex, str):
        raise_invalid_constraint(constraint="pattern", detail="regex must be a str")
    try:
        re.compile(regex)
    except re.error as exc:
        raise_invalid_constraint(
            constraint="pattern", detail=f"invalid regex {regex!r}: {exc}"
        )
    # pydantic searches; anchor for a full match.
    return StringConstraints(pattern=f"^(?:{regex})$")


CONSTRAINT_KINDS: dict[str, Callable[..., Any]] = {
    "required": required,
    "range": in_range,
    "max_length": max_length,
    "min_length": min_length,
    "pattern": pattern,
}


def is_constraint(meta: object) -> bool:
    """Return True for metadata that pydantic validates or that sets a message."""
    return isinstance(meta, (at.BaseMetadata, at.GroupedMetadata, FieldInfo, Message))


# -----------------------------------------------------------------------------
# Custom failure messages
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Message:
    """Failure message template for a field.

    The template is rendered with `str.format`. Available placeholders are
    `{field}`, `{input}`, `{type}` (the pydantic error type) and the keys of
    the pydantic error context, e.g. `{ge}`, `{le}` or `{max_length}`.
    """

    template: str

    def __post_init__(self) -> None:
        if not isinstance(self.template, str) or not self.template.strip():
            raise_invalid_constraint(
                constraint="message", detail="template must be a non-empty string"
            )
        try:
            parsed = list(string.Formatter().parse(self.template))
        except ValueError as exc:
            raise_invalid_constraint(
                constraint="message",
                detail=f"template {self.template!r} is malformed: {exc}",
            )
        for _, name, _, _ in parsed:
            if name is not None and not name.isidentifier():
                raise_invalid_constraint(
                    constraint="message",
                    detail=f"placeholder {{{name}}} must be a plain name",
                )

    def render(self, *, field: str, error: Mapping[str, Any]) -> str:
        """Render the template for one pydantic error entry."""
        params = {
            "input": error.get("input"),
            "type": error.get("type"),
            **(error.get("ctx") or {}),
            "field": field,
        }
        try:
            return self.template.format(**params)
        except KeyError as exc:
            raise_invalid_constraint(
                constraint="message",
                detail=f"template references unknown placeholder {exc}",
            )
        raise AssertionError("unreachable")  # pragma: no cover
