"""Unit tests for aop_validation.constraints (pytest).

These tests cover:
- per-constraint acceptance and rejection rules as pydantic applies them
- NaN and infinities inside bounded numbers and arrays of numbers
- definition-time errors for malformed constraints and message templates
- message rendering from pydantic error entries
"""

from __future__ import annotations

import re
from typing import Annotated

import annotated_types as at
import pytest
from pydantic import Field, StringConstraints, TypeAdapter, ValidationError

from aop_validation.constraints import (
    CONSTRAINT_KINDS,
    FiniteInterval,
    Message,
    in_range,
    is_constraint,
    max_length,
    min_length,
    pattern,
    required,
)
from aop_validation.errors import AopValidationError, ErrorCode


def _accepts(annotation: object, value: object) -> bool:
    try:
        TypeAdapter(annotation).validate_python(value)
    except ValidationError:
        return False
    return True


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, False),
        ("", False),
        ("   ", False),
        ("abc", True),
        (0, False),
    ],
)
def test_required(value: object, *, expected: bool) -> None:
    """required() rejects missing, blank and non-text values."""
    assert _accepts(Annotated[str, required()], value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1, True),
        (100, True),
        (50.5, True),
        (0, False),
        (101, False),
        ("42", True),
        ("forty-two", False),
        (float("nan"), False),
        (float("inf"), False),
        (float("-inf"), False),
        (None, False),
    ],
)
def test_in_range(value: object, *, expected: bool) -> None:
    """Bounds are inclusive; NaN and infinities never pass."""
    assert _accepts(Annotated[float, in_range(minimum=1, maximum=100)], value) is (
        expected
    )


def test_in_range_inside_a_list() -> None:
    """Each element of a list of bounded numbers is checked."""
    readings = list[Annotated[float, in_range(minimum=0.0, maximum=1.0)]]
    assert _accepts(readings, [0.0, 0.5, 1.0])
    assert not _accepts(readings, [0.2, 1.5])

    with pytest.raises(ValidationError) as exc:
        TypeAdapter(readings).validate_python([0.5, float("nan"), float("inf")])
    assert [e["loc"] for e in exc.value.errors()] == [(1,), (2,)]


def test_in_range_builds_finite_interval() -> None:
    """in_range expands into ge/le bounds plus a finiteness check."""
    c = in_range(minimum=1, maximum=100)
    assert c == FiniteInterval(ge=1, le=100)
    ge, le, finite = list(c)
    assert ge == at.Ge(1)
    assert le == at.Le(100)
    assert isinstance(finite, at.Predicate)


def test_in_range_rejects_inverted_bounds() -> None:
    """minimum > maximum is a definition error."""
    with pytest.raises(ValueError, match=r"exceeds maximum") as exc:
        in_range(minimum=10, maximum=1)
    assert isinstance(exc.value.__cause__, AopValidationError)
    assert exc.value.__cause__.code == ErrorCode.INVALID_CONSTRAINT


@pytest.mark.parametrize("bound", ["1", True, float("nan"), float("inf")])
def test_in_range_rejects_unusable_bounds(bound: object) -> None:
    """Bounds must be finite real numbers."""
    with pytest.raises(ValueError, match=r"minimum must be a finite real number"):
        in_range(minimum=bound, maximum=2)


def test_max_and_min_length() -> None:
    """Length constraints apply to strings and collections."""
    assert _accepts(Annotated[str, max_length(maximum=3)], "abc")
    assert not _accepts(Annotated[str, max_length(maximum=3)], "abcd")
    assert _accepts(Annotated[list[str], min_length(minimum=2)], ["a", "b"])
    assert not _accepts(Annotated[str, min_length(minimum=2)], "a")
    assert max_length(maximum=3) == at.MaxLen(3)
    assert min_length(minimum=2) == at.MinLen(2)


@pytest.mark.parametrize("bound", [-1, 2.5, True, "3"])
def test_length_rejects_bad_bound(bound: object) -> None:
    """Length bounds must be non-negative integers."""
    with pytest.raises(
        ValueError, match=re.escape("Constraint 'max_length' is malformed")
    ):
        max_length(maximum=bound)


def test_pattern_requires_full_match() -> None:
    """pattern() matches the whole string, not a substring."""
    c = Annotated[str, pattern(regex=r"[A-Z]{3}-\d+")]
    assert _accepts(c, "ABC-12")
    assert not _accepts(c, "ABC-12x")
    assert not _accepts(c, "xABC-12")


def test_pattern_alternation_is_anchored_as_a_whole() -> None:
    """Alternatives are grouped before anchoring."""
    c = Annotated[str, pattern(regex="red|blue")]
    assert _accepts(c, "blue")
    assert not _accepts(c, "redish")


def test_pattern_rejects_bad_regex() -> None:
    """An uncompilable regex is a definition error."""
    with pytest.raises(ValueError, match=r"invalid regex") as exc:
        pattern(regex="(")
    assert exc.value.__cause__.code == ErrorCode.INVALID_CONSTRAINT


@pytest.mark.parametrize(
    ("meta", "expected"),
    [
        (required(), True),
        (in_range(minimum=0, maximum=1), True),
        (at.MaxLen(3), True),
        (Field(max_length=3), True),
        (StringConstraints(to_lower=True), True),
        (Message("{field} is wrong"), True),
        ("documentation", False),
        (3, False),
    ],
)
def test_is_constraint(meta: object, *, expected: bool) -> None:
    """Only validation metadata and messages count as constraints."""
    assert is_constraint(meta) is expected


def test_message_render() -> None:
    """Templates see the field, the input, the error type and its context."""
    msg = Message("{field}={input} must be <= {le} ({type})")
    error = {"type": "less_than_equal", "input": 150, "ctx": {"le": 100}}
    assert msg.render(field="code", error=error) == (
        "code=150 must be <= 100 (less_than_equal)"
    )


def test_message_render_without_context() -> None:
    """Errors without a ctx still render."""
    msg = Message("{field} is required")
    assert msg.render(field="id", error={"type": "missing"}) == "id is required"


def test_message_unknown_placeholder() -> None:
    """Placeholders missing from the error are constraint errors."""
    msg = Message("{field} exceeds {max_length}")
    with pytest.raises(ValueError, match=re.escape("unknown placeholder")) as exc:
        msg.render(field="code", error={"type": "less_than_equal", "ctx": {}})
    assert exc.value.__cause__.code == ErrorCode.INVALID_CONSTRAINT


@pytest.mark.parametrize("template", ["{field", "field}", "{field:{"])
def test_message_malformed_template(template: str) -> None:
    """Malformed templates fail when the Message is created."""
    with pytest.raises(
        ValueError, match=re.escape("Constraint 'message' is malformed")
    ) as exc:
        Message(template)
    assert isinstance(exc.value.__cause__, AopValidationError)
    assert exc.value.__cause__.code == ErrorCode.INVALID_CONSTRAINT


@pytest.mark.parametrize("template", ["{0} is bad", "{} is bad", "{ctx[le]}"])
def test_message_rejects_non_name_placeholders(template: str) -> None:
    """Placeholders must be plain names."""
    with pytest.raises(ValueError, match=r"must be a plain name"):
        Message(template)


@pytest.mark.parametrize("template", ["", "   ", 42])
def test_message_rejects_empty_templates(template: object) -> None:
    """Templates must be non-empty strings."""
    with pytest.raises(ValueError, match=r"template must be a non-empty string"):
        Message(template)


def test_constraint_kinds_registry() -> None:
    """Every constraint kind is registered under its name."""
    assert set(CONSTRAINT_KINDS) == {
        "required",
        "range",
        "max_length",
        "min_length",
        "pattern",
    }
    assert CONSTRAINT_KINDS["range"] is in_range
