"""
Unit tests for aop_validation.errors.

These tests validate:
- ErrorCode enum values
- Base AopValidationError behavior
- Helper raiser functions produce correct built-in exceptions
- Exception chaining preserves AopValidationError as __cause__
"""

from __future__ import annotations

import re

import pytest

from aop_validation.errors import (
    AopValidationError,
    ErrorCode,
    raise_invalid_constraint,
    raise_invalid_schema,
    raise_invalid_target,
    raise_unsupported_feature,
    raise_validation_failed,
)


def test_base_error_carries_code_and_errors() -> None:
    """Test base error carries code and per-field messages."""
    err = AopValidationError(
        "test", code=ErrorCode.VALIDATION_FAILED, errors=["a", "b"]
    )
    assert err.code == ErrorCode.VALIDATION_FAILED
    assert err.errors == ("a", "b")
    assert "test" in str(err)


def test_base_error_defaults() -> None:
    """Test base error defaults to no code and no messages."""
    err = AopValidationError("plain")
    assert err.code is None
    assert err.errors == ()


def test_error_code_values_are_strings() -> None:
    """Test ErrorCode members compare equal to their string values."""
    assert ErrorCode.INVALID_SCHEMA == "invalid_schema"
    assert ErrorCode.INVALID_TARGET == "invalid_target"
    assert ErrorCode.UNSUPPORTED_FEATURE == "unsupported_feature"


def test_raise_invalid_schema_with_path() -> None:
    """Test invalid schema names the offending location."""
    with pytest.raises(
        ValueError,
        match=re.escape(
            "aop_validation could not build a schema at fields['code'][0]: "
            "constraint must be a mapping"
        ),
    ) as exc:
        raise_invalid_schema(
            path="fields['code'][0]", detail="constraint must be a mapping"
        )

    cause = exc.value.__cause__
    assert isinstance(cause, AopValidationError)
    assert cause.code == ErrorCode.INVALID_SCHEMA
    assert cause.errors == ()


def test_raise_invalid_schema_without_path() -> None:
    """Test invalid schema without a path omits the location."""
    with pytest.raises(ValueError, match=r"could not build a schema: no fields$"):
        raise_invalid_schema(detail="no fields")


def test_raise_invalid_constraint() -> None:
    """Test malformed constraints raise ValueError with INVALID_CONSTRAINT."""
    with pytest.raises(
        ValueError, match=re.escape("Constraint 'range' is malformed: bad bounds")
    ) as exc:
        raise_invalid_constraint(constraint="range", detail="bad bounds")
    assert exc.value.__cause__.code == ErrorCode.INVALID_CONSTRAINT


def test_raise_invalid_target() -> None:
    """Test unusable targets raise TypeError with INVALID_TARGET."""
    with pytest.raises(
        TypeError, match=re.escape("Cannot validate target: mappings need a schema")
    ) as exc:
        raise_invalid_target(detail="mappings need a schema")
    assert exc.value.__cause__.code == ErrorCode.INVALID_TARGET


def test_raise_validation_failed_carries_messages() -> None:
    """Test failed validation lists every message and keeps them on the cause."""
    with pytest.raises(
        ValueError,
        match=re.escape("Product failed validation with 2 error(s): a; b"),
    ) as exc:
        raise_validation_failed(target="Product", errors=iter(["a", "b"]))

    cause = exc.value.__cause__
    assert isinstance(cause, AopValidationError)
    assert cause.code == ErrorCode.VALIDATION_FAILED
    assert cause.errors == ("a", "b")


def test_raise_unsupported_feature_with_hint() -> None:
    """Test unsupported feature includes the hint."""
    with pytest.raises(
        NotImplementedError,
        match=re.escape("aop_validation does not support groups. Use tags."),
    ) as exc:
        raise_unsupported_feature(feature="groups", hint="Use tags.")
    assert exc.value.__cause__.code == ErrorCode.UNSUPPORTED_FEATURE


def test_raise_unsupported_feature_without_hint() -> None:
    """Test unsupported feature message ends after the feature."""
    with pytest.raises(
        NotImplementedError, match=r"^aop_validation does not support groups\.$"
    ):
        raise_unsupported_feature(feature="groups")
