"""
Core error types and helpers for aop_validation.

Design intent:
- An object failing its constraints is reported as data (`ValidationResult`).
  Exceptions cover the other cases: metadata or schemas that cannot be built,
  targets the library cannot validate, and callers that explicitly ask for a
  raise (`ensure_valid`, the "raise" weaving policy).
- Lean on built-in exception classes for ergonomics (ValueError/TypeError/etc.).
- Provide machine-readable error codes via a single lightweight base error that
  is chained as the exception cause for structured handling.

Contract:
- Public raiser helpers raise built-in exceptions and chain an
  AopValidationError as the cause, carrying an ErrorCode.
- Callers that want structured handling can catch built-ins and inspect
  `exc.__cause__` for an AopValidationError (and its `code` / `errors`).
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ErrorCode(StrEnum):
    """Machine-readable classification for aop_validation failures."""

    INVALID_SCHEMA = "invalid_schema"
    INVALID_CONSTRAINT = "invalid_constraint"
    INVALID_TARGET = "invalid_target"
    VALIDATION_FAILED = "validation_failed"
    UNSUPPORTED_FEATURE = "unsupported_feature"


class AopValidationError(Exception):
    """Structured cause chained onto the built-in exceptions raised here.

    Attributes:
        code: Classification of the failure.
        errors: Per-field messages when an object failed validation.
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        errors: Iterable[str] = (),
    ) -> None:
        """
        Initialize AopValidationError.

        Args:
            message: Human-readable error message.
            code: Optional ErrorCode classifying the error.
            errors: Per-field validation messages, if any.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code
        self.errors: tuple[str, ...] = tuple(errors)


def _chain(
    exc_type: type[Exception],
    msg: str,
    code: ErrorCode,
    errors: Iterable[str] = (),
) -> None:
    raise exc_type(msg) from AopValidationError(msg, code=code, errors=errors)


# -----------------------------------------------------------------------------
# Raiser helpers (raise built-ins; chain AopValidationError with code)
# -----------------------------------------------------------------------------


def raise_invalid_schema(*, detail: str, path: str | None = None) -> None:
    """Raise when a schema cannot be built from its declaration.

    Args:
        detail: What is wrong.
        path: Location inside a mapping spec, e.g. ``fields['code'][0]``.

    Raises:
        ValueError: Always, chained from AopValidationError(code=INVALID_SCHEMA).
    """
    where = f" at {path}" if path else ""
    _chain(
        ValueError,
        f"aop_validation could not build a schema{where}: {detail}",
        ErrorCode.INVALID_SCHEMA,
    )


def raise_invalid_constraint(*, constraint: str, detail: str) -> None:
    """Raise when a constraint is declared with unusable arguments.

    Raises:
        ValueError: Always, chained from AopValidationError(code=INVALID_CONSTRAINT).
    """
    _chain(
        ValueError,
        f"Constraint '{constraint}' is malformed: {detail}",
        ErrorCode.INVALID_CONSTRAINT,
    )


def raise_invalid_target(*, detail: str) -> None:
    """Raise when the library is asked to validate something it cannot.

    Raises:
        TypeError: Always, chained from AopValidationError(code=INVALID_TARGET).
    """
    _chain(TypeError, f"Cannot validate target: {detail}", ErrorCode.INVALID_TARGET)


def raise_validation_failed(*, target: str, errors: Iterable[str]) -> None:
    """Raise for an object that failed validation.

    The individual messages are available on the chained cause as `errors`.

    Raises:
        ValueError: Always, chained from AopValidationError(code=VALIDATION_FAILED).
    """
    errs = tuple(errors)
    msg = f"{target} failed validation with {len(errs)} error(s): " + "; ".join(errs)
    _chain(ValueError, msg, ErrorCode.VALIDATION_FAILED, errors=errs)


def raise_unsupported_feature(*, feature: str, hint: str | None = None) -> None:
    """Raise for a recognized but unsupported request.

    Raises:
        NotImplementedError: Chained from AopValidationError(code=UNSUPPORTED_FEATURE).
    """
    msg = f"aop_validation does not support {feature}."
    if hint:
        msg = f"{msg} {hint}"
    _chain(NotImplementedError, msg, ErrorCode.UNSUPPORTED_FEATURE)
