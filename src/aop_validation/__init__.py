"""aop_validation.

Declarative field validation woven into objects as an aspect.

Public API (v1)
--------------
Primary user entrypoints:
- `validate`: Validate an object against its declared constraints in one step.
- `schema_for` / `normalize_schema`: Build a `NormalizedSchema` from an
  annotated class or from a YAML-friendly mapping.
- `required`, `in_range`, `max_length`, `min_length`, `pattern`, `Message`:
  constraint metadata for `typing.Annotated` fields, checked by pydantic.
- `compile_validator`: Compile a `NormalizedSchema` into a `CompiledValidator`.
- `Validated`, `validated`, `intercept`, `weave`: attach validation as a
  decorator object, at class definition, or at call time.

Core data structures:
- `NormalizedSchema`
- `CompiledValidator`
- `ValidationResult`

Design guarantees:
- Validation failures are returned as data, never raised, unless a caller opts
  in (`ensure_valid`, `on_invalid="raise"`).
- Compiled validators are immutable and safe to share.
"""

from __future__ import annotations

from .constraints import (
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
from .errors import AopValidationError, ErrorCode
from .specs import (
    FieldRule,
    NormalizedSchema,
    normalize_mapping_schema,
    normalize_schema,
    schema_for,
)
from .validate import (
    CompiledValidator,
    FieldFailure,
    ValidationResult,
    compile_validator,
    ensure_valid,
    resolve_validator,
    try_validate,
    validate_object,
    validator_for,
)
from .weaving import (
    Aspect,
    InvalidPolicy,
    JoinPoint,
    LogCalls,
    Validated,
    ValidateArguments,
    Woven,
    intercept,
    validated,
    weave,
)

# -----------------------------------------------------------------------------
# Versioning & capability metadata
# -----------------------------------------------------------------------------

__version__ = "0.1.0"

SUPPORTED_SCHEMA_KINDS: tuple[str, ...] = ("annotations", "mapping")  # noqa: RUF067

SUPPORTED_CONSTRAINTS: tuple[str, ...] = tuple(sorted(CONSTRAINT_KINDS))  # noqa: RUF067

# -----------------------------------------------------------------------------
# High-level public façade
# -----------------------------------------------------------------------------


def validate(obj: object, spec: dict | None = None) -> ValidationResult:  # noqa: RUF067
    """
    Validate an object in one call.

    This is the recommended public entrypoint for most users.

    Args:
        obj: Object (or mapping) to validate.
        spec: Optional raw schema mapping; defaults to the annotations of
            `type(obj)`.

    Returns:
        ValidationResult: Validity flag plus one message per violation.
    """
    schema = normalize_schema(spec) if spec is not None else None
    return validate_object(obj, schema)


# -----------------------------------------------------------------------------
# Public export surface
# -----------------------------------------------------------------------------

__all__ = [
    "CONSTRAINT_KINDS",
    "SUPPORTED_CONSTRAINTS",
    "SUPPORTED_SCHEMA_KINDS",
    "AopValidationError",
    "Aspect",
    "CompiledValidator",
    "ErrorCode",
    "FieldFailure",
    "FieldRule",
    "FiniteInterval",
    "InvalidPolicy",
    "JoinPoint",
    "LogCalls",
    "Message",
    "NormalizedSchema",
    "ValidateArguments",
    "Validated",
    "ValidationResult",
    "Woven",
    "__version__",
    "compile_validator",
    "ensure_valid",
    "in_range",
    "intercept",
    "is_constraint",
    "max_length",
    "min_length",
    "normalize_mapping_schema",
    "normalize_schema",
    "pattern",
    "required",
    "resolve_validator",
    "schema_for",
    "try_validate",
    "validate",
    "validate_object",
    "validated",
    "validator_for",
    "weave",
]
