"""
aop_validation.validate.

Compile normalized schemas into validators and run them against objects.

Contract
--------
- Accepts `NormalizedSchema` (from `aop_validation.specs`) and produces a
  `CompiledValidator`. Compilation builds a pydantic model for the whole
  schema plus a one-field model per field; pydantic does all checking.
- Field values are read from the object (attributes) or mapping (keys) and
  handed to pydantic; numpy scalars and arrays are converted to Python values
  first. pydantic reports at most one error per field, so each failing field
  contributes one message, in field declaration order.
- Validation failures are returned, not raised. `ensure_valid` is the opt-in
  raising variant.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, TypeVar

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from .errors import (
    raise_invalid_schema,
    raise_invalid_target,
    raise_validation_failed,
)
from .specs import FieldRule, schema_for

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

    from .specs import NormalizedSchema

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MODEL_CONFIG = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldFailure:
    """One failing field.

    Attributes:
        field: Dotted location, e.g. ``code`` or ``scores.1``.
        error_type: pydantic error type, e.g. ``less_than_equal``.
        message: Human-readable message.
    """

    field: str
    error_type: str
    message: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one object.

    Attributes:
        is_valid: True when no constraint was violated.
        errors: Human-readable messages, one per failing field.
        failures: Structured form of `errors`.
    """

    is_valid: bool
    errors: tuple[str, ...]
    failures: tuple[FieldFailure, ...] = ()

    def __bool__(self) -> bool:
        return self.is_valid

    @classmethod
    def from_failures(cls, failures: list[FieldFailure]) -> ValidationResult:
        """Build a result from collected failures."""
        return cls(
            is_valid=not failures,
            errors=tuple(f.message for f in failures),
            failures=tuple(failures),
        )


# -----------------------------------------------------------------------------
# Public compiled object
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CompiledValidator:
    """A compiled schema with ready-to-call validation functions.

    Attributes:
        target: Display name of the validated type.
        field_names: Ordered names of validated fields.
        model: pydantic model mirroring the schema.
        validate_fn: Callable `f(obj) -> ValidationResult`.
        field_fn: Callable `f(name, value) -> ValidationResult` for one field.
    """

    target: str
    field_names: tuple[str, ...]
    model: type[BaseModel]
    validate_fn: Callable[[object], ValidationResult]
    field_fn: Callable[[str, object], ValidationResult]

    def validate(self, obj: object) -> ValidationResult:
        """Validate every field of `obj`."""
        return self.validate_fn(obj)

    def validate_field(self, name: str, value: object) -> ValidationResult:
        """Validate a candidate value for a single field."""
        return self.field_fn(name, value)


# -----------------------------------------------------------------------------
# Field access
# -----------------------------------------------------------------------------

_ABSENT = object()


def _to_native(value: object) -> object:
    """Convert numpy values to the Python values pydantic understands."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def _read_field(obj: object, name: str) -> object:
    if isinstance(obj, Mapping):
        value = obj.get(name, _ABSENT)
    else:
        value = getattr(obj, name, _ABSENT)
    return value if value is _ABSENT else _to_native(value)


def _failures(
    exc: ValidationError, rules: Mapping[str, FieldRule]
) -> list[FieldFailure]:
    out: list[FieldFailure] = []
    for err in exc.errors():
        loc = [str(p) for p in err["loc"]]
        name = ".".join(loc)
        rule = rules.get(loc[0]) if loc else None
        out.append(
            FieldFailure(
                field=name, error_type=err["type"], message=_message(name, rule, err)
            )
        )
    return out


def _message(name: str, rule: FieldRule | None, err: ErrorDetails) -> str:
    if rule is not None and rule.message is not None:
        return rule.message.render(field=name, error=err)
    return f"{name}: {err['msg']}"


# -----------------------------------------------------------------------------
# Public compile entrypoint
# -----------------------------------------------------------------------------


def _build_model(
    name: str, rules: list[FieldRule], *, target: str
) -> type[BaseModel]:
    definitions: dict[str, Any] = {
        rule.name: (rule.annotation, ... if rule.required else None) for rule in rules
    }
    try:
        return create_model(name, __config__=_MODEL_CONFIG, **definitions)
    except (NameError, TypeError, ValueError) as exc:
        raise_invalid_schema(detail=f"pydantic rejected {target}: {exc}")
    raise AssertionError("unreachable")  # pragma: no cover


def compile_validator(schema: NormalizedSchema) -> CompiledValidator:
    """Compile a normalized schema into a runnable validator.

    Args:
        schema: Schema produced by `schema_for` or `normalize_schema`.

    Returns:
        A `CompiledValidator` containing `validate_fn(obj) -> ValidationResult`.
    """
    target = schema.target
    model_name = target.rsplit(".", 1)[-1]
    model = _build_model(model_name, list(schema.fields), target=target)
    rules = {rule.name: rule for rule in schema.fields}
    # Single-field models; a value handed to validate_field is always present.
    field_models = {
        rule.name: _build_model(
            f"{model_name}_{rule.name}",
            [FieldRule(name=rule.name, annotation=rule.annotation)],
            target=target,
        )
        for rule in schema.fields
    }

    def validate_fn(obj: object) -> ValidationResult:
        data = {}
        for name in rules:
            value = _read_field(obj, name)
            if value is not _ABSENT:
                data[name] = value
        try:
            model.model_validate(data)
        except ValidationError as exc:
            failures = _failures(exc, rules)
            logger.debug(
                "%s failed validation on field(s) %s",
                target,
                sorted({f.field for f in failures}),
            )
            return ValidationResult.from_failures(failures)
        return ValidationResult.from_failures([])

    def field_fn(name: str, value: object) -> ValidationResult:
        field_model = field_models.get(name)
        if field_model is None:
            raise_invalid_target(detail=f"{target} has no validated field {name!r}")
        try:
            field_model.model_validate({name: _to_native(value)})
        except ValidationError as exc:
            return ValidationResult.from_failures(_failures(exc, rules))
        return ValidationResult.from_failures([])

    return CompiledValidator(
        target=target,
        field_names=schema.field_names,
        model=model,
        validate_fn=validate_fn,
        field_fn=field_fn,
    )


@lru_cache(maxsize=256)
def validator_for(cls: type) -> CompiledValidator:
    """Return the (cached) compiled validator for an annotated class."""
    return compile_validator(schema_for(cls))


def resolve_validator(
    obj: object, schema: NormalizedSchema | None = None
) -> CompiledValidator:
    """Pick the validator for `obj`: the explicit schema or its class's.

    Raises:
        TypeError: If no schema is given and `obj` is a mapping, or its class
            declares no validation metadata.
    """
    if schema is not None:
        return compile_validator(schema)
    if isinstance(obj, Mapping):
        raise_invalid_target(detail="mappings need an explicit schema")
    validator = validator_for(type(obj))
    if not validator.field_names:
        raise_invalid_target(
            detail=f"{type(obj).__qualname__} declares no validation metadata"
        )
    return validator


# -----------------------------------------------------------------------------
# Static helpers
# -----------------------------------------------------------------------------


def validate_object(
    obj: object, schema: NormalizedSchema | None = None
) -> ValidationResult:
    """Validate `obj` against its declared constraints.

    Args:
        obj: Object (or mapping) to validate.
        schema: Explicit schema; defaults to the annotations of `type(obj)`.

    Returns:
        ValidationResult with validity flag and error messages.
    """
    return resolve_validator(obj, schema).validate(obj)


def try_validate(
    obj: object, schema: NormalizedSchema | None = None
) -> tuple[bool, list[str]]:
    """Validate `obj` and return `(is_valid, errors)`."""
    result = validate_object(obj, schema)
    return result.is_valid, list(result.errors)


def ensure_valid(obj: T, schema: NormalizedSchema | None = None) -> T:
    """Return `obj` unchanged if valid.

    Raises:
        ValueError: If `obj` violates any constraint; the chained
            AopValidationError carries the individual messages.
    """
    validator = resolve_validator(obj, schema)
    result = validator.validate(obj)
    if not result.is_valid:
        raise_validation_failed(target=validator.target, errors=result.errors)
    return obj
