"""aop_validation.specs.

Validation schema models and normalization utilities for aop_validation.

Design goals
------------
- One validator-facing representation (`NormalizedSchema`) regardless of where
  the constraint metadata was declared.
- Declarations stay next to the data: classes annotate their fields with
  `typing.Annotated[<type>, <pydantic metadata>...]`.
- YAML-friendly mapping schemas for data that has no class of its own.

Current supported schema kinds
------------------------------
1) kind: "annotations"
   - Extracted from a class with `schema_for(cls)`. Every field whose
     annotation carries constraint metadata is validated; all such fields must
     be present on the object.

2) kind: "mapping"
   - User provides a mapping of field name -> constraints. Each field is either
     a list of constraint mappings, or a mapping with `type`, `constraints` and
     an optional `message`:
        fields:
          id:   [{kind: required}]
          code: {type: int, constraints: [{kind: range, minimum: 1, maximum: 100}]}
     Fields with a `required` constraint must be present; the others may be
     absent or None. Without `type`, fields with a `range` constraint are
     numbers (float) and all others are text (str).
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    get_args,
    get_origin,
    get_type_hints,
)

from .constraints import CONSTRAINT_KINDS, Message, is_constraint
from .errors import (
    raise_invalid_schema,
    raise_invalid_target,
    raise_unsupported_feature,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

FIELD_TYPES: dict[str, type] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "list": list,
}

# Field types each kind applies to; "required" applies to every type.
KIND_TYPES: dict[str, tuple[type, ...]] = {
    "range": (int, float),
    "max_length": (str, list),
    "min_length": (str, list),
    "pattern": (str,),
}

# -----------------------------------------------------------------------------
# Normalized schema representation (validator-facing)
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldRule:
    """One validated field.

    Attributes:
        name: Field (attribute or key) name.
        annotation: Complete type handed to pydantic, metadata included.
        required: Whether the field must be present.
        message: Optional custom failure message.
    """

    name: str
    annotation: Any
    required: bool = True
    message: Message | None = None


@dataclass(frozen=True, slots=True)
class NormalizedSchema:
    """Normalized validation schema suitable for compilation."""

    kind: str
    target: str
    fields: tuple[FieldRule, ...]
    meta: Mapping[str, Any]

    @property
    def field_names(self) -> tuple[str, ...]:
        """Ordered names of validated fields."""
        return tuple(rule.name for rule in self.fields)


# -----------------------------------------------------------------------------
# annotations kind
# -----------------------------------------------------------------------------


def _rule_from_hint(name: str, hint: object) -> FieldRule | None:
    if get_origin(hint) is not Annotated:
        return None
    metadata = get_args(hint)[1:]
    if not any(is_constraint(m) for m in metadata):
        return None
    messages = [m for m in metadata if isinstance(m, Message)]
    return FieldRule(
        name=name,
        annotation=hint,
        message=messages[-1] if messages else None,
    )


def schema_for(cls: type) -> NormalizedSchema:
    """
    Extract the declared constraint metadata of a class.

    Base-class fields come first, then the class's own fields, each group in
    definition order.

    Args:
        cls: Class whose annotations carry constraint metadata.

    Returns:
        NormalizedSchema: Validator-facing schema of kind "annotations".
    """
    if not isinstance(cls, type):
        raise_invalid_target(
            detail=f"schema_for expects a class, got {type(cls).__name__}"
        )
    return _schema_for_class(cls)


@lru_cache(maxsize=256)
def _schema_for_class(cls: type) -> NormalizedSchema:
    try:
        hints = get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exc:
        raise_invalid_schema(
            detail=f"cannot resolve annotations of {cls.__qualname__}: {exc}"
        )

    rules = [
        rule
        for name, hint in hints.items()
        if (rule := _rule_from_hint(name, hint)) is not None
    ]

    return NormalizedSchema(
        kind="annotations",
        target=cls.__qualname__,
        fields=tuple(rules),
        meta={"module": cls.__module__},
    )


# -----------------------------------------------------------------------------
# mapping kind
# -----------------------------------------------------------------------------


def _build_constraint(raw: object, *, path: str) -> tuple[str, Any]:
    if not isinstance(raw, dict):
        raise_invalid_schema(path=path, detail="constraint must be a mapping")
    options = dict(raw)
    kind = options.pop("kind", None)
    if not isinstance(kind, str) or not kind.strip():
        raise_invalid_schema(path=path, detail="constraint needs a 'kind'")
    kind_s = kind.strip().lower()
    builder = CONSTRAINT_KINDS.get(kind_s)
    if builder is None:
        raise_invalid_schema(
            path=path,
            detail=f"kind {kind_s!r} is unknown; expected one of "
            f"{sorted(CONSTRAINT_KINDS)}",
        )
    try:
        return kind_s, builder(**options)
    except TypeError as exc:
        raise_invalid_schema(path=path, detail=f"invalid arguments: {exc}")
    except ValueError as exc:
        raise_invalid_schema(path=path, detail=str(exc))
    raise AssertionError("unreachable")  # pragma: no cover


def _split_field_spec(
    raw: object, *, path: str
) -> tuple[object, str | None, object]:
    """Return (constraints, type name, message) from either field form."""
    if isinstance(raw, (list, tuple)):
        return raw, None, None
    if isinstance(raw, dict):
        unknown = sorted(set(raw) - {"type", "constraints", "message"})
        if unknown:
            raise_invalid_schema(path=path, detail=f"unknown key(s) {unknown}")
        return raw.get("constraints"), raw.get("type"), raw.get("message")
    raise_invalid_schema(path=path, detail="must be a list or a mapping")
    raise AssertionError("unreachable")  # pragma: no cover


def _build_field_rule(name: object, raw: object) -> FieldRule:
    if not isinstance(name, str) or not name.strip():
        raise_invalid_schema(detail="fields keys must be non-empty strings")
    name_s = name.strip()
    path = f"fields[{name_s!r}]"

    items, type_name, message = _split_field_spec(raw, path=path)
    if not isinstance(items, (list, tuple)) or not items:
        raise_invalid_schema(path=path, detail="needs a non-empty list of constraints")
    built = [
        _build_constraint(item, path=f"{path}[{i}]") for i, item in enumerate(items)
    ]
    kinds = {k for k, _ in built}

    if type_name is None:
        base: type = float if "range" in kinds else str
    else:
        base = FIELD_TYPES.get(str(type_name).strip().lower())
        if base is None:
            raise_invalid_schema(
                path=f"{path}.type",
                detail=(
                    f"{type_name!r} is unknown; expected one of {sorted(FIELD_TYPES)}"
                ),
            )

    msg = None
    if message is not None:
        try:
            msg = Message(message)
        except ValueError as exc:
            raise_invalid_schema(path=f"{path}.message", detail=str(exc))

    for kind in sorted(kinds):
        if base not in KIND_TYPES.get(kind, (base,)):
            raise_invalid_schema(
                path=path, detail=f"kind {kind!r} does not apply to {base.__name__}"
            )

    # required() checks text; for other types presence is enough.
    metas = [m for k, m in built if k != "required" or base is str]
    annotation: Any = Annotated[(base, *metas)] if metas else base
    required = "required" in kinds
    if not required:
        annotation = annotation | None
    return FieldRule(
        name=name_s, annotation=annotation, required=required, message=msg
    )


def normalize_mapping_schema(spec: Mapping[str, Any]) -> NormalizedSchema:
    """
    Normalize a mapping-based schema specification.

    Args:
        spec: Raw schema specification mapping.

    Returns:
        NormalizedSchema: Validator-facing schema of kind "mapping".
    """
    fields_map = spec.get("fields")
    if not isinstance(fields_map, dict) or not fields_map:
        raise_invalid_schema(
            detail="fields must be a non-empty mapping of name->constraints"
        )

    target = spec.get("target", "object")
    if not isinstance(target, str) or not target.strip():
        raise_invalid_schema(detail="target must be a non-empty string")

    rules = [_build_field_rule(k, v) for k, v in fields_map.items()]
    names = [r.name for r in rules]
    if len(names) != len(set(names)):
        raise_invalid_schema(detail="fields contains duplicate names")

    meta: dict[str, Any] = {}
    if "groups" in spec:
        meta["groups"] = spec.get("groups")

    return NormalizedSchema(
        kind="mapping",
        target=target.strip(),
        fields=tuple(rules),
        meta=meta,
    )


# -----------------------------------------------------------------------------
# Public normalization entrypoint
# -----------------------------------------------------------------------------


def normalize_schema(spec: Mapping[str, Any] | None) -> NormalizedSchema:
    """
    Normalize a schema specification dict into a validator-facing schema.

    Args:
        spec: Raw schema specification mapping.

    Returns:
        NormalizedSchema: Validator-facing normalized schema.
    """
    if spec is None:
        raise_invalid_schema(detail="schema specification is required")

    kind = str(spec.get("kind", "mapping")).strip().lower()

    if kind == "mapping":
        return normalize_mapping_schema(spec)

    raise_unsupported_feature(
        feature=f"schema kind {kind!r} in a spec",
        hint="Use schema_for(cls) for annotated classes.",
    )
    msg = "unreachable"
    raise RuntimeError(msg)  # pragma: no cover
