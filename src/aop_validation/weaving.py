"""
aop_validation.weaving.

Ways to attach validation to objects without touching their core logic.

- `Validated[T]`: a decorator object wrapping an instance; it exposes
  `validate()` / `is_valid` / `errors` and delegates everything else.
- `validated`: a class decorator applied at class-definition time. It wraps
  `__init__` (and optionally `__setattr__`) so instances validate themselves.
- `intercept` / `weave`: run-time interception through a chain of `Aspect`s.
  `intercept` decorates functions and methods; `weave` wraps a live object in
  a proxy whose public method calls pass through the chain.

Policies
--------
Where validation runs implicitly, `on_invalid` selects what happens on failure:
"raise" (ValueError chained from AopValidationError), "warn" (log at WARNING and
continue) or "ignore".
"""

from __future__ import annotations

import functools
import inspect
import logging
from contextvars import ContextVar
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .errors import raise_invalid_target, raise_validation_failed
from .specs import schema_for
from .validate import resolve_validator, validator_for

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .specs import NormalizedSchema
    from .validate import CompiledValidator, ValidationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ids of objects whose outermost @validated __init__ is still running
_initializing: ContextVar[frozenset[int]] = ContextVar(
    "aop_validation_initializing", default=frozenset()
)


class InvalidPolicy(StrEnum):
    """What implicit validation does with an invalid object."""

    RAISE = "raise"
    WARN = "warn"
    IGNORE = "ignore"


def _coerce_policy(value: str | InvalidPolicy) -> InvalidPolicy:
    try:
        return InvalidPolicy(str(value).strip().lower())
    except ValueError:
        raise_invalid_target(
            detail=(
                f"on_invalid={value!r} is unknown; "
                f"expected one of {[p.value for p in InvalidPolicy]}"
            )
        )
    raise AssertionError("unreachable")  # pragma: no cover


def _apply_policy(
    result: ValidationResult, *, target: str, policy: InvalidPolicy
) -> None:
    if result.is_valid or policy is InvalidPolicy.IGNORE:
        return
    if policy is InvalidPolicy.RAISE:
        raise_validation_failed(target=target, errors=result.errors)
    logger.warning("%s failed validation: %s", target, "; ".join(result.errors))


# -----------------------------------------------------------------------------
# Decorator object
# -----------------------------------------------------------------------------


class Validated(Generic[T]):
    """Wrap an object and add validation to it without modifying it.

    Attribute reads that the wrapper does not define are forwarded to the
    wrapped object. Validation is recomputed on every call, so changes to the
    wrapped object are always reflected.
    """

    __slots__ = ("_inner", "_validator")

    def __init__(self, inner: T, schema: NormalizedSchema | None = None) -> None:
        """
        Initialize the wrapper.

        Args:
            inner: Object to wrap.
            schema: Explicit schema; defaults to the annotations of `type(inner)`.
        """
        self._inner = inner
        self._validator: CompiledValidator = resolve_validator(inner, schema)

    @property
    def inner(self) -> T:
        """The wrapped object."""
        return self._inner

    def validate(self) -> ValidationResult:
        """Validate the wrapped object."""
        return self._validator.validate(self._inner)

    @property
    def is_valid(self) -> bool:
        """Whether the wrapped object currently passes validation."""
        return self.validate().is_valid

    @property
    def errors(self) -> list[str]:
        """Current validation messages for the wrapped object."""
        return list(self.validate().errors)

    def __getattr__(self, name: str) -> Any:
        if name in Validated.__slots__:
            raise AttributeError(name)
        return getattr(self._inner, name)

    def __repr__(self) -> str:
        return f"Validated({self._inner!r})"


# -----------------------------------------------------------------------------
# Class-definition-time weaving
# -----------------------------------------------------------------------------


def validated(
    cls: type[T] | None = None,
    *,
    on_invalid: str | InvalidPolicy = InvalidPolicy.RAISE,
    validate_assignment: bool = False,
) -> Any:
    """Weave validation into a class.

    Usable bare (`@validated`) or with options (`@validated(on_invalid="warn")`).
    When combined with `@dataclass`, `@validated` must be the outer decorator so
    it wraps the generated `__init__`.

    Args:
        cls: Class to decorate (when used without parentheses).
        on_invalid: Policy applied when an instance fails validation.
        validate_assignment: Also validate each assignment to a constrained
            field before the value is stored.

    Returns:
        The decorated class, or a decorator when `cls` is omitted.
    """
    policy = _coerce_policy(on_invalid)

    def wrap(klass: type[T]) -> type[T]:
        if not isinstance(klass, type):
            raise_invalid_target(
                detail=f"@validated expects a class, got {type(klass).__name__}"
            )
        schema = schema_for(klass)
        validator = validator_for(klass)
        original_init = klass.__init__

        @functools.wraps(original_init)
        def __init__(self: T, *args: Any, **kwargs: Any) -> None:
            active = _initializing.get()
            if id(self) in active:
                # A subclass __init__ is already running; it validates.
                original_init(self, *args, **kwargs)
                return
            token = _initializing.set(active | {id(self)})
            try:
                original_init(self, *args, **kwargs)
            finally:
                _initializing.reset(token)
            actual = validator_for(type(self))
            _apply_policy(actual.validate(self), target=actual.target, policy=policy)

        klass.__init__ = __init__

        if validate_assignment:
            original_setattr = klass.__setattr__

            @functools.wraps(original_setattr)
            def __setattr__(self: T, name: str, value: object) -> None:
                if id(self) not in _initializing.get():
                    actual = validator_for(type(self))
                    if name in actual.field_names:
                        _apply_policy(
                            actual.validate_field(name, value),
                            target=f"{actual.target}.{name}",
                            policy=policy,
                        )
                original_setattr(self, name, value)

            klass.__setattr__ = __setattr__

        klass.__aop_schema__ = schema
        klass.__aop_validator__ = validator
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


# -----------------------------------------------------------------------------
# Run-time weaving: join points, aspects and interceptor chains
# -----------------------------------------------------------------------------


@dataclass
class JoinPoint:
    """A call being intercepted.

    Attributes:
        target: The object whose method is called (None for plain functions).
        method_name: Qualified name of the called function or method.
        args: Positional arguments, excluding `self`.
        kwargs: Keyword arguments.
        return_value: Set once the call returns.
        exception: Set if the call raised.
        proceed: Invokes the original call, bypassing the remaining aspects.
    """

    target: Any
    method_name: str
    args: tuple
    kwargs: dict[str, Any]
    return_value: Any = None
    exception: Exception | None = None
    proceed: Callable[[], Any] | None = None


class Aspect:
    """Base aspect; `around` wraps the rest of the chain."""

    def around(  # noqa: PLR6301
        self,
        join_point: JoinPoint,  # noqa: ARG002
        proceed: Callable[[], Any],
    ) -> Any:
        """Run advice around `proceed`, returning the call's result."""
        return proceed()


class ValidateArguments(Aspect):
    """Validate constrained arguments before the call proceeds."""

    def __init__(self, on_invalid: str | InvalidPolicy = InvalidPolicy.RAISE) -> None:
        self.policy = _coerce_policy(on_invalid)

    def around(self, join_point: JoinPoint, proceed: Callable[[], Any]) -> Any:
        for arg in (*join_point.args, *join_point.kwargs.values()):
            if type(arg).__module__ == "builtins":
                continue
            validator = validator_for(type(arg))
            if not validator.field_names:
                continue
            _apply_policy(
                validator.validate(arg),
                target=f"{join_point.method_name}({validator.target})",
                policy=self.policy,
            )
        return proceed()


class LogCalls(Aspect):
    """Log entry, exit and exceptions of intercepted calls."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    def around(self, join_point: JoinPoint, proceed: Callable[[], Any]) -> Any:
        name = join_point.method_name
        logger.log(
            self.level,
            "calling %s args=%r kwargs=%r",
            name,
            join_point.args,
            join_point.kwargs,
        )
        try:
            result = proceed()
        except Exception as exc:
            logger.log(self.level, "%s raised %s: %s", name, type(exc).__name__, exc)
            raise
        logger.log(self.level, "%s returned %r", name, result)
        return result


def _check_aspects(aspects: Sequence[object]) -> tuple[Aspect, ...]:
    for a in aspects:
        if not isinstance(a, Aspect):
            raise_invalid_target(
                detail=f"expected Aspect instances, got {type(a).__name__}"
            )
    return tuple(aspects)


def _run_chain(
    aspects: tuple[Aspect, ...], join_point: JoinPoint, invoke: Callable[[], Any]
) -> Any:
    """Run `invoke` through `aspects`, the first aspect outermost."""

    def innermost() -> Any:
        try:
            join_point.return_value = invoke()
        except Exception as exc:
            join_point.exception = exc
            raise
        return join_point.return_value

    def step(index: int) -> Any:
        if index == len(aspects):
            return innermost()
        return aspects[index].around(join_point, lambda: step(index + 1))

    join_point.proceed = innermost
    return step(0)


def intercept(*aspects: Aspect) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorate a function or method so each call passes through `aspects`.

    For methods (first parameter named `self` or `cls`) the bound object
    becomes `JoinPoint.target` and is excluded from `JoinPoint.args`.
    """
    chain = _check_aspects(aspects)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        params = list(inspect.signature(func).parameters)
        is_method = bool(params) and params[0] in {"self", "cls"}

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            if is_method and args:
                target, call_args = args[0], args[1:]
            else:
                target, call_args = None, args
            join_point = JoinPoint(
                target=target,
                method_name=func.__qualname__,
                args=tuple(call_args),
                kwargs=dict(kwargs),
            )
            return _run_chain(chain, join_point, lambda: func(*args, **kwargs))

        return wrapper

    return decorator


class Woven(Generic[T]):
    """Run-time proxy routing public method calls through an aspect chain."""

    __slots__ = ("_aspects", "_target")

    def __init__(self, target: T, aspects: tuple[Aspect, ...]) -> None:
        self._target = target
        self._aspects = aspects

    def unwrap(self) -> T:
        """Return the proxied object."""
        return self._target

    def __getattr__(self, name: str) -> Any:
        if name in Woven.__slots__:
            raise AttributeError(name)
        attr = getattr(self._target, name)
        if name.startswith("_") or not callable(attr):
            return attr

        target = self._target
        aspects = self._aspects

        @functools.wraps(attr)
        def call(*args: Any, **kwargs: Any) -> Any:
            join_point = JoinPoint(
                target=target,
                method_name=f"{type(target).__qualname__}.{name}",
                args=args,
                kwargs=dict(kwargs),
            )
            return _run_chain(aspects, join_point, lambda: attr(*args, **kwargs))

        return call

    def __repr__(self) -> str:
        return f"Woven({self._target!r})"


def weave(obj: T, *aspects: Aspect) -> Woven[T]:
    """Wrap `obj` so its public method calls pass through `aspects`."""
    return Woven(obj, _check_aspects(aspects))
