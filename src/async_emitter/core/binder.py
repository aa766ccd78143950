"""Argument binder — maps a named-argument bundle onto a callable's parameters."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

logger = logging.getLogger(__name__)

# Attribute holding a precomputed parameter-name tuple on a callable.
PARAMETERS_ATTR = "__listener_parameters__"

_NAMED_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.KEYWORD_ONLY,
)


class _Missing:
    """Placeholder for a parameter that the bundle does not supply."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        """Return the singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        """Return ``MISSING``."""
        return "MISSING"

    def __bool__(self) -> bool:
        """Treat the placeholder as falsy."""
        return False


MISSING: Any = _Missing()


def unwrap_name(name: str) -> str:
    """Strip one leading and one trailing underscore from a wrapped name.

    ``_class_`` becomes ``class``; ``_x``, ``x_`` and ``__`` are unchanged.

    Args:
        name: A declared parameter name.

    Returns:
        The bundle key the parameter is looked up under.
    """
    if len(name) >= 3 and name.startswith("_") and name.endswith("_"):
        return name[1:-1]
    return name


def parameter_names(func: Callable[..., Any]) -> tuple[str, ...]:
    """Return the named parameters of *func* in declaration order.

    A tuple stored on the callable under ``__listener_parameters__`` wins
    over introspection.  Positional and keyword-only parameters are
    included; ``*args`` and ``**kwargs`` are not.

    Args:
        func: Any callable.

    Returns:
        The declared names, before underscore unwrapping.
    """
    precomputed = getattr(func, PARAMETERS_ATTR, None)
    if precomputed is not None:
        return tuple(precomputed)
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        logger.debug("No signature available for %r; binding no arguments", func)
        return ()
    return tuple(p.name for p in signature.parameters.values() if p.kind in _NAMED_KINDS)


def bind(
    func: Callable[..., Any],
    bundle: Mapping[str, Any],
    parameters: Sequence[str] | None = None,
) -> list[Any]:
    """Order the values of *bundle* to match the parameters of *func*.

    Args:
        func: The callable arguments are bound for.
        bundle: Named arguments; keys with no matching parameter are ignored.
        parameters: Precomputed names, skipping ``parameter_names(func)``.

    Returns:
        One value per parameter, ``MISSING`` where the bundle has no entry.
    """
    names = parameter_names(func) if parameters is None else parameters
    return [bundle.get(unwrap_name(name), MISSING) for name in names]


def _signature_details(func: Callable[..., Any]) -> tuple[dict[str, Any], frozenset[str]]:
    """Collect parameter defaults and keyword-only names of *func*.

    Args:
        func: Any callable.

    Returns:
        A ``(defaults, keyword_only)`` pair; both empty when *func* has no
        introspectable signature.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return {}, frozenset()
    params = signature.parameters.values()
    defaults = {p.name: p.default for p in params if p.default is not inspect.Parameter.empty}
    keyword_only = frozenset(p.name for p in params if p.kind is inspect.Parameter.KEYWORD_ONLY)
    return defaults, keyword_only


def call_with_named_arguments(
    func: Callable[..., Any],
    bundle: Mapping[str, Any],
    parameters: Sequence[str] | None = None,
) -> Any:
    """Invoke *func* with the values named in *bundle*.

    Positional parameters are passed positionally: trailing unsupplied ones
    are omitted so the callable's own defaults apply, and an unsupplied
    parameter followed by a supplied one receives its default, or ``None``
    when it has none.  Keyword-only parameters are passed by keyword;
    unsupplied ones keep their default, or receive ``None`` when required.

    Args:
        func: The callable to invoke.
        bundle: Named arguments.
        parameters: Precomputed names, skipping ``parameter_names(func)``.

    Returns:
        Whatever *func* returns.
    """
    all_names = parameter_names(func) if parameters is None else parameters
    defaults, keyword_only = _signature_details(func)

    kwargs: dict[str, Any] = {}
    for name in all_names:
        if name not in keyword_only:
            continue
        value = bundle.get(unwrap_name(name), MISSING)
        if value is not MISSING:
            kwargs[name] = value
        elif name not in defaults:
            kwargs[name] = None

    names = [name for name in all_names if name not in keyword_only]
    values = bind(func, bundle, names)
    while values and values[-1] is MISSING:
        values.pop()
        names.pop()
    if any(value is MISSING for value in values):
        values = [
            defaults.get(name) if value is MISSING else value
            for name, value in zip(names, values)
        ]
    return func(*values, **kwargs)
