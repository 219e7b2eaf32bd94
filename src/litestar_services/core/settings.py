"""Runtime-adjustable settings shared by the services."""

from __future__ import annotations

import logging
import types
from dataclasses import asdict, fields
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin, get_type_hints

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = ["apply_settings", "describe_settings"]


def describe_settings(settings: Any) -> dict[str, Any]:
    """Render a settings dataclass as a dictionary.

    Args:
        settings: A dataclass instance.

    Returns:
        Field names mapped to their current values.
    """
    return asdict(settings)


def _allowed_types(annotation: Any) -> tuple[type, ...]:
    if get_origin(annotation) in (Union, types.UnionType):
        return tuple(t for arg in get_args(annotation) for t in _allowed_types(arg))
    if annotation is type(None):
        return ()
    if annotation is Any:
        return (object,)
    return (annotation,) if isinstance(annotation, type) else (object,)


def _coerce(name: str, value: Any, annotation: Any) -> Any:
    allowed = _allowed_types(annotation)
    if object in allowed:
        return value
    # bool is an int subclass but never a valid number of seconds or items.
    if isinstance(value, bool) and bool not in allowed:
        allowed_names = " | ".join(t.__name__ for t in allowed)
        raise ValueError(f"Setting '{name}' expects {allowed_names}, got bool")
    if isinstance(value, allowed):
        return value
    if float in allowed and isinstance(value, int):
        return float(value)
    allowed_names = " | ".join(t.__name__ for t in allowed)
    raise ValueError(f"Setting '{name}' expects {allowed_names}, got {type(value).__name__}")


def apply_settings(
    settings: Any,
    changes: Mapping[str, Any],
    log: logging.Logger | logging.LoggerAdapter[Any],
) -> dict[str, Any]:
    """Apply a partial update to a settings dataclass in place.

    Unknown names and ``None`` values are ignored, so callers can submit a
    whole form where only some fields were filled in. Every remaining value is
    checked against the field's annotation before any of them is applied;
    integers are accepted for float fields.

    Args:
        settings: A dataclass instance to update.
        changes: Proposed new values keyed by field name.
        log: Logger that records each applied change.

    Returns:
        The fields that were changed, with their new values.

    Raises:
        ValueError: If a value does not match its field's type. Nothing is
            applied in that case.
    """
    hints = get_type_hints(type(settings))
    known = {f.name for f in fields(settings)}
    validated: dict[str, Any] = {}
    for name, value in changes.items():
        if name not in known or value is None:
            continue
        validated[name] = _coerce(name, value, hints.get(name, Any))

    for name, value in validated.items():
        setattr(settings, name, value)
        log.info("%s changed to: %s", name, value)
    return validated
