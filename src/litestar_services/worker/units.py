"""Resolution and loading of units of work.

A unit reference is a string naming a callable entry function:

* ``"package.module:function"``: import ``package.module`` and use ``function``.
* ``"package.module"``: import the module and use its ``run`` function.
* ``"/path/to/unit.py"`` or ``"/path/to/unit.py:function"``: load a file.

References are resolved on the orchestrator side (registered names become
references) and loaded inside the execution context, so the orchestrator
never imports caller code itself.
"""

from __future__ import annotations

import asyncio
import hashlib
import importlib
import importlib.util
import inspect
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from litestar_services.exceptions import UnitLoadError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

__all__ = [
    "DEFAULT_ENTRY_POINT",
    "UnitRegistry",
    "invoke_unit",
    "load_unit",
    "reference_for",
    "split_reference",
]

DEFAULT_ENTRY_POINT = "run"


def _is_attribute_path(value: str) -> bool:
    return bool(value) and all(part.isidentifier() for part in value.split("."))


def _is_file_target(target: str) -> bool:
    return target.endswith(".py") or "/" in target or os.sep in target


def split_reference(reference: str) -> tuple[str, str]:
    """Split a unit reference into its import target and attribute path.

    Args:
        reference: The unit reference.

    Returns:
        Tuple of ``(target, attribute)``; the attribute defaults to ``run``.

    Example:
        >>> split_reference("myapp.units.cleanup:purge")
        ('myapp.units.cleanup', 'purge')
        >>> split_reference("/srv/units/echo.py")
        ('/srv/units/echo.py', 'run')
    """
    target, separator, attribute = reference.rpartition(":")
    if separator and target and _is_attribute_path(attribute):
        return target, attribute
    return reference, DEFAULT_ENTRY_POINT


def _load_file_module(reference: str, target: str) -> Any:
    path = Path(target).expanduser().resolve()
    if not path.is_file():
        raise UnitLoadError(reference, f"file '{path}' not found")

    digest = hashlib.sha1(str(path).encode()).hexdigest()[:12]
    module_name = f"_litestar_services_unit_{path.stem}_{digest}"
    if module_name in sys.modules:
        return sys.modules[module_name]

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise UnitLoadError(reference, f"'{path}' is not a loadable Python module")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module


def load_unit(reference: str) -> Callable[[Any], Any]:
    """Import a unit reference and return its entry function.

    Args:
        reference: The unit reference.

    Returns:
        The callable entry function.

    Raises:
        UnitLoadError: If the module cannot be imported, the attribute does
            not exist, or it is not callable.
    """
    if not reference or not isinstance(reference, str):
        raise UnitLoadError(str(reference), "unit reference must be a non-empty string")

    target, attribute = split_reference(reference)
    try:
        if _is_file_target(target):
            module = _load_file_module(reference, target)
        else:
            module = importlib.import_module(target)
    except UnitLoadError:
        raise
    except Exception as e:
        raise UnitLoadError(reference, f"{type(e).__name__}: {e}") from e

    entry: Any = module
    for part in attribute.split("."):
        try:
            entry = getattr(entry, part)
        except AttributeError as e:
            raise UnitLoadError(reference, f"'{target}' does not define '{attribute}'") from e

    if not callable(entry):
        raise UnitLoadError(reference, f"'{attribute}' is not callable")
    return entry


async def _await_result(awaitable: Any) -> Any:
    return await awaitable


def invoke_unit(unit: Callable[[Any], Any], input_data: Any) -> Any:
    """Call a unit's entry function, driving it to completion if it is async.

    Must not be called from a thread that already runs an event loop.

    Args:
        unit: The entry function.
        input_data: The task descriptor's input data.

    Returns:
        The unit's result.
    """
    result = unit(input_data)
    if inspect.isawaitable(result):
        result = asyncio.run(_await_result(result))
    return result


def reference_for(unit: Callable[..., Any]) -> str:
    """Build a ``module:qualname`` reference for a module-level callable.

    Args:
        unit: The callable.

    Returns:
        The unit reference.

    Raises:
        ValueError: If the callable cannot be re-imported by name, such as a
            lambda or a function defined inside another function.
    """
    module = getattr(unit, "__module__", None)
    qualname = getattr(unit, "__qualname__", None)
    if not module or not qualname or "<" in qualname:
        msg = f"{unit!r} is not importable by name; units must be module-level callables"
        raise ValueError(msg)
    return f"{module}:{qualname}"


class UnitRegistry:
    """Named units of work resolved at configuration time.

    Registering units by name keeps callers from passing import paths around
    and lets a deployment swap implementations without touching the code that
    schedules them.

    Example:
        >>> units = UnitRegistry()
        >>> units.register("cleanup", "myapp.units.cleanup:purge")
        'myapp.units.cleanup:purge'
        >>> units.resolve("cleanup")
        'myapp.units.cleanup:purge'
        >>> units.resolve("myapp.units.report")
        'myapp.units.report'
    """

    def __init__(self, units: Mapping[str, str | Callable[..., Any]] | None = None) -> None:
        """Initialize the registry.

        Args:
            units: Optional initial mapping of names to references or callables.
        """
        self._units: dict[str, str] = {}
        for name, unit in (units or {}).items():
            self.register(name, unit)

    def register(self, name: str, unit: str | Callable[..., Any]) -> str:
        """Register a unit under a name, replacing any previous registration.

        Args:
            name: Name callers will use.
            unit: A unit reference or a module-level callable.

        Returns:
            The stored unit reference.
        """
        if not name:
            msg = "Unit name must be a non-empty string"
            raise ValueError(msg)
        reference = unit if isinstance(unit, str) else reference_for(unit)
        self._units[name] = reference
        return reference

    def unregister(self, name: str) -> None:
        """Remove a registered unit. Unknown names are ignored.

        Args:
            name: The registered name.
        """
        self._units.pop(name, None)

    def resolve(self, reference: str | Callable[..., Any]) -> str:
        """Map a registered name to its reference; pass other references through.

        Args:
            reference: A registered name, a unit reference or a callable.

        Returns:
            The unit reference to send to an execution context.
        """
        if not isinstance(reference, str):
            return reference_for(reference)
        return self._units.get(reference, reference)

    def names(self) -> list[str]:
        """List registered unit names."""
        return list(self._units)

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)
