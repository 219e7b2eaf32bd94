"""Tests for unit reference resolution and loading."""

from __future__ import annotations

from typing import Any

import pytest


def module_level_unit(data: Any) -> Any:
    return data


@pytest.mark.unit
class TestSplitReference:
    """Tests for split_reference."""

    def test_module_and_function(self) -> None:
        from litestar_services.worker.units import split_reference

        assert split_reference("pkg.mod:func") == ("pkg.mod", "func")

    def test_module_defaults_to_run(self) -> None:
        from litestar_services.worker.units import split_reference

        assert split_reference("pkg.mod") == ("pkg.mod", "run")

    def test_file_path_with_and_without_entry(self) -> None:
        from litestar_services.worker.units import split_reference

        assert split_reference("/srv/units/echo.py") == ("/srv/units/echo.py", "run")
        assert split_reference("/srv/units/echo.py:shout") == ("/srv/units/echo.py", "shout")

    def test_drive_letter_is_not_an_entry(self) -> None:
        from litestar_services.worker.units import split_reference

        assert split_reference("C:\\units\\echo.py") == ("C:\\units\\echo.py", "run")


@pytest.mark.unit
class TestLoadUnit:
    """Tests for load_unit and invoke_unit."""

    def test_load_from_file(self, unit: Any) -> None:
        from litestar_services.worker.units import invoke_unit, load_unit

        entry = load_unit(unit("echo"))

        assert invoke_unit(entry, 5) == {"echo": 5}

    def test_load_named_entry_from_file(self, unit: Any) -> None:
        from litestar_services.worker.units import load_unit

        assert load_unit(unit("echo", "shout"))("hi") == "HI"

    def test_load_from_module(self) -> None:
        from litestar_services.worker.units import load_unit

        entry = load_unit("json:dumps")

        assert entry([1]) == "[1]"

    def test_async_unit_is_driven_to_completion(self, unit: Any) -> None:
        from litestar_services.worker.units import invoke_unit, load_unit

        assert invoke_unit(load_unit(unit("async_unit")), {"x": 1}) == {"x": 1, "async": True}

    def test_missing_file(self, tmp_path: Any) -> None:
        from litestar_services.exceptions import UnitLoadError
        from litestar_services.worker.units import load_unit

        with pytest.raises(UnitLoadError, match="not found"):
            load_unit(str(tmp_path / "missing.py"))

    def test_missing_module(self) -> None:
        from litestar_services.exceptions import UnitLoadError
        from litestar_services.worker.units import load_unit

        with pytest.raises(UnitLoadError, match="ModuleNotFoundError"):
            load_unit("litestar_services_missing_module:run")

    def test_missing_attribute(self, unit: Any) -> None:
        from litestar_services.exceptions import UnitLoadError
        from litestar_services.worker.units import load_unit

        with pytest.raises(UnitLoadError, match="does not define 'nope'"):
            load_unit(unit("echo", "nope"))

    def test_not_callable(self) -> None:
        from litestar_services.exceptions import UnitLoadError
        from litestar_services.worker.units import load_unit

        with pytest.raises(UnitLoadError, match="not callable"):
            load_unit("json:__name__")

    def test_empty_reference(self) -> None:
        from litestar_services.exceptions import UnitLoadError
        from litestar_services.worker.units import load_unit

        with pytest.raises(UnitLoadError):
            load_unit("")


@pytest.mark.unit
class TestUnitRegistry:
    """Tests for named unit registration."""

    def test_reference_for_module_level_callable(self) -> None:
        from litestar_services.worker.units import reference_for

        assert reference_for(module_level_unit) == f"{__name__}:module_level_unit"

    def test_reference_for_rejects_lambdas_and_closures(self) -> None:
        from litestar_services.worker.units import reference_for

        def nested(data: Any) -> Any:
            return data

        with pytest.raises(ValueError, match="not importable by name"):
            reference_for(lambda data: data)
        with pytest.raises(ValueError, match="not importable by name"):
            reference_for(nested)

    def test_register_and_resolve(self, unit: Any) -> None:
        from litestar_services.worker.units import UnitRegistry

        units = UnitRegistry({"echo": unit("echo")})
        units.register("identity", module_level_unit)

        assert units.resolve("echo") == unit("echo")
        assert units.resolve("identity") == f"{__name__}:module_level_unit"
        assert units.resolve("pkg.unregistered") == "pkg.unregistered"
        assert "echo" in units
        assert len(units) == 2
        assert sorted(units.names()) == ["echo", "identity"]

    def test_unregister(self) -> None:
        from litestar_services.worker.units import UnitRegistry

        units = UnitRegistry({"echo": "pkg.echo"})
        units.unregister("echo")
        units.unregister("never-registered")

        assert "echo" not in units
        assert units.resolve("echo") == "echo"

    def test_register_rejects_empty_name(self) -> None:
        from litestar_services.worker.units import UnitRegistry

        with pytest.raises(ValueError, match="non-empty"):
            UnitRegistry().register("", "pkg.echo")


@pytest.mark.unit
class TestModels:
    """Tests for data models and settings helpers."""

    def test_task_descriptor_start_message(self) -> None:
        from litestar_services.core.models import TaskDescriptor

        descriptor = TaskDescriptor(unit_reference="pkg.mod:run", input_data={"x": 1})

        assert descriptor.to_message() == {"type": "start", "unit_reference": "pkg.mod:run", "input_data": {"x": 1}}

    def test_service_key_defaults_and_rendering(self) -> None:
        from litestar_services.core.models import ServiceKey

        key = ServiceKey("caching", "memory")

        assert key.instance_name == "default"
        assert str(key) == "caching:memory:default"
        assert key == ServiceKey("caching", "memory", "default")

    def test_workflow_definition_equality_ignores_timestamp(self) -> None:
        from litestar_services.core.models import WorkflowDefinition

        first = WorkflowDefinition(name="w", steps=("a", "b"))
        second = WorkflowDefinition(name="w", steps=("a", "b"))

        assert first == second
        assert len(first) == 2

    def test_terminal_statuses(self) -> None:
        from litestar_services.core.types import ExecutionStatus

        assert ExecutionStatus.COMPLETED.is_terminal
        assert ExecutionStatus.ERROR.is_terminal
        assert not ExecutionStatus.RUNNING.is_terminal
        assert not ExecutionStatus.IDLE.is_terminal

    def test_apply_settings_ignores_unknown_and_none(self, caplog: pytest.LogCaptureFixture) -> None:
        import logging

        from litestar_services.core.settings import apply_settings, describe_settings
        from litestar_services.worker import WorkerSettings

        settings = WorkerSettings()
        log = logging.getLogger("tests.settings")

        with caplog.at_level(logging.INFO, logger="tests.settings"):
            applied = apply_settings(settings, {"max_retries": 5, "memory_limit": None, "bogus": 1}, log)

        assert applied == {"max_retries": 5}
        assert describe_settings(settings)["max_retries"] == 5
        assert describe_settings(settings)["memory_limit"] == 512
        assert "max_retries changed to: 5" in caplog.text
