"""Tests for exception hierarchy."""

from __future__ import annotations

import pytest


@pytest.mark.unit
class TestServicesError:
    """Tests for base ServicesError exception."""

    def test_every_error_inherits_from_base(self) -> None:
        """Test all library exceptions can be caught as ServicesError."""
        import litestar_services.exceptions as exceptions

        for name in exceptions.__all__:
            assert issubclass(getattr(exceptions, name), exceptions.ServicesError)

    def test_base_exception_can_be_raised(self) -> None:
        """Test ServicesError can be raised and caught."""
        from litestar_services.exceptions import ServicesError

        with pytest.raises(ServicesError, match="test"):
            raise ServicesError("test")


@pytest.mark.unit
class TestWorkerErrors:
    """Tests for errors describing execution contexts."""

    def test_reentrancy_error_message(self) -> None:
        """Test ReentrancyError carries the fixed rejection message."""
        from litestar_services.exceptions import ReentrancyError

        error = ReentrancyError("pkg.units:run")

        assert str(error) == "Worker is already running"
        assert error.unit_reference == "pkg.units:run"

    def test_unit_load_error(self) -> None:
        """Test UnitLoadError includes reference and reason."""
        from litestar_services.exceptions import UnitLoadError

        error = UnitLoadError("pkg.missing", "ModuleNotFoundError: No module named 'pkg'")

        assert "pkg.missing" in str(error)
        assert error.reason.startswith("ModuleNotFoundError")

    def test_unit_execution_error_with_empty_cause(self) -> None:
        """Test UnitExecutionError names the cause type when it has no message."""
        from litestar_services.exceptions import UnitExecutionError

        error = UnitExecutionError("pkg.units:run", KeyError())

        assert str(error) == "Unit 'pkg.units:run' failed with KeyError"

    def test_unit_execution_error_with_cause(self) -> None:
        """Test UnitExecutionError includes the cause message."""
        from litestar_services.exceptions import UnitExecutionError

        error = UnitExecutionError("pkg.units:run", ValueError("bad input"))

        assert str(error) == "Unit 'pkg.units:run' failed: bad input"

    def test_abnormal_exit_error(self) -> None:
        """Test AbnormalExitError message includes the exit code."""
        from litestar_services.exceptions import AbnormalExitError

        error = AbnormalExitError(-9)

        assert str(error) == "Worker exited with code -9"
        assert error.exit_code == -9


@pytest.mark.unit
class TestOrchestratorErrors:
    """Tests for errors raised by the scheduler, workflow runner and registry."""

    def test_duplicate_task_error(self) -> None:
        """Test DuplicateTaskError keeps the task name."""
        from litestar_services.exceptions import DuplicateTaskError

        error = DuplicateTaskError("nightly")

        assert error.task_name == "nightly"
        assert "nightly" in str(error)

    def test_workflow_validation_error_joins_errors(self) -> None:
        """Test WorkflowValidationError lists every problem."""
        from litestar_services.exceptions import WorkflowValidationError

        error = WorkflowValidationError(["Name is empty", "No steps"])

        assert error.errors == ["Name is empty", "No steps"]
        assert "Name is empty; No steps" in str(error)

    def test_step_error_attributes(self) -> None:
        """Test StepError exposes step index and message."""
        from litestar_services.exceptions import StepError

        error = StepError("w2", 1, "units/error_step.py", "Simulated step error")

        assert error.step_index == 1
        assert error.message == "Simulated step error"
        assert error.workflow_name == "w2"
        assert "step 1" in str(error)

    def test_service_creation_error_wraps_cause(self) -> None:
        """Test ServiceCreationError keeps the factory exception."""
        from litestar_services.exceptions import ServiceCreationError

        cause = RuntimeError("boom")
        error = ServiceCreationError("caching", "redis", cause)

        assert error.cause is cause
        assert str(error) == "Failed to create service 'caching' with provider 'redis': boom"

    def test_dependency_level_error(self) -> None:
        """Test DependencyLevelError names both services."""
        from litestar_services.exceptions import DependencyLevelError

        error = DependencyLevelError("caching", "workflow", "level 3 is not below level 1")

        assert error.service_name == "caching"
        assert error.dependency == "workflow"
        assert "level 3 is not below level 1" in str(error)
