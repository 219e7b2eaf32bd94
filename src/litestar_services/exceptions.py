"""Exception hierarchy for litestar-services."""

from __future__ import annotations

__all__ = (
    "AbnormalExitError",
    "CircularDependencyError",
    "DependencyLevelError",
    "DuplicateTaskError",
    "ReentrancyError",
    "ServiceCreationError",
    "ServicesError",
    "StepError",
    "UnitExecutionError",
    "UnitLoadError",
    "UnknownServiceTypeError",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
)


class ServicesError(Exception):
    """Base exception for all litestar-services errors.

    All exceptions raised by litestar-services inherit from this class, so
    callers can catch every container or task-execution error with a single
    except clause.
    """


class ReentrancyError(ServicesError):
    """Raised when work is submitted to a task runner that is already running.

    The task runner never raises this itself; it reports the rejection as a
    ``worker:start:error`` event. The class exists so the message and the
    event payload stay consistent.

    Attributes:
        unit_reference: The unit that was rejected.
    """

    def __init__(self, unit_reference: str) -> None:
        """Initialize the exception with the rejected unit.

        Args:
            unit_reference: The unit that was rejected.
        """
        self.unit_reference = unit_reference
        super().__init__("Worker is already running")


class UnitLoadError(ServicesError):
    """Raised when a unit of work cannot be located or imported.

    Attributes:
        unit_reference: The reference that failed to load.
        reason: Human-readable description of the failure.
    """

    def __init__(self, unit_reference: str, reason: str) -> None:
        """Initialize the exception with load details.

        Args:
            unit_reference: The reference that failed to load.
            reason: Human-readable description of the failure.
        """
        self.unit_reference = unit_reference
        self.reason = reason
        super().__init__(f"Unable to load unit '{unit_reference}': {reason}")


class UnitExecutionError(ServicesError):
    """Raised inside an execution context when a unit of work fails.

    Attributes:
        unit_reference: The unit that failed.
        cause: The underlying exception, if any.
    """

    def __init__(self, unit_reference: str, cause: BaseException | None = None) -> None:
        """Initialize the exception with execution details.

        Args:
            unit_reference: The unit that failed.
            cause: The underlying exception, if any.
        """
        self.unit_reference = unit_reference
        self.cause = cause
        msg = f"Unit '{unit_reference}' failed"
        if cause is not None:
            msg += f": {cause}" if str(cause) else f" with {type(cause).__name__}"
        super().__init__(msg)


class AbnormalExitError(ServicesError):
    """Describes an execution context that exited without a terminal message.

    Attributes:
        exit_code: The process exit code, if known.
    """

    def __init__(self, exit_code: int | None) -> None:
        """Initialize the exception with the exit code.

        Args:
            exit_code: The process exit code, if known.
        """
        self.exit_code = exit_code
        super().__init__(f"Worker exited with code {exit_code}")


class DuplicateTaskError(ServicesError):
    """Raised when a scheduled task name is already in use.

    Attributes:
        task_name: The name that is already scheduled.
    """

    def __init__(self, task_name: str) -> None:
        """Initialize the exception with the task name.

        Args:
            task_name: The name that is already scheduled.
        """
        self.task_name = task_name
        super().__init__(f"Task '{task_name}' is already scheduled")


class WorkflowNotFoundError(ServicesError):
    """Raised when running a workflow that has not been defined.

    Attributes:
        name: The name of the workflow that was not found.
    """

    def __init__(self, name: str) -> None:
        """Initialize the exception with the workflow name.

        Args:
            name: The name of the workflow that was not found.
        """
        self.name = name
        super().__init__(f"Workflow '{name}' not found")


class WorkflowValidationError(ServicesError):
    """Raised when a workflow definition is rejected.

    Attributes:
        errors: List of validation error messages.
    """

    def __init__(self, errors: list[str]) -> None:
        """Initialize the exception with validation errors.

        Args:
            errors: List of validation error messages.
        """
        self.errors = errors
        super().__init__(f"Workflow validation failed: {'; '.join(errors)}")


class StepError(ServicesError):
    """Raised when a workflow step fails and the run is aborted.

    Attributes:
        workflow_name: The workflow whose run failed.
        step_index: Zero-based index of the failing step.
        unit_reference: The unit the failing step referenced.
        message: The failure description reported by the step.
    """

    def __init__(self, workflow_name: str, step_index: int, unit_reference: str, message: str) -> None:
        """Initialize the exception with step failure details.

        Args:
            workflow_name: The workflow whose run failed.
            step_index: Zero-based index of the failing step.
            unit_reference: The unit the failing step referenced.
            message: The failure description reported by the step.
        """
        self.workflow_name = workflow_name
        self.step_index = step_index
        self.unit_reference = unit_reference
        self.message = message
        super().__init__(f"Workflow '{workflow_name}' failed at step {step_index} ({unit_reference}): {message}")


class UnknownServiceTypeError(ServicesError):
    """Raised when no constructor is registered for a service/provider pair.

    Attributes:
        service_name: The requested service.
        provider_type: The requested provider.
    """

    def __init__(self, service_name: str, provider_type: str) -> None:
        """Initialize the exception with the requested service.

        Args:
            service_name: The requested service.
            provider_type: The requested provider.
        """
        self.service_name = service_name
        self.provider_type = provider_type
        super().__init__(f"No provider '{provider_type}' registered for service '{service_name}'")


class ServiceCreationError(ServicesError):
    """Raised when a registered service factory fails.

    Attributes:
        service_name: The service being constructed.
        provider_type: The provider being constructed.
        cause: The exception raised by the factory.
    """

    def __init__(self, service_name: str, provider_type: str, cause: Exception) -> None:
        """Initialize the exception with the failing factory details.

        Args:
            service_name: The service being constructed.
            provider_type: The provider being constructed.
            cause: The exception raised by the factory.
        """
        self.service_name = service_name
        self.provider_type = provider_type
        self.cause = cause
        super().__init__(f"Failed to create service '{service_name}' with provider '{provider_type}': {cause}")


class DependencyLevelError(ServicesError):
    """Raised when a service depends on a service at the same or a higher level.

    Attributes:
        service_name: The service declaring the dependency.
        dependency: The offending dependency.
    """

    def __init__(self, service_name: str, dependency: str, reason: str) -> None:
        """Initialize the exception with the offending dependency.

        Args:
            service_name: The service declaring the dependency.
            dependency: The offending dependency.
            reason: Why the dependency was rejected.
        """
        self.service_name = service_name
        self.dependency = dependency
        super().__init__(f"Service '{service_name}' cannot depend on '{dependency}': {reason}")


class CircularDependencyError(ServicesError):
    """Raised when the service dependency graph contains a cycle.

    Attributes:
        service_name: A service that participates in the cycle.
    """

    def __init__(self, service_name: str) -> None:
        """Initialize the exception with a service on the cycle.

        Args:
            service_name: A service that participates in the cycle.
        """
        self.service_name = service_name
        super().__init__(f"Circular dependency detected involving service: {service_name}")
