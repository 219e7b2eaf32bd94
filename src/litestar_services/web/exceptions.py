"""Exception handling for the services web API.

This module maps the library's exceptions to JSON error responses.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from litestar import Response
from litestar.status_codes import (
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from litestar_services.exceptions import (
    DependencyLevelError,
    DuplicateTaskError,
    ServicesError,
    StepError,
    UnknownServiceTypeError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

__all__ = ["services_error_handler", "status_code_for"]

_STATUS_CODES: tuple[tuple[type[ServicesError], int], ...] = (
    (WorkflowNotFoundError, HTTP_404_NOT_FOUND),
    (UnknownServiceTypeError, HTTP_404_NOT_FOUND),
    (DuplicateTaskError, HTTP_409_CONFLICT),
    (WorkflowValidationError, HTTP_422_UNPROCESSABLE_ENTITY),
    (DependencyLevelError, HTTP_422_UNPROCESSABLE_ENTITY),
)


def status_code_for(exc: ServicesError) -> int:
    """Return the HTTP status code an exception is reported with.

    Args:
        exc: The exception.

    Returns:
        The status code; 500 for exceptions without a specific mapping.
    """
    for kind, status_code in _STATUS_CODES:
        if isinstance(exc, kind):
            return status_code
    return HTTP_500_INTERNAL_SERVER_ERROR


def _error_name(exc: Exception) -> str:
    name = type(exc).__name__.removesuffix("Error")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def services_error_handler(
    _request: Request,
    exc: ServicesError,
) -> Response:
    """Exception handler for ServicesError and its subclasses.

    Args:
        _request: The Litestar request object.
        exc: The raised exception.

    Returns:
        Response with the error name, message and error-specific details.
    """
    content: dict[str, Any] = {"error": _error_name(exc), "message": str(exc)}
    if isinstance(exc, WorkflowValidationError):
        content["errors"] = exc.errors
    elif isinstance(exc, StepError):
        content.update(
            workflow_name=exc.workflow_name,
            step_index=exc.step_index,
            unit_reference=exc.unit_reference,
            detail=exc.message,
        )
    return Response(content=content, status_code=status_code_for(exc))
