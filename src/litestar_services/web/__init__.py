"""Web API for litestar-services.

This module provides REST API controllers for the scheduling, workflow,
working and registry services. The API is enabled when using ServicesPlugin
with enable_api=True (the default).

Example:
    Basic usage with ServicesPlugin (API enabled by default)::

        from litestar import Litestar
        from litestar_services.plugin import ServicesPlugin, ServicesPluginConfig

        app = Litestar(
            plugins=[
                ServicesPlugin(
                    config=ServicesPluginConfig(
                        enable_api=True,  # Default
                        api_path_prefix="/services",
                    )
                ),
            ],
        )

    With authentication guards::

        config = ServicesPluginConfig(api_guards=[require_auth_guard])
"""

from __future__ import annotations

from litestar_services.web.controllers import (
    RegistryController,
    SchedulingController,
    WorkflowController,
    WorkingController,
)
from litestar_services.web.exceptions import services_error_handler

__all__ = [
    "RegistryController",
    "SchedulingController",
    "WorkflowController",
    "WorkingController",
    "services_error_handler",
]
