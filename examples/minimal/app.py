"""Minimal example of litestar-services integration.

This example demonstrates the basic usage of the ServicesPlugin with an
order processing workflow whose steps each run in their own process, and a
periodic cleanup task.

Run from the repository root with:
    litestar --app examples.minimal.app:app run

Or:
    uvicorn examples.minimal.app:app --reload
"""

from __future__ import annotations

from typing import Any

from litestar import Controller, Litestar, get, post

from litestar_services.plugin import ServicesPlugin, ServicesPluginConfig
from litestar_services.workflow import WorkflowRunner

from examples.minimal import units

ORDER_STEPS = ["validate-order", "process-payment", "fulfill-order"]

# =============================================================================
# API Controller
# =============================================================================


class OrderController(Controller):
    """REST API for order processing."""

    path = "/orders"
    tags = ["Orders"]

    @post("/")
    async def place_order(self, data: dict[str, Any], workflow_runner: WorkflowRunner) -> dict[str, Any]:
        """Run the order through validation, payment and fulfillment."""
        return await workflow_runner.run_workflow("order_processing", data)


# =============================================================================
# Application
# =============================================================================

plugin = ServicesPlugin(
    config=ServicesPluginConfig(
        units={
            "validate-order": units.validate_order,
            "process-payment": units.process_payment,
            "fulfill-order": units.fulfill_order,
            "purge-carts": units.purge_expired_carts,
        },
    )
)


async def define_workflows(app: Litestar) -> None:
    """Define the workflows and periodic tasks of the app."""
    registry = plugin.registry
    workflows = await registry.workflow()
    await workflows.define_workflow("order_processing", ORDER_STEPS)
    scheduler = await registry.scheduling()
    await scheduler.start("purge-carts", "purge-carts", 3600)


app = Litestar(
    route_handlers=[OrderController],
    plugins=[plugin],
    on_startup=[define_workflows],
    debug=True,
)


# =============================================================================
# Health Check (for testing)
# =============================================================================


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Add health check to app
app.register(health_check)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
