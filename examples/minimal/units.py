"""Units of work for the order processing example.

Each unit receives the output of the previous step and returns the input of
the next one. They run in their own process, so they must stay importable
by module path.
"""

from __future__ import annotations

from typing import Any


def validate_order(order: dict[str, Any]) -> dict[str, Any]:
    """Validate the order."""
    items = order.get("items", [])
    if not order.get("order_id") or not items:
        msg = "Order must have an order_id and at least one item"
        raise ValueError(msg)
    return {**order, "validation_passed": True, "item_count": len(items)}


def process_payment(order: dict[str, Any]) -> dict[str, Any]:
    """Process the payment."""
    return {**order, "payment_id": f"PAY-{order['order_id']}"}


def fulfill_order(order: dict[str, Any]) -> dict[str, Any]:
    """Prepare the shipment."""
    return {**order, "tracking_number": f"TRACK-{order['order_id']}", "status": "shipped"}


def purge_expired_carts(_: Any = None) -> int:
    """Pretend to purge abandoned carts."""
    return 0
