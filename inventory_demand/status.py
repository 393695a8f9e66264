# inventory_demand/status.py
# --------------------------
# Responsibility:
# - Derive the stock health status of an inventory item
# - Count items per status for dashboard alerts

from typing import Iterable

from .config import settings
from .schemas import InventoryItem, StatusSummary, StockStatus


def classify_status(
    quantity: float,
    reorder_point: float,
    warning_multiplier: float = None
) -> StockStatus:
    """
    Map current quantity and reorder point to a stock status.

    Args:
        quantity: Units currently in stock
        reorder_point: Quantity at or below which restocking is needed
        warning_multiplier: Warning band above the reorder point (default: settings)

    Returns:
        StockStatus: DANGER at or below the reorder point, WARNING up to
        reorder_point * warning_multiplier, NORMAL above that
    """
    if warning_multiplier is None:
        warning_multiplier = settings.warning_multiplier

    if quantity <= reorder_point:
        return StockStatus.DANGER
    elif quantity <= reorder_point * warning_multiplier:
        return StockStatus.WARNING
    return StockStatus.NORMAL


def summarize_statuses(items: Iterable[InventoryItem]) -> StatusSummary:
    """Count items per status; `alerts` lists the ids of items in danger."""
    summary = StatusSummary()
    for item in items:
        status = classify_status(item.quantity, item.reorder_point)
        setattr(summary, status.value, getattr(summary, status.value) + 1)
        if status is StockStatus.DANGER:
            summary.alerts.append(item.id)
    return summary
