"""
Change Order Engine.

This module rolls approved change orders into their parent job's totals and
tracks change order status transitions.

Only approved and completed change orders affect job totals.
"""

from typing import List, Dict, Any, Optional
from datetime import datetime
from dataclasses import replace
import logging

from .models import (
    ChangeOrder,
    ChangeOrderStatus,
    CostBreakdown,
    Job,
    add_breakdowns,
    sum_breakdown,
)
from .job_financials_engine import calculate_earned_revenue

logger = logging.getLogger(__name__)

APPROVED_STATUSES = (ChangeOrderStatus.APPROVED, ChangeOrderStatus.COMPLETED)

BREAKDOWN_FIELDS = ("contract", "budget", "costs", "invoiced", "cost_to_complete")


# ==============================================================================
# ROLL-UPS
# ==============================================================================

def approved_change_orders(change_orders: List[ChangeOrder]) -> List[ChangeOrder]:
    """Change orders that count toward job totals."""
    return [co for co in change_orders if co.status in APPROVED_STATUSES]


def sum_approved_change_orders(change_orders: List[ChangeOrder], field: str) -> CostBreakdown:
    """
    Sum one breakdown field across approved change orders.

    Args:
        change_orders: Change orders for a job
        field: One of contract, budget, costs, invoiced, cost_to_complete
    """
    if field not in BREAKDOWN_FIELDS:
        raise ValueError(f"Unknown breakdown field: {field}")

    total = CostBreakdown()
    for co in approved_change_orders(change_orders):
        total = add_breakdowns(total, getattr(co, field))
    return total


def get_job_totals_with_change_orders(
    job: Job,
    change_orders: Optional[List[ChangeOrder]] = None
) -> Dict[str, Any]:
    """
    Effective job totals including approved change orders.

    Returns:
        Dictionary with the combined breakdown for each field, the change
        order portion under a ``co_`` prefix, and ``has_approved_cos``
    """
    change_orders = change_orders or []
    totals: Dict[str, Any] = {}

    for field in BREAKDOWN_FIELDS:
        co_portion = sum_approved_change_orders(change_orders, field)
        totals[field] = add_breakdowns(getattr(job, field), co_portion)
        totals[f"co_{field}"] = co_portion

    totals["has_approved_cos"] = bool(approved_change_orders(change_orders))
    return totals


def calculate_forecasted_profit_with_change_orders(
    job: Job,
    change_orders: Optional[List[ChangeOrder]] = None
) -> float:
    """
    Forecasted profit including approved change orders.

    T&M jobs: job earned revenue minus job costs, plus approved change
    order contract minus change order costs.
    Fixed price: combined contract minus combined costs and cost to complete.
    """
    totals = get_job_totals_with_change_orders(job, change_orders)

    if job.is_time_material:
        earned = calculate_earned_revenue(job)
        co_profit = sum_breakdown(totals["co_contract"]) - sum_breakdown(totals["co_costs"])
        return earned.total - sum_breakdown(job.costs) + co_profit

    total_contract = sum_breakdown(totals["contract"])
    forecasted_cost = sum_breakdown(totals["costs"]) + sum_breakdown(totals["cost_to_complete"])
    return total_contract - forecasted_cost


# ==============================================================================
# STATUS TRACKING
# ==============================================================================

def count_change_orders_by_status(change_orders: List[ChangeOrder]) -> Dict[str, int]:
    """Count change orders per status, including statuses with none."""
    counts = {status.value: 0 for status in ChangeOrderStatus}
    for co in change_orders:
        counts[co.status.value] += 1
    return counts


def apply_status_change(
    change_order: ChangeOrder,
    new_status: ChangeOrderStatus,
    now: Optional[datetime] = None
) -> ChangeOrder:
    """
    Return a copy of the change order moved to ``new_status``.

    ``approved_date`` and ``completed_date`` are stamped when the order
    first reaches that status and are never overwritten afterwards.
    """
    now = now or datetime.now()
    updates: Dict[str, Any] = {"status": new_status}

    if (new_status == ChangeOrderStatus.APPROVED
            and change_order.status != ChangeOrderStatus.APPROVED
            and change_order.approved_date is None):
        updates["approved_date"] = now

    if (new_status == ChangeOrderStatus.COMPLETED
            and change_order.status != ChangeOrderStatus.COMPLETED
            and change_order.completed_date is None):
        updates["completed_date"] = now

    logger.debug(
        f"Change order {change_order.co_number}: {change_order.status.value} -> {new_status.value}"
    )
    return replace(change_order, **updates)


def get_next_co_number(change_orders: List[ChangeOrder]) -> int:
    """Next sequential change order number for a job (numbering starts at 1)."""
    if not change_orders:
        return 1
    return max(co.co_number for co in change_orders) + 1
