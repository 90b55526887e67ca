"""
Job Financial Computation Engine.

This module provides pure Python implementations of the per-job WIP figures:
earned revenue, over/under billing, forecasted profit and percent complete,
for both Fixed-Price and Time & Material jobs.

All calculations are deterministic, never raise on numeric input, and
return 0 for any term whose denominator is zero.
"""

from typing import Dict, Any
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import DEFAULT_TM_MARKUPS

from .models import (
    CostBreakdown,
    EarnedRevenue,
    BillingDifference,
    Job,
    JobBilling,
    LaborBillingType,
    Multiplier,
    TMSettings,
    TimeAndMaterialBilling,
    sum_breakdown,
)

logger = logging.getLogger(__name__)

OVER_BILLED_LABEL = "Over Billed"
UNDER_BILLED_LABEL = "Under Billed"


# ==============================================================================
# DEFAULTS
# ==============================================================================

def get_default_tm_settings() -> TMSettings:
    """
    Default T&M settings for a new Time & Material job.

    Labor is billed at a markup; markups are 50% labor, 15% material and
    10% other.
    """
    return TMSettings(
        labor_billing_type=LaborBillingType.MARKUP,
        labor_markup=Multiplier(DEFAULT_TM_MARKUPS["labor"]),
        material_markup=Multiplier(DEFAULT_TM_MARKUPS["material"]),
        other_markup=Multiplier(DEFAULT_TM_MARKUPS["other"]),
    )


# ==============================================================================
# EARNED REVENUE
# ==============================================================================

def _component_earned(contract: float, budget: float, cost: float) -> float:
    """Contract value earned for one component, by that component's own % complete."""
    pct_complete = cost / budget if budget > 0 else 0
    return contract * pct_complete


def _tm_earned_revenue(costs: CostBreakdown, tm: TMSettings) -> EarnedRevenue:
    if tm.labor_billing_type == LaborBillingType.FIXED_RATE:
        labor = (tm.labor_bill_rate or 0) * (tm.labor_hours or 0)
    else:
        labor = costs.labor * tm.labor_markup

    material = costs.material * tm.material_markup
    other = costs.other * tm.other_markup

    return EarnedRevenue(
        labor=labor,
        material=material,
        other=other,
        total=labor + material + other,
    )


def _earned_revenue_for(
    billing: JobBilling,
    contract: CostBreakdown,
    budget: CostBreakdown,
    costs: CostBreakdown,
) -> EarnedRevenue:
    if isinstance(billing, TimeAndMaterialBilling):
        return _tm_earned_revenue(costs, billing.tm_settings)

    labor = _component_earned(contract.labor, budget.labor, costs.labor)
    material = _component_earned(contract.material, budget.material, costs.material)
    other = _component_earned(contract.other, budget.other, costs.other)

    return EarnedRevenue(
        labor=labor,
        material=material,
        other=other,
        total=labor + material + other,
    )


def calculate_earned_revenue(job: Job) -> EarnedRevenue:
    """
    Calculate earned revenue for a job based on its billing type.

    Time & Material:
        Labor = bill rate x hours (fixed-rate) or labor cost x labor markup
        Material = material cost x material markup
        Other = other cost x other markup

    Fixed Price, component by component:
        Earned = Contract x (Cost / Budget) for each of labor, material, other

    The component-level approach keeps each component's embedded margin; an
    overall % complete skews results when the cost mix diverges from the
    estimate. A component with a zero budget earns nothing.

    Args:
        job: Job record

    Returns:
        EarnedRevenue with labor, material, other and total

    Example:
        >>> job = Job(contract=CostBreakdown(100000, 50000, 0),
        ...           budget=CostBreakdown(80000, 40000, 0),
        ...           costs=CostBreakdown(40000, 20000, 0))
        >>> calculate_earned_revenue(job).total
        75000.0
    """
    return _earned_revenue_for(job.billing, job.contract, job.budget, job.costs)


# ==============================================================================
# BILLING, PROFIT AND PROGRESS
# ==============================================================================

def calculate_billing_difference(job: Job) -> BillingDifference:
    """
    Calculate the over/under billed amount.

    Positive = Over Billed (collected ahead of work done)
    Negative = Under Billed (work done but not yet invoiced)
    """
    earned = calculate_earned_revenue(job)
    difference = sum_breakdown(job.invoiced) - earned.total
    is_over_billed = difference > 0

    return BillingDifference(
        difference=difference,
        is_over_billed=is_over_billed,
        label=OVER_BILLED_LABEL if is_over_billed else UNDER_BILLED_LABEL,
    )


def calculate_forecasted_profit(job: Job) -> float:
    """
    Calculate forecasted profit for a job.

    T&M: earned revenue minus costs to date.
    Fixed price: contract minus (costs to date + cost to complete).
    """
    if job.is_time_material:
        earned = calculate_earned_revenue(job)
        return earned.total - sum_breakdown(job.costs)

    total_contract = sum_breakdown(job.contract)
    forecasted_cost = sum_breakdown(job.costs) + sum_breakdown(job.cost_to_complete)
    return total_contract - forecasted_cost


def calculate_percent_complete(job: Job) -> float:
    """
    Cost-to-budget percent complete (0-100+). Only meaningful for fixed-price jobs.
    """
    total_budget = sum_breakdown(job.budget)
    if total_budget == 0:
        return 0
    return (sum_breakdown(job.costs) / total_budget) * 100


def calculate_original_profit(job: Job) -> float:
    """Estimated profit at contract time (contract - budget). Zero for T&M jobs."""
    if job.is_time_material:
        return 0
    return sum_breakdown(job.contract) - sum_breakdown(job.budget)


def calculate_forecasted_margin(job: Job) -> float:
    """
    Forecasted margin percent.

    Fixed price margins are measured against contract, T&M margins against
    earned revenue.
    """
    profit = calculate_forecasted_profit(job)
    if job.is_time_material:
        denominator = calculate_earned_revenue(job).total
    else:
        denominator = sum_breakdown(job.contract)

    if denominator <= 0:
        return 0
    return (profit / denominator) * 100


# ==============================================================================
# COMPREHENSIVE JOB FINANCIALS
# ==============================================================================

def calculate_job_financials(job: Job) -> Dict[str, Any]:
    """
    Calculate every derived figure for a job in one pass.

    Used by the report export and the API so that both reproduce the
    figures shown on screen.

    Returns:
        Dictionary of totals, earned revenue, billing, profit and margins
    """
    earned = calculate_earned_revenue(job)
    billing = calculate_billing_difference(job)
    forecasted_profit = calculate_forecasted_profit(job)
    original_profit = calculate_original_profit(job)
    total_contract = sum_breakdown(job.contract)
    total_costs = sum_breakdown(job.costs)
    total_cost_to_complete = sum_breakdown(job.cost_to_complete)

    original_margin = 0
    if not job.is_time_material and total_contract > 0:
        original_margin = (original_profit / total_contract) * 100

    if job.is_time_material:
        profit_variance = forecasted_profit
    else:
        profit_variance = forecasted_profit - original_profit

    financials = {
        "job_type": job.job_type.value,
        "total_contract": total_contract,
        "total_budget": sum_breakdown(job.budget),
        "total_costs": total_costs,
        "total_invoiced": sum_breakdown(job.invoiced),
        "total_cost_to_complete": total_cost_to_complete,
        "forecasted_budget": total_costs + total_cost_to_complete,
        "earned_revenue": earned.to_dict(),
        "billing": billing.to_dict(),
        "percent_complete": calculate_percent_complete(job),
        "original_profit": original_profit,
        "original_margin": original_margin,
        "forecasted_profit": forecasted_profit,
        "forecasted_margin": calculate_forecasted_margin(job),
        "profit_variance": profit_variance,
    }

    logger.debug(f"Calculated financials for job {job.job_no or job.id}")
    return financials
