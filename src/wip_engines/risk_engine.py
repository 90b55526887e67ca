"""
Job Risk Engine.

Early-warning signals for the WIP schedule:

- Under-billing risk: how far invoicing trails earned revenue, as a share
  of contract value.
- Schedule drift: weeks by which elapsed time runs ahead of cost progress.
- Margin fade: margin points lost between the estimate and the forecast.

Earned revenue here is the whole-job cost-to-cost figure capped at 100%,
not the component-level figure used on the schedule itself.
"""

from typing import Dict, Any, Optional
from datetime import date
import logging
import math

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import (
    UNDERBILLING_HIGH_RISK,
    UNDERBILLING_MEDIUM_RISK,
    SCHEDULE_DRIFT_THRESHOLD,
    MARGIN_FADE_THRESHOLD_POINTS,
)

from .models import Job, JobRiskAnalysis, RiskLevel, sum_breakdown

logger = logging.getLogger(__name__)

CALENDAR_DAYS_PER_WEEK = 7


# ==============================================================================
# BILLING RISK
# ==============================================================================

def calculate_underbilling_risk(job: Job) -> RiskLevel:
    """
    Classify how far a job is under-billed relative to its contract.

    Billing position = invoiced - contract x min(costs / budget, 1)

    Returns:
        HIGH when under-billed by more than 10% of contract, MEDIUM beyond
        5%, LOW otherwise, and NONE for a job without contract value

    Example:
        >>> job = Job(contract=CostBreakdown(100000, 0, 0),
        ...           budget=CostBreakdown(80000, 0, 0),
        ...           costs=CostBreakdown(40000, 0, 0),
        ...           invoiced=CostBreakdown(38000, 0, 0))
        >>> calculate_underbilling_risk(job)
        <RiskLevel.HIGH: 'High'>
    """
    contract = sum_breakdown(job.contract)
    if contract == 0:
        return RiskLevel.NONE

    budget = sum_breakdown(job.budget)
    pct_complete = sum_breakdown(job.costs) / budget if budget > 0 else 0
    earned = contract * min(pct_complete, 1)

    position = (sum_breakdown(job.invoiced) - earned) / contract

    if position < -UNDERBILLING_HIGH_RISK:
        return RiskLevel.HIGH
    if position < -UNDERBILLING_MEDIUM_RISK:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ==============================================================================
# SCHEDULE DRIFT
# ==============================================================================

def calculate_schedule_drift(job: Job, today: Optional[date] = None) -> int:
    """
    Estimate how many weeks a job is behind schedule.

    Compares the share of the scheduled duration already elapsed with the
    share of budget already spent. A gap under 10 points is ignored.

    Args:
        job: Job with start and end dates
        today: Date to measure elapsed time at (defaults to today)

    Returns:
        Whole weeks of drift; 0 for jobs without dates, not yet started,
        with no duration or no budget
    """
    if job.start_date is None or job.end_date is None:
        return 0

    today = today or date.today()
    duration_days = (job.end_date - job.start_date).days
    if today < job.start_date or duration_days <= 0:
        return 0

    budget = sum_breakdown(job.budget)
    if budget == 0:
        return 0

    time_elapsed = (today - job.start_date).days / duration_days
    cost_progress = sum_breakdown(job.costs) / budget
    drift = time_elapsed - cost_progress

    if drift < SCHEDULE_DRIFT_THRESHOLD:
        return 0

    weeks = int(math.floor(drift * duration_days / CALENDAR_DAYS_PER_WEEK + 0.5))
    return max(0, weeks)


# ==============================================================================
# MARGIN FADE
# ==============================================================================

def calculate_margin_fade(job: Job) -> Dict[str, Any]:
    """
    Margin points lost between the estimate and the current forecast.

    Original margin = (contract - budget) / contract
    Forecast margin = (contract - costs - cost to complete) / contract

    Returns:
        Dictionary with ``is_fading`` (more than 2 points lost) and
        ``fade_percent`` rounded to one decimal
    """
    contract = sum_breakdown(job.contract)
    if contract == 0:
        return {"is_fading": False, "fade_percent": 0.0}

    original_margin = (contract - sum_breakdown(job.budget)) / contract
    forecasted_cost = sum_breakdown(job.costs) + sum_breakdown(job.cost_to_complete)
    forecasted_margin = (contract - forecasted_cost) / contract

    fade_points = (original_margin - forecasted_margin) * 100

    return {
        "is_fading": fade_points > MARGIN_FADE_THRESHOLD_POINTS,
        "fade_percent": round(fade_points, 1),
    }


def analyze_job_risk(job: Job, today: Optional[date] = None) -> JobRiskAnalysis:
    """Run every risk check for one job."""
    fade = calculate_margin_fade(job)

    analysis = JobRiskAnalysis(
        underbilling_risk=calculate_underbilling_risk(job),
        schedule_drift_weeks=calculate_schedule_drift(job, today),
        margin_fade_percent=fade["fade_percent"],
        is_margin_fading=fade["is_fading"],
    )

    logger.debug(f"Risk for job {job.job_no or job.id}: {analysis.underbilling_risk.value}")
    return analysis
