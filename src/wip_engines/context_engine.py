"""
Assistant Context Engine.

This module summarizes jobs for the CFO assistant. Its billing position is a
looser heuristic than the WIP schedule's billing difference: progress is
measured as costs over forecasted cost, and differences within 2% of
contract are reported as on track. It is not used for financial reporting.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import BILLING_POSITION_TOLERANCE, ATTENTION_UNDERBILLED_THRESHOLD

from .models import Job, JobStatus, sum_breakdown

logger = logging.getLogger(__name__)

OVERBILLED = "overbilled"
UNDERBILLED = "underbilled"
ON_TRACK = "on-track"


@dataclass
class DataSharingSettings:
    """What a company allows the assistant to see."""
    include_client_identifiers: bool = False
    include_job_financial_totals: bool = True
    include_cost_breakdown_detail: bool = False


def calculate_billing_position(job: Job) -> Dict[str, Any]:
    """
    Classify a job as overbilled, underbilled or on track.

    Returns:
        Dictionary with ``position`` and a non-negative ``amount``
    """
    total_contract = sum_breakdown(job.contract)
    if total_contract == 0:
        return {"position": ON_TRACK, "amount": 0}

    total_costs = sum_breakdown(job.costs)
    forecasted_cost = total_costs + sum_breakdown(job.cost_to_complete)
    percent_complete = total_costs / forecasted_cost if forecasted_cost > 0 else 0
    earned = total_contract * percent_complete
    billing_diff = sum_breakdown(job.invoiced) - earned
    band = total_contract * BILLING_POSITION_TOLERANCE

    if billing_diff > band:
        return {"position": OVERBILLED, "amount": billing_diff}
    if billing_diff < -band:
        return {"position": UNDERBILLED, "amount": abs(billing_diff)}
    return {"position": ON_TRACK, "amount": 0}


def build_job_summary(job: Job, sharing: Optional[DataSharingSettings] = None) -> Dict[str, Any]:
    """
    Summarize one job, respecting the company's data sharing settings.
    """
    sharing = sharing or DataSharingSettings()
    summary: Dict[str, Any] = {
        "job_no": job.job_no,
        "job_name": job.job_name,
        "status": job.status.value,
        "project_manager": job.project_manager,
    }

    if sharing.include_client_identifiers:
        summary["client"] = job.client

    if sharing.include_job_financial_totals:
        contract_total = sum_breakdown(job.contract)
        cost_to_date = sum_breakdown(job.costs)
        billing = calculate_billing_position(job)

        target_profit = getattr(job.billing, "target_profit", None)
        if target_profit is not None:
            original_profit = target_profit
        else:
            original_profit = contract_total - sum_breakdown(job.budget)
        forecast_profit = contract_total - (cost_to_date + sum_breakdown(job.cost_to_complete))

        summary.update({
            "contract_total": contract_total,
            "cost_to_date": cost_to_date,
            "invoiced_to_date": sum_breakdown(job.invoiced),
            "billing_position": billing["position"],
            "billing_amount": billing["amount"],
            "profit_variance": forecast_profit - original_profit,
        })

    if sharing.include_cost_breakdown_detail:
        summary["cost_breakdown"] = job.costs.to_dict()

    return summary


def build_company_context(
    jobs: List[Job],
    sharing: Optional[DataSharingSettings] = None
) -> Dict[str, Any]:
    """
    Company-wide billing exposure across active jobs.

    A job needs attention when it is underbilled by more than 10% of its
    contract. Each active job is also summarized under ``jobs``.
    """
    active_jobs = [j for j in jobs if j.status == JobStatus.ACTIVE]

    total_underbilled = 0.0
    total_overbilled = 0.0
    jobs_needing_attention = 0

    for job in active_jobs:
        billing = calculate_billing_position(job)
        if billing["position"] == UNDERBILLED:
            total_underbilled += billing["amount"]
            if billing["amount"] > sum_breakdown(job.contract) * ATTENTION_UNDERBILLED_THRESHOLD:
                jobs_needing_attention += 1
        elif billing["position"] == OVERBILLED:
            total_overbilled += billing["amount"]

    logger.debug(f"Built company context for {len(active_jobs)} active jobs")
    return {
        "total_active_jobs": len(active_jobs),
        "total_underbilled": total_underbilled,
        "total_overbilled": total_overbilled,
        "jobs_needing_attention": jobs_needing_attention,
        "jobs": [build_job_summary(job, sharing) for job in active_jobs],
    }
