"""
Report Export Engine.

This module builds the tabular WIP and labor projection reports. Every
figure comes from the same calculator functions the live screens use, so
an exported row always matches the on-screen totals.
"""

from typing import List, Optional
from datetime import date, datetime
import logging

import pandas as pd

from .models import Job, MonthlyProjection, sum_breakdown
from .job_financials_engine import calculate_job_financials

logger = logging.getLogger(__name__)


JOB_EXPORT_COLUMNS = [
    "Job #",
    "Job Name",
    "Client",
    "Project Manager",
    "Estimator",
    "Job Type",
    "Status",
    "Start Date",
    "End Date",
    "Contract (Labor)",
    "Contract (Material)",
    "Contract (Other)",
    "Contract (Total)",
    "Cost to Date (Labor)",
    "Cost to Date (Material)",
    "Cost to Date (Other)",
    "Cost to Date (Total)",
    "Budget (Labor)",
    "Budget (Material)",
    "Budget (Other)",
    "Budget (Total)",
    "Invoiced (Total)",
    "Cost to Complete (Total)",
    "Forecasted Budget",
    "Original Profit",
    "Original Margin %",
    "Forecasted Profit",
    "Forecasted Margin %",
    "Profit Variance",
    "Earned Revenue",
    "Over/Under Billed",
    "Last Updated",
]


def _format_date(value: Optional[date]) -> str:
    if value is None:
        return "TBD"
    return value.strftime("%m/%d/%Y")


def _money(value: float) -> float:
    return round(float(value), 2)


def job_to_row(job: Job) -> list:
    """One export row for a job, in JOB_EXPORT_COLUMNS order."""
    financials = calculate_job_financials(job)
    last_updated = job.last_updated.date() if isinstance(job.last_updated, datetime) else job.last_updated

    return [
        job.job_no,
        job.job_name,
        job.client,
        job.project_manager,
        job.estimator or "",
        "T&M" if job.is_time_material else "Fixed Price",
        job.status.value,
        _format_date(job.start_date),
        _format_date(job.end_date),
        _money(job.contract.labor),
        _money(job.contract.material),
        _money(job.contract.other),
        _money(financials["total_contract"]),
        _money(job.costs.labor),
        _money(job.costs.material),
        _money(job.costs.other),
        _money(financials["total_costs"]),
        _money(job.budget.labor),
        _money(job.budget.material),
        _money(job.budget.other),
        _money(sum_breakdown(job.budget)),
        _money(financials["total_invoiced"]),
        _money(financials["total_cost_to_complete"]),
        _money(financials["forecasted_budget"]),
        _money(financials["original_profit"]),
        round(financials["original_margin"], 1),
        _money(financials["forecasted_profit"]),
        round(financials["forecasted_margin"], 1),
        _money(financials["profit_variance"]),
        _money(financials["earned_revenue"]["total"]),
        _money(financials["billing"]["difference"]),
        _format_date(last_updated),
    ]


def jobs_to_frame(jobs: List[Job]) -> pd.DataFrame:
    """
    Build the WIP report as a DataFrame, one row per job.

    Args:
        jobs: Jobs to export, in report order

    Returns:
        DataFrame with JOB_EXPORT_COLUMNS
    """
    df = pd.DataFrame([job_to_row(job) for job in jobs], columns=JOB_EXPORT_COLUMNS)
    logger.debug(f"Built WIP export for {len(jobs)} jobs")
    return df


def jobs_to_csv(jobs: List[Job]) -> str:
    """Render the WIP report as CSV text with a header row."""
    return jobs_to_frame(jobs).to_csv(index=False)


def projections_to_frame(projections: List[MonthlyProjection]) -> pd.DataFrame:
    """
    Flatten monthly projections into one row per month and department.

    Returns:
        DataFrame with month, department, hours, cost and employee count
    """
    records = [
        {
            "month": projection.month,
            "department_id": dept.department_id,
            "department": dept.department_name,
            "hours": dept.hours,
            "cost": dept.cost,
            "employee_count": dept.employee_count,
        }
        for projection in projections
        for dept in projection.departments
    ]
    columns = ["month", "department_id", "department", "hours", "cost", "employee_count"]
    return pd.DataFrame(records, columns=columns)
