"""
Labor Capacity Projection Engine.

This module converts employee, department and allocation records into
loaded labor cost, available hours and month-by-month workforce projections.

Months are calendar months numbered 1-12. An employee counts from the month
they are hired through the month they leave, inclusive, with the boundary
months prorated by day. ``is_active=False`` excludes an employee everywhere.
"""

from typing import List, Dict, Any, Optional, Iterable
from datetime import date
import calendar
import logging
import math

import numpy as np
from dateutil.relativedelta import relativedelta

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import (
    HOURS_PER_DAY,
    HOURS_PER_YEAR,
    WEEKS_PER_MONTH,
    ALLOCATION_TOLERANCE,
    DEFAULT_PROJECTION_MONTHS,
    DEFAULT_DEPARTMENTS,
)

from .models import (
    AllocationValidation,
    Department,
    DepartmentAllocation,
    DepartmentProjection,
    DepartmentSummary,
    Employee,
    EmployeeMetrics,
    MonthlyProjection,
)

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25


# ==============================================================================
# DATE HELPERS
# ==============================================================================

def _to_year_month(year: int, month: int) -> int:
    """Encode a calendar month as YYYYMM for ordering comparisons."""
    return year * 100 + month


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _allocation_for(
    allocations: List[DepartmentAllocation],
    employee_id: str
) -> Optional[DepartmentAllocation]:
    for allocation in allocations:
        if allocation.employee_id == employee_id:
            return allocation
    return None


def _department_allocations(
    department: Department,
    allocations: Iterable[DepartmentAllocation]
) -> List[DepartmentAllocation]:
    return [a for a in allocations if a.department_id == department.id]


# ==============================================================================
# DEFAULTS
# ==============================================================================

def get_default_departments() -> List[Department]:
    """Departments seeded for a new company, productive ones first."""
    return [
        Department(
            id=f"default-{d['sort_order']}",
            name=d["name"],
            is_productive=d["is_productive"],
            sort_order=d["sort_order"],
        )
        for d in DEFAULT_DEPARTMENTS
    ]


# ==============================================================================
# RATES AND HOURS
# ==============================================================================

def calculate_loaded_cost_per_hour(hourly_rate: float, burden_multiplier: float) -> float:
    """Loaded cost per hour = base rate x burden multiplier."""
    return hourly_rate * burden_multiplier


def calculate_annual_available_hours(fte: float, annual_pto_hours: float) -> float:
    """Annual available hours adjusted for FTE and PTO, never below zero."""
    return max(0, HOURS_PER_YEAR * fte - annual_pto_hours)


def calculate_annual_loaded_cost(
    hourly_rate: float,
    burden_multiplier: float,
    fte: float,
    annual_pto_hours: float
) -> float:
    """Annual loaded cost = loaded rate x annual available hours."""
    loaded_rate = calculate_loaded_cost_per_hour(hourly_rate, burden_multiplier)
    return loaded_rate * calculate_annual_available_hours(fte, annual_pto_hours)


def calculate_years_of_service(hire_date: Optional[date], today: Optional[date] = None) -> float:
    """
    Years since hire, floored to one decimal and never negative.

    Args:
        hire_date: Date of hire, or None when unknown
        today: Reference date (defaults to today)

    Returns:
        Years of service, e.g. 3.4
    """
    if hire_date is None:
        return 0
    today = today or date.today()
    years = (today - hire_date).days / DAYS_PER_YEAR
    return max(0, math.floor(years * 10) / 10)


def get_working_days_in_month(year: int, month: int) -> int:
    """
    Count Monday-Friday days in a calendar month. Holidays are not excluded.

    Example:
        >>> get_working_days_in_month(2024, 1)
        23
    """
    first_day = date(year, month, 1)
    next_month = first_day + relativedelta(months=1)
    return int(np.busday_count(np.datetime64(first_day, "D"), np.datetime64(next_month, "D")))


def calculate_monthly_available_hours(
    fte: float,
    annual_pto_hours: float,
    year: int,
    month: int
) -> float:
    """
    Monthly available hours for an employee.

    PTO is spread evenly over twelve months regardless of when it is taken.
    """
    monthly_hours = get_working_days_in_month(year, month) * HOURS_PER_DAY * fte
    monthly_pto = annual_pto_hours / 12
    return max(0, monthly_hours - monthly_pto)


# ==============================================================================
# ACTIVE WINDOW
# ==============================================================================

def is_employee_currently_active(employee: Employee, today: Optional[date] = None) -> bool:
    """
    Check if an employee is hired and not yet terminated as of today.

    A future hire date means not yet active; a termination date on or before
    today means no longer active.
    """
    if not employee.is_active:
        return False

    today = today or date.today()

    if employee.hire_date and employee.hire_date > today:
        return False

    if employee.termination_date and employee.termination_date <= today:
        return False

    return True


def is_employee_active_in_month(employee: Employee, year: int, month: int) -> bool:
    """
    Check if an employee should be counted in a given calendar month.

    The employee counts from the hire month through the termination month,
    both inclusive: someone terminated on August 1st still counts in August.

    Args:
        employee: Employee record
        year: Calendar year
        month: Calendar month (1-12)
    """
    if not employee.is_active:
        return False

    target_ym = _to_year_month(year, month)

    if employee.hire_date:
        hire_ym = _to_year_month(employee.hire_date.year, employee.hire_date.month)
        if target_ym < hire_ym:
            return False

    if employee.termination_date:
        term_ym = _to_year_month(employee.termination_date.year, employee.termination_date.month)
        if target_ym > term_ym:
            return False

    return True


def calculate_prorated_monthly_hours(employee: Employee, year: int, month: int) -> float:
    """
    Available hours for a month, prorated by day for hire and termination months.

    - Hired this month: days from the hire day to month end
    - Terminated this month: days from the 1st to the termination day, inclusive
    - Both in the same month: hire day through termination day

    The proration scales the PTO-adjusted monthly hours; it does not
    recompute them from working days.

    Example:
        An employee hired on the 15th of a 30-day month gets 16/30 of the
        month's available hours.
    """
    if not is_employee_active_in_month(employee, year, month):
        return 0

    full_month_hours = calculate_monthly_available_hours(
        employee.fte,
        employee.annual_pto_hours,
        year,
        month
    )

    last_day = _days_in_month(year, month)
    target_ym = _to_year_month(year, month)
    start_day = 1
    end_day = last_day

    hire = employee.hire_date
    if hire and _to_year_month(hire.year, hire.month) == target_ym:
        start_day = hire.day

    termination = employee.termination_date
    if termination and _to_year_month(termination.year, termination.month) == target_ym:
        end_day = termination.day

    days_working = max(0, end_day - start_day + 1)
    return full_month_hours * (days_working / last_day)


# ==============================================================================
# EMPLOYEE AND DEPARTMENT METRICS
# ==============================================================================

def calculate_employee_metrics(employee: Employee, today: Optional[date] = None) -> EmployeeMetrics:
    """
    Calculate all derived metrics for an employee.

    Monthly figures use the month containing ``today``.
    """
    today = today or date.today()

    loaded_cost_per_hour = calculate_loaded_cost_per_hour(
        employee.hourly_rate,
        employee.burden_multiplier
    )
    annual_available_hours = calculate_annual_available_hours(
        employee.fte,
        employee.annual_pto_hours
    )
    monthly_available_hours = calculate_monthly_available_hours(
        employee.fte,
        employee.annual_pto_hours,
        today.year,
        today.month
    )

    return EmployeeMetrics(
        loaded_cost_per_hour=loaded_cost_per_hour,
        annual_available_hours=annual_available_hours,
        annual_loaded_cost=loaded_cost_per_hour * annual_available_hours,
        monthly_available_hours=monthly_available_hours,
        monthly_loaded_cost=loaded_cost_per_hour * monthly_available_hours,
        billable_hours=monthly_available_hours * employee.utilization_target,
        years_of_service=calculate_years_of_service(employee.hire_date, today),
    )


def calculate_department_summary(
    department: Department,
    employees: List[Employee],
    allocations: List[DepartmentAllocation],
    today: Optional[date] = None
) -> DepartmentSummary:
    """
    Summarize a department from its allocated, currently active employees.

    FTE, hours and cost are weighted by each employee's allocation to the
    department. The average loaded rate is a plain mean across employees,
    not allocation weighted.
    """
    today = today or date.today()
    dept_allocations = _department_allocations(department, allocations)
    employee_ids = {a.employee_id for a in dept_allocations}
    dept_employees = [
        e for e in employees
        if e.id in employee_ids and is_employee_currently_active(e, today)
    ]

    total_fte = 0.0
    total_hours = 0.0
    total_cost = 0.0
    total_loaded_rate = 0.0

    for employee in dept_employees:
        allocation = _allocation_for(dept_allocations, employee.id)
        allocation_factor = allocation.allocation_percent / 100
        metrics = calculate_employee_metrics(employee, today)

        total_fte += employee.fte * allocation_factor
        total_hours += metrics.annual_available_hours * allocation_factor
        total_cost += metrics.annual_loaded_cost * allocation_factor
        total_loaded_rate += metrics.loaded_cost_per_hour

    employee_count = len(dept_employees)
    average_loaded_rate = total_loaded_rate / employee_count if employee_count > 0 else 0

    return DepartmentSummary(
        department_id=department.id,
        department_name=department.name,
        is_productive=department.is_productive,
        employee_count=employee_count,
        total_fte=total_fte,
        total_hours=total_hours,
        total_cost=total_cost,
        average_loaded_rate=average_loaded_rate,
    )


# ==============================================================================
# MONTHLY PROJECTIONS
# ==============================================================================

def _project_month(
    employees: List[Employee],
    departments: List[Department],
    allocations: List[DepartmentAllocation],
    year: int,
    month: int
) -> MonthlyProjection:
    department_data = []
    total_hours = 0.0
    total_cost = 0.0
    total_employees = 0

    for dept in departments:
        dept_allocations = _department_allocations(dept, allocations)
        employee_ids = {a.employee_id for a in dept_allocations}
        dept_employees = [
            e for e in employees
            if e.id in employee_ids and is_employee_active_in_month(e, year, month)
        ]

        dept_hours = 0.0
        dept_cost = 0.0

        for employee in dept_employees:
            allocation = _allocation_for(dept_allocations, employee.id)
            allocation_factor = allocation.allocation_percent / 100
            monthly_hours = calculate_prorated_monthly_hours(employee, year, month)
            loaded_rate = calculate_loaded_cost_per_hour(
                employee.hourly_rate,
                employee.burden_multiplier
            )

            dept_hours += monthly_hours * allocation_factor
            dept_cost += monthly_hours * allocation_factor * loaded_rate

        department_data.append(DepartmentProjection(
            department_id=dept.id,
            department_name=dept.name,
            hours=_round_half_up(dept_hours),
            cost=_round_half_up(dept_cost),
            employee_count=len(dept_employees),
        ))

        total_hours += dept_hours
        total_cost += dept_cost
        total_employees += len(dept_employees)

    return MonthlyProjection(
        month=date(year, month, 1).isoformat(),
        departments=department_data,
        total_hours=_round_half_up(total_hours),
        total_cost=_round_half_up(total_cost),
        total_employees=total_employees,
    )


def generate_monthly_projections(
    employees: List[Employee],
    departments: List[Department],
    allocations: List[DepartmentAllocation],
    months_ahead: int = DEFAULT_PROJECTION_MONTHS,
    start: Optional[date] = None
) -> List[MonthlyProjection]:
    """
    Project workforce hours and loaded cost month by month.

    Starting with the month containing ``start`` (default today), each of
    ``months_ahead`` consecutive months counts the employees allocated to
    each department and active in that month, with prorated hours weighted
    by allocation. Department and grand totals are rounded to whole hours
    and dollars.

    Args:
        employees: Employee records
        departments: Department records, in display order
        allocations: Department allocations for the employees
        months_ahead: Number of months to project
        start: Any date in the first projected month

    Returns:
        List of MonthlyProjection, in increasing calendar order
    """
    start = start or date.today()
    first_month = date(start.year, start.month, 1)

    projections = []
    for i in range(months_ahead):
        target = first_month + relativedelta(months=i)
        projections.append(
            _project_month(employees, departments, allocations, target.year, target.month)
        )

    logger.debug(
        f"Projected {len(projections)} months for {len(employees)} employees "
        f"across {len(departments)} departments"
    )
    return projections


# ==============================================================================
# ALLOCATION VALIDATION
# ==============================================================================

def validate_allocations(allocations: Iterable[DepartmentAllocation]) -> AllocationValidation:
    """
    Check that a set of allocations (normally one employee's) totals 100%.

    An empty total is allowed (unallocated). The result is advisory; the
    projections do not enforce it.
    """
    total = sum(a.allocation_percent for a in allocations)

    if total == 0:
        return AllocationValidation(is_valid=True, total=total, message="No allocations set")

    if abs(total - 100) < ALLOCATION_TOLERANCE:
        return AllocationValidation(is_valid=True, total=100, message="Allocations total 100%")

    logger.debug(f"Allocations total {total}% instead of 100%")
    return AllocationValidation(
        is_valid=False,
        total=total,
        message=f"Allocations total {total:.1f}% (must be 100%)",
    )


# ==============================================================================
# CAPACITY SUMMARY
# ==============================================================================

def calculate_capacity_summary(
    employees: List[Employee],
    departments: List[Department],
    allocations: List[DepartmentAllocation],
    months_ahead: int = DEFAULT_PROJECTION_MONTHS,
    today: Optional[date] = None
) -> Dict[str, Any]:
    """
    Company-wide labor capacity roll-up.

    Averages and annual totals cover currently active employees only.
    Productive capacity sums the annual hours of productive departments.

    Returns:
        Dictionary with headcount, averages, annual totals, department
        summaries and monthly projections
    """
    today = today or date.today()
    active_employees = [e for e in employees if is_employee_currently_active(e, today)]

    total_fte = 0.0
    total_hourly_rate = 0.0
    total_loaded_rate = 0.0
    total_burden = 0.0
    total_annual_cost = 0.0
    total_annual_hours = 0.0

    for employee in active_employees:
        metrics = calculate_employee_metrics(employee, today)
        total_fte += employee.fte
        total_hourly_rate += employee.hourly_rate
        total_loaded_rate += metrics.loaded_cost_per_hour
        total_burden += employee.burden_multiplier
        total_annual_cost += metrics.annual_loaded_cost
        total_annual_hours += metrics.annual_available_hours

    count = len(active_employees)
    department_summaries = [
        calculate_department_summary(dept, employees, allocations, today)
        for dept in departments
    ]
    productive_hours = sum(ds.total_hours for ds in department_summaries if ds.is_productive)

    summary = {
        "total_employees": len(employees),
        "active_employees": count,
        "total_fte": total_fte,
        "average_hourly_rate": total_hourly_rate / count if count > 0 else 0,
        "average_loaded_rate": total_loaded_rate / count if count > 0 else 0,
        "average_burden_multiplier": total_burden / count if count > 0 else 0,
        "total_annual_cost": total_annual_cost,
        "total_annual_hours": total_annual_hours,
        "productive_capacity_hours": productive_hours,
        "departments": department_summaries,
        "monthly_projections": generate_monthly_projections(
            employees, departments, allocations, months_ahead, today
        ),
    }

    logger.debug(f"Capacity summary: {count} of {len(employees)} employees active")
    return summary


def get_month_projection(
    projections: List[MonthlyProjection],
    month: str
) -> Optional[MonthlyProjection]:
    """Find the projection for a month given as YYYY-MM-01."""
    for projection in projections:
        if projection.month == month:
            return projection
    return None


def get_total_cost_for_period(projections: List[MonthlyProjection], months: int) -> int:
    """Total projected cost over the first ``months`` projections."""
    return sum(p.total_cost for p in projections[:months])


def get_department_cost_breakdown(summaries: List[DepartmentSummary]) -> List[Dict[str, Any]]:
    """Each department's share of total annual labor cost."""
    total = sum(d.total_cost for d in summaries)
    return [
        {
            "name": d.department_name,
            "cost": d.total_cost,
            "percent": (d.total_cost / total) * 100 if total > 0 else 0,
        }
        for d in summaries
    ]


def calculate_capacity_for_wip(
    employees: List[Employee],
    departments: List[Department],
    allocations: List[DepartmentAllocation],
    today: Optional[date] = None
) -> Optional[Dict[str, Any]]:
    """
    Productive labor capacity in the shape the WIP schedule heatmap expects.

    Monthly productive hours for the current month are converted to weekly
    hours using an average of 4.33 weeks per month.

    Returns:
        Dictionary with weekly/monthly productive hours, productive FTE and
        a per-department breakdown, or None without employees or departments
    """
    if not employees or not departments:
        return None

    today = today or date.today()
    department_breakdown = []
    total_monthly_hours = 0.0
    total_fte = 0.0

    for dept in departments:
        if not dept.is_productive:
            continue

        dept_allocations = _department_allocations(dept, allocations)
        employee_ids = {a.employee_id for a in dept_allocations}
        dept_employees = [
            e for e in employees
            if e.id in employee_ids and is_employee_currently_active(e, today)
        ]

        dept_monthly_hours = 0.0
        dept_fte = 0.0
        for employee in dept_employees:
            allocation = _allocation_for(dept_allocations, employee.id)
            allocation_factor = allocation.allocation_percent / 100
            monthly_hours = calculate_monthly_available_hours(
                employee.fte,
                employee.annual_pto_hours,
                today.year,
                today.month
            )
            dept_monthly_hours += monthly_hours * allocation_factor
            dept_fte += employee.fte * allocation_factor

        if dept_monthly_hours > 0:
            department_breakdown.append({
                "name": dept.name,
                "weekly_hours": _round_half_up(dept_monthly_hours / WEEKS_PER_MONTH),
                "fte": round(dept_fte, 2),
            })

        total_monthly_hours += dept_monthly_hours
        total_fte += dept_fte

    return {
        "weekly_productive_hours": _round_half_up(total_monthly_hours / WEEKS_PER_MONTH),
        "monthly_productive_hours": _round_half_up(total_monthly_hours),
        "productive_fte": round(total_fte, 2),
        "department_breakdown": department_breakdown,
    }
