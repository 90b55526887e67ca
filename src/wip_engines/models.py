"""
Shared Data Structures for the WIP calculation engines.

This module defines the records the calculators consume (jobs, change
orders, employees, departments, allocations, valuations) and the result
shapes they return. Records carry raw inputs only; every derived figure is
computed on read by the engines.
"""

from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import (
    DEFAULT_TM_MARKUPS,
    DEFAULT_BURDEN_MULTIPLIER,
    DEFAULT_UTILIZATION_TARGET,
    DEFAULT_ANNUAL_PTO_HOURS,
    DEFAULT_FTE,
    DEFAULT_MULTIPLE,
)


# ==============================================================================
# ENUMS
# ==============================================================================

class JobType(Enum):
    """How a job (or change order) is billed."""
    FIXED_PRICE = "fixed-price"
    TIME_MATERIAL = "time-material"


class LaborBillingType(Enum):
    """How labor is billed on a Time & Material job."""
    FIXED_RATE = "fixed-rate"
    MARKUP = "markup"


class JobStatus(Enum):
    """Job lifecycle status."""
    DRAFT = "Draft"
    FUTURE = "Future"
    ACTIVE = "Active"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    ARCHIVED = "Archived"


class ChangeOrderStatus(Enum):
    """Change order approval status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class RiskLevel(Enum):
    """Under-billing risk of a job; NONE when there is no contract to measure against."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    NONE = "None"


# ==============================================================================
# UNITS
# ==============================================================================

class Multiplier(float):
    """
    A markup expressed as a multiplier, e.g. ``Multiplier(1.5)`` is a 50% markup.

    Forms display markups as percentages; storage and the calculators work
    in multipliers. Use the conversion helpers rather than mixing the two.
    """

    @classmethod
    def from_percent(cls, percent: float) -> "Multiplier":
        return cls(1 + percent / 100)

    def to_percent(self) -> float:
        return (float(self) - 1) * 100

    def __repr__(self) -> str:
        return f"Multiplier({float(self)!r})"


def markup_to_percent(markup: float) -> float:
    """Convert a stored multiplier to the percent shown in forms (1.15 -> 15)."""
    return Multiplier(markup).to_percent()


def percent_to_markup(percent: float) -> Multiplier:
    """Convert a percent entered in a form to a stored multiplier (15 -> 1.15)."""
    return Multiplier.from_percent(percent)


# ==============================================================================
# COST BREAKDOWN
# ==============================================================================

@dataclass
class CostBreakdown:
    """Three-category split of money: labor, material and other."""
    labor: float = 0.0
    material: float = 0.0
    other: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def sum_breakdown(breakdown: CostBreakdown) -> float:
    """Sum all components of a cost breakdown."""
    return breakdown.labor + breakdown.material + breakdown.other


def add_breakdowns(a: CostBreakdown, b: CostBreakdown) -> CostBreakdown:
    """Add two cost breakdowns component by component."""
    return CostBreakdown(
        labor=a.labor + b.labor,
        material=a.material + b.material,
        other=a.other + b.other,
    )


# ==============================================================================
# JOB BILLING
# ==============================================================================

@dataclass
class TMSettings:
    """
    Time & Material billing settings.

    With ``FIXED_RATE`` labor billing, ``labor_bill_rate`` and ``labor_hours``
    govern labor revenue and ``labor_markup`` is ignored. With ``MARKUP`` the
    reverse applies.
    """
    labor_billing_type: LaborBillingType = LaborBillingType.MARKUP
    labor_markup: Multiplier = Multiplier(DEFAULT_TM_MARKUPS["labor"])
    material_markup: Multiplier = Multiplier(DEFAULT_TM_MARKUPS["material"])
    other_markup: Multiplier = Multiplier(DEFAULT_TM_MARKUPS["other"])
    labor_bill_rate: Optional[float] = None
    labor_hours: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "labor_billing_type": self.labor_billing_type.value,
            "labor_bill_rate": self.labor_bill_rate,
            "labor_hours": self.labor_hours,
            "labor_markup": float(self.labor_markup),
            "material_markup": float(self.material_markup),
            "other_markup": float(self.other_markup),
        }


@dataclass
class FixedPriceBilling:
    """Billing terms of a fixed-price job."""
    target_profit: Optional[float] = None
    target_margin: Optional[float] = None


@dataclass
class TimeAndMaterialBilling:
    """Billing terms of a Time & Material job; settings are always present."""
    tm_settings: TMSettings = field(default_factory=TMSettings)


JobBilling = Union[FixedPriceBilling, TimeAndMaterialBilling]


def billing_job_type(billing: JobBilling) -> JobType:
    """Return the job type implied by a billing variant."""
    if isinstance(billing, TimeAndMaterialBilling):
        return JobType.TIME_MATERIAL
    return JobType.FIXED_PRICE


# ==============================================================================
# JOBS AND CHANGE ORDERS
# ==============================================================================

@dataclass
class Job:
    """A unit of cost accounting on the WIP schedule."""
    id: str = ""
    job_no: str = ""
    job_name: str = ""
    client: str = ""
    status: JobStatus = JobStatus.ACTIVE
    contract: CostBreakdown = field(default_factory=CostBreakdown)
    budget: CostBreakdown = field(default_factory=CostBreakdown)
    costs: CostBreakdown = field(default_factory=CostBreakdown)
    invoiced: CostBreakdown = field(default_factory=CostBreakdown)
    cost_to_complete: CostBreakdown = field(default_factory=CostBreakdown)
    billing: JobBilling = field(default_factory=FixedPriceBilling)
    project_manager: str = ""
    estimator: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    as_of_date: Optional[date] = None
    last_updated: Optional[datetime] = None

    @property
    def job_type(self) -> JobType:
        return billing_job_type(self.billing)

    @property
    def is_time_material(self) -> bool:
        return isinstance(self.billing, TimeAndMaterialBilling)


@dataclass
class ChangeOrder:
    """A change order against a job, billed independently of its parent."""
    id: str = ""
    job_id: str = ""
    co_number: int = 0
    description: str = ""
    status: ChangeOrderStatus = ChangeOrderStatus.PENDING
    contract: CostBreakdown = field(default_factory=CostBreakdown)
    budget: CostBreakdown = field(default_factory=CostBreakdown)
    costs: CostBreakdown = field(default_factory=CostBreakdown)
    invoiced: CostBreakdown = field(default_factory=CostBreakdown)
    cost_to_complete: CostBreakdown = field(default_factory=CostBreakdown)
    billing: JobBilling = field(default_factory=FixedPriceBilling)
    submitted_date: Optional[datetime] = None
    approved_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None

    @property
    def co_type(self) -> JobType:
        return billing_job_type(self.billing)


# ==============================================================================
# LABOR CAPACITY RECORDS
# ==============================================================================

@dataclass
class Employee:
    """
    A member of the workforce.

    The active window runs from ``hire_date`` through ``termination_date``,
    both boundary months included with day-level proration. ``is_active``
    set to False excludes the employee from every aggregate.
    """
    id: str = ""
    name: str = ""
    role: Optional[str] = None
    fte: float = DEFAULT_FTE
    hourly_rate: float = 0.0
    burden_multiplier: float = DEFAULT_BURDEN_MULTIPLIER
    annual_pto_hours: float = DEFAULT_ANNUAL_PTO_HOURS
    hire_date: Optional[date] = None
    termination_date: Optional[date] = None
    utilization_target: float = DEFAULT_UTILIZATION_TARGET
    is_active: bool = True


@dataclass
class Department:
    """A department; productive departments count toward productive capacity."""
    id: str = ""
    name: str = ""
    is_productive: bool = True
    sort_order: int = 0


@dataclass
class DepartmentAllocation:
    """Share of an employee's time attributed to a department (60 = 60%)."""
    employee_id: str = ""
    department_id: str = ""
    allocation_percent: float = 0.0


# ==============================================================================
# VALUATION RECORDS
# ==============================================================================

@dataclass
class Valuation:
    """A business valuation scenario."""
    id: str = ""
    name: str = ""
    annual_revenue: float = 0.0
    net_profit: float = 0.0
    owner_compensation: float = 0.0
    depreciation: float = 0.0
    interest_expense: float = 0.0
    taxes: float = 0.0
    other_addbacks: float = 0.0
    multiple: float = DEFAULT_MULTIPLE
    is_current: bool = False

    @property
    def adjusted_ebitda(self) -> float:
        return (
            self.net_profit
            + self.owner_compensation
            + self.depreciation
            + self.interest_expense
            + self.taxes
            + self.other_addbacks
        )

    @property
    def business_value(self) -> float:
        return self.adjusted_ebitda * self.multiple


@dataclass
class ValueHistoryRecord:
    """A dated snapshot of business value used for trend lines."""
    recorded_at: date
    business_value: float
    adjusted_ebitda: float = 0.0
    multiple: float = 0.0


# ==============================================================================
# RESULT SHAPES
# ==============================================================================

@dataclass(frozen=True)
class EarnedRevenue:
    labor: float
    material: float
    other: float
    total: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class BillingDifference:
    difference: float
    is_over_billed: bool
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EmployeeMetrics:
    loaded_cost_per_hour: float
    annual_available_hours: float
    annual_loaded_cost: float
    monthly_available_hours: float
    monthly_loaded_cost: float
    billable_hours: float
    years_of_service: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class DepartmentSummary:
    department_id: str
    department_name: str
    is_productive: bool
    employee_count: int
    total_fte: float
    total_hours: float
    total_cost: float
    average_loaded_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DepartmentProjection:
    department_id: str
    department_name: str
    hours: int
    cost: int
    employee_count: int


@dataclass(frozen=True)
class MonthlyProjection:
    month: str  # YYYY-MM-DD, first of month
    departments: List[DepartmentProjection]
    total_hours: int
    total_cost: int
    total_employees: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AllocationValidation:
    is_valid: bool
    total: float
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValuationResults:
    adjusted_ebitda: float
    business_value: float
    ebitda_margin: float
    value_to_revenue: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ScenarioComparisonRow:
    field: str
    label: str
    values: List[float]
    min: float
    max: float
    delta: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class JobRiskAnalysis:
    underbilling_risk: RiskLevel
    schedule_drift_weeks: int
    margin_fade_percent: float
    is_margin_fading: bool

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["underbilling_risk"] = self.underbilling_risk.value
        return result


@dataclass(frozen=True)
class ValueDriverScore:
    category: str
    score: float  # weighted average answer, -2 to +2
    weight: float  # category share of the multiple adjustment
    impact: float  # turns of multiple this category adds or removes

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
