"""
Record Adapter Layer.

This module provides a clean interface between the computation engines and the
stored records. Backend rows arrive as snake_case dictionaries with numbers
that may be missing, null or strings; they are converted here into the engine
types so the calculators never see raw storage values.
"""

from typing import Dict, Any, Optional, Union
from datetime import date, datetime
import json
import logging
import math

from dateutil import parser as date_parser

from wip_engines.models import (
    ChangeOrder,
    ChangeOrderStatus,
    CostBreakdown,
    Department,
    DepartmentAllocation,
    Employee,
    FixedPriceBilling,
    Job,
    JobBilling,
    JobStatus,
    JobType,
    LaborBillingType,
    Multiplier,
    TMSettings,
    TimeAndMaterialBilling,
    Valuation,
)
from wip_engines.job_financials_engine import get_default_tm_settings

logger = logging.getLogger(__name__)

# A markup missing from stored settings bills the category at cost
NO_MARKUP = 1.0

TRUE_STRINGS = ("true", "t", "yes", "y", "1")
FALSE_STRINGS = ("false", "f", "no", "n", "0")


class RecordFormatError(ValueError):
    """Raised when a stored record holds a value the engines cannot interpret."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field_name = field_name


# ==============================================================================
# FIELD COERCION
# ==============================================================================

def _to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a stored number; anything missing or non-numeric becomes the default."""
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return number


def _to_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return _to_float(value)


def _to_bool(value: Any, field_name: str, default: bool) -> bool:
    """Read a stored flag, parsing text values such as "false"."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise RecordFormatError(f"Invalid flag for {field_name}: {value!r}", field_name)
    return bool(value)


def _to_markup(value: Any) -> Multiplier:
    return Multiplier(_to_float(value, NO_MARKUP) or NO_MARKUP)


def _to_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError) as e:
        raise RecordFormatError(f"Invalid date for {field_name}: {value!r}", field_name) from e


def _to_date(value: Any, field_name: str) -> Optional[date]:
    parsed = _to_datetime(value, field_name)
    return parsed.date() if parsed else None


def _to_enum(enum_cls, value: Any, field_name: str, default=None):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError as e:
        raise RecordFormatError(f"Unknown {field_name}: {value!r}", field_name) from e


def _breakdown(row: Dict[str, Any], prefix: str) -> CostBreakdown:
    return CostBreakdown(
        labor=_to_float(row.get(f"{prefix}_labor")),
        material=_to_float(row.get(f"{prefix}_material")),
        other=_to_float(row.get(f"{prefix}_other")),
    )


# ==============================================================================
# BILLING
# ==============================================================================

def tm_settings_from_value(value: Union[str, Dict[str, Any], None]) -> TMSettings:
    """
    Build T&M settings from the stored ``tm_settings`` column.

    The column is JSON with camelCase keys (``laborBillingType``,
    ``laborMarkup`` ...); snake_case keys are accepted too. Missing settings
    fall back to the defaults for a new T&M job; a stored object missing a
    markup bills that category at cost (multiplier 1.0).
    """
    if value is None or value == "":
        return get_default_tm_settings()

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise RecordFormatError("tm_settings is not valid JSON", "tm_settings") from e

    if value is None:
        return get_default_tm_settings()
    if not isinstance(value, dict):
        raise RecordFormatError("tm_settings must be an object", "tm_settings")

    def pick(camel: str, snake: str) -> Any:
        return value.get(camel, value.get(snake))

    return TMSettings(
        labor_billing_type=_to_enum(
            LaborBillingType,
            pick("laborBillingType", "labor_billing_type"),
            "labor billing type",
            LaborBillingType.MARKUP,
        ),
        labor_markup=_to_markup(pick("laborMarkup", "labor_markup")),
        material_markup=_to_markup(pick("materialMarkup", "material_markup")),
        other_markup=_to_markup(pick("otherMarkup", "other_markup")),
        labor_bill_rate=_to_optional_float(pick("laborBillRate", "labor_bill_rate")),
        labor_hours=_to_optional_float(pick("laborHours", "labor_hours")),
    )


def billing_from_row(row: Dict[str, Any], type_field: str = "job_type") -> JobBilling:
    """Pick the billing variant from a job or change order row."""
    job_type = _to_enum(JobType, row.get(type_field), "job type", JobType.FIXED_PRICE)

    if job_type == JobType.TIME_MATERIAL:
        return TimeAndMaterialBilling(tm_settings=tm_settings_from_value(row.get("tm_settings")))

    return FixedPriceBilling(
        target_profit=_to_optional_float(row.get("target_profit")),
        target_margin=_to_optional_float(row.get("target_margin")),
    )


# ==============================================================================
# RECORDS
# ==============================================================================

def job_from_row(row: Dict[str, Any]) -> Job:
    """
    Convert a stored job row to a Job.

    Args:
        row: Job row with flattened ``<field>_labor/_material/_other`` columns

    Returns:
        Job ready for the calculators

    Raises:
        RecordFormatError: On an unknown status or job type, or a bad date
    """
    return Job(
        id=str(row.get("id") or ""),
        job_no=str(row.get("job_no") or ""),
        job_name=row.get("job_name") or "",
        client=row.get("client") or "",
        status=_to_enum(JobStatus, row.get("status"), "job status", JobStatus.ACTIVE),
        contract=_breakdown(row, "contract"),
        budget=_breakdown(row, "budget"),
        costs=_breakdown(row, "cost"),
        invoiced=_breakdown(row, "invoiced"),
        cost_to_complete=_breakdown(row, "cost_to_complete"),
        billing=billing_from_row(row),
        project_manager=row.get("project_manager") or "",
        estimator=row.get("estimator") or "",
        start_date=_to_date(row.get("start_date"), "start_date"),
        end_date=_to_date(row.get("end_date"), "end_date"),
        as_of_date=_to_date(row.get("as_of_date"), "as_of_date"),
        last_updated=_to_datetime(row.get("last_updated"), "last_updated"),
    )


def change_order_from_row(row: Dict[str, Any]) -> ChangeOrder:
    """Convert a stored change order row; ``co_type`` selects the billing variant."""
    return ChangeOrder(
        id=str(row.get("id") or ""),
        job_id=str(row.get("job_id") or ""),
        co_number=int(_to_float(row.get("co_number"))),
        description=row.get("description") or "",
        status=_to_enum(
            ChangeOrderStatus,
            row.get("status"),
            "change order status",
            ChangeOrderStatus.PENDING,
        ),
        contract=_breakdown(row, "contract"),
        budget=_breakdown(row, "budget"),
        costs=_breakdown(row, "cost"),
        invoiced=_breakdown(row, "invoiced"),
        cost_to_complete=_breakdown(row, "cost_to_complete"),
        billing=billing_from_row(row, type_field="co_type"),
        submitted_date=_to_datetime(row.get("submitted_date"), "submitted_date"),
        approved_date=_to_datetime(row.get("approved_date"), "approved_date"),
        completed_date=_to_datetime(row.get("completed_date"), "completed_date"),
    )


def employee_from_row(row: Dict[str, Any]) -> Employee:
    """Convert a stored employee row, applying the company defaults for blanks."""
    defaults = Employee()

    return Employee(
        id=str(row.get("id") or ""),
        name=row.get("name") or "",
        role=row.get("role"),
        fte=_to_float(row.get("fte"), defaults.fte),
        hourly_rate=_to_float(row.get("hourly_rate")),
        burden_multiplier=_to_float(row.get("burden_multiplier"), defaults.burden_multiplier),
        annual_pto_hours=_to_float(row.get("annual_pto_hours"), defaults.annual_pto_hours),
        hire_date=_to_date(row.get("hire_date"), "hire_date"),
        termination_date=_to_date(row.get("termination_date"), "termination_date"),
        utilization_target=_to_float(row.get("utilization_target"), defaults.utilization_target),
        is_active=_to_bool(row.get("is_active"), "is_active", True),
    )


def department_from_row(row: Dict[str, Any]) -> Department:
    return Department(
        id=str(row.get("id") or ""),
        name=row.get("name") or "",
        is_productive=_to_bool(row.get("is_productive"), "is_productive", True),
        sort_order=int(_to_float(row.get("sort_order"))),
    )


def allocation_from_row(row: Dict[str, Any]) -> DepartmentAllocation:
    return DepartmentAllocation(
        employee_id=str(row.get("employee_id") or ""),
        department_id=str(row.get("department_id") or ""),
        allocation_percent=_to_float(row.get("allocation_percent")),
    )


def valuation_from_row(row: Dict[str, Any]) -> Valuation:
    """Convert a stored valuation scenario; a blank multiple falls back to 3.0."""
    defaults = Valuation()
    return Valuation(
        id=str(row.get("id") or ""),
        name=row.get("name") or "",
        annual_revenue=_to_float(row.get("annual_revenue")),
        net_profit=_to_float(row.get("net_profit")),
        owner_compensation=_to_float(row.get("owner_compensation")),
        depreciation=_to_float(row.get("depreciation")),
        interest_expense=_to_float(row.get("interest_expense")),
        taxes=_to_float(row.get("taxes")),
        other_addbacks=_to_float(row.get("other_addbacks")),
        multiple=_to_float(row.get("multiple"), defaults.multiple),
        is_current=_to_bool(row.get("is_current"), "is_current", False),
    )
