"""
Data Layer Package.

This package converts stored records into the engine types.
"""

from .record_adapter import (
    RecordFormatError,
    tm_settings_from_value,
    billing_from_row,
    job_from_row,
    change_order_from_row,
    employee_from_row,
    department_from_row,
    allocation_from_row,
    valuation_from_row
)

__all__ = [
    "RecordFormatError",
    "tm_settings_from_value",
    "billing_from_row",
    "job_from_row",
    "change_order_from_row",
    "employee_from_row",
    "department_from_row",
    "allocation_from_row",
    "valuation_from_row"
]
