"""
Computation Engines Package.

This package contains all pure Python computation modules for WIP reporting,
labor capacity planning and business valuation.
These modules are independent of storage and transport.
"""

from .models import (
    JobType,
    LaborBillingType,
    JobStatus,
    ChangeOrderStatus,
    RiskLevel,
    Multiplier,
    CostBreakdown,
    TMSettings,
    FixedPriceBilling,
    TimeAndMaterialBilling,
    Job,
    ChangeOrder,
    Employee,
    Department,
    DepartmentAllocation,
    Valuation,
    ValueHistoryRecord,
    JobRiskAnalysis,
    ValueDriverScore,
    sum_breakdown,
    add_breakdowns,
    markup_to_percent,
    percent_to_markup
)

from .job_financials_engine import (
    get_default_tm_settings,
    calculate_earned_revenue,
    calculate_billing_difference,
    calculate_forecasted_profit,
    calculate_percent_complete,
    calculate_original_profit,
    calculate_forecasted_margin,
    calculate_job_financials
)

from .labor_capacity_engine import (
    get_default_departments,
    calculate_loaded_cost_per_hour,
    calculate_annual_available_hours,
    calculate_annual_loaded_cost,
    calculate_years_of_service,
    get_working_days_in_month,
    calculate_monthly_available_hours,
    is_employee_currently_active,
    is_employee_active_in_month,
    calculate_prorated_monthly_hours,
    calculate_employee_metrics,
    calculate_department_summary,
    generate_monthly_projections,
    validate_allocations,
    calculate_capacity_summary,
    get_month_projection,
    get_total_cost_for_period,
    get_department_cost_breakdown,
    calculate_capacity_for_wip
)

from .valuation_engine import (
    calculate_adjusted_ebitda,
    calculate_business_value,
    calculate_valuation,
    compare_scenarios,
    calculate_delta,
    calculate_value_growth,
    get_suggested_multiple,
    get_multiple_description,
    calculate_value_driver_scores,
    calculate_adjusted_multiple_range,
    calculate_overall_score,
    identify_strengths_and_weaknesses,
    get_category_name
)

from .risk_engine import (
    calculate_underbilling_risk,
    calculate_schedule_drift,
    calculate_margin_fade,
    analyze_job_risk
)

from .change_order_engine import (
    approved_change_orders,
    sum_approved_change_orders,
    get_job_totals_with_change_orders,
    calculate_forecasted_profit_with_change_orders,
    count_change_orders_by_status,
    apply_status_change,
    get_next_co_number
)

from .context_engine import (
    DataSharingSettings,
    calculate_billing_position,
    build_job_summary,
    build_company_context
)

from .export_engine import (
    JOB_EXPORT_COLUMNS,
    job_to_row,
    jobs_to_frame,
    jobs_to_csv,
    projections_to_frame
)

__all__ = [
    # Models
    "JobType",
    "LaborBillingType",
    "JobStatus",
    "ChangeOrderStatus",
    "RiskLevel",
    "Multiplier",
    "CostBreakdown",
    "TMSettings",
    "FixedPriceBilling",
    "TimeAndMaterialBilling",
    "Job",
    "ChangeOrder",
    "Employee",
    "Department",
    "DepartmentAllocation",
    "Valuation",
    "ValueHistoryRecord",
    "JobRiskAnalysis",
    "ValueDriverScore",
    "sum_breakdown",
    "add_breakdowns",
    "markup_to_percent",
    "percent_to_markup",

    # Job Financials
    "get_default_tm_settings",
    "calculate_earned_revenue",
    "calculate_billing_difference",
    "calculate_forecasted_profit",
    "calculate_percent_complete",
    "calculate_original_profit",
    "calculate_forecasted_margin",
    "calculate_job_financials",

    # Labor Capacity
    "get_default_departments",
    "calculate_loaded_cost_per_hour",
    "calculate_annual_available_hours",
    "calculate_annual_loaded_cost",
    "calculate_years_of_service",
    "get_working_days_in_month",
    "calculate_monthly_available_hours",
    "is_employee_currently_active",
    "is_employee_active_in_month",
    "calculate_prorated_monthly_hours",
    "calculate_employee_metrics",
    "calculate_department_summary",
    "generate_monthly_projections",
    "validate_allocations",
    "calculate_capacity_summary",
    "get_month_projection",
    "get_total_cost_for_period",
    "get_department_cost_breakdown",
    "calculate_capacity_for_wip",

    # Valuation
    "calculate_adjusted_ebitda",
    "calculate_business_value",
    "calculate_valuation",
    "compare_scenarios",
    "calculate_delta",
    "calculate_value_growth",
    "get_suggested_multiple",
    "get_multiple_description",
    "calculate_value_driver_scores",
    "calculate_adjusted_multiple_range",
    "calculate_overall_score",
    "identify_strengths_and_weaknesses",
    "get_category_name",

    # Job Risk
    "calculate_underbilling_risk",
    "calculate_schedule_drift",
    "calculate_margin_fade",
    "analyze_job_risk",

    # Change Orders
    "approved_change_orders",
    "sum_approved_change_orders",
    "get_job_totals_with_change_orders",
    "calculate_forecasted_profit_with_change_orders",
    "count_change_orders_by_status",
    "apply_status_change",
    "get_next_co_number",

    # Assistant Context
    "DataSharingSettings",
    "calculate_billing_position",
    "build_job_summary",
    "build_company_context",

    # Export
    "JOB_EXPORT_COLUMNS",
    "job_to_row",
    "jobs_to_frame",
    "jobs_to_csv",
    "projections_to_frame"
]
