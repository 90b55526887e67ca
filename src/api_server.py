import logging
from datetime import date
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from config import API_HOST, API_PORT, LOG_LEVEL, LOG_FORMAT, DEFAULT_PROJECTION_MONTHS
from wip_engines import (
    calculate_job_financials,
    calculate_capacity_summary,
    calculate_capacity_for_wip,
    validate_allocations,
    calculate_valuation,
    compare_scenarios,
    get_suggested_multiple,
    get_multiple_description,
    calculate_value_driver_scores,
    calculate_adjusted_multiple_range,
    calculate_overall_score,
    identify_strengths_and_weaknesses,
    analyze_job_risk,
    jobs_to_csv,
)
from wip_data import (
    RecordFormatError,
    job_from_row,
    employee_from_row,
    department_from_row,
    allocation_from_row,
    valuation_from_row,
)

# CONFIGURATION
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class JobsRequest(BaseModel):
    """Schema for a batch of stored job rows."""
    jobs: List[Row]


class CapacityRequest(BaseModel):
    """Schema for a labor capacity projection request."""
    employees: List[Row] = Field(default_factory=list)
    departments: List[Row] = Field(default_factory=list)
    allocations: List[Row] = Field(default_factory=list)
    months_ahead: int = Field(DEFAULT_PROJECTION_MONTHS, ge=1, le=120)
    today: Optional[date] = None


class AllocationsRequest(BaseModel):
    allocations: List[Row]


class ValuationsRequest(BaseModel):
    valuations: List[Row]


class ValueDriversRequest(BaseModel):
    """Schema for questionnaire answers, each scored -2 to +2."""
    answers: Dict[str, float] = Field(default_factory=dict)
    annual_revenue: float = 0


app = FastAPI(
    title="WIP Insights Calculation API",
    version="1.0.0",
    description="Job financials, labor capacity projections and business valuation.",
)


def _convert(converter, rows: List[Row]) -> list:
    """Convert stored rows, reporting bad records as 422."""
    try:
        return [converter(row) for row in rows]
    except RecordFormatError as e:
        logger.warning(f"Rejected record: {e.message}")
        raise HTTPException(status_code=422, detail=e.message)


@app.get("/health")
def health_check():
    """Endpoint to check if the server is running."""
    return {"status": "ok"}


@app.post("/jobs/financials")
def job_financials(row: Row):
    """Earned revenue, billing position, profit and progress for one job."""
    job = _convert(job_from_row, [row])[0]
    return calculate_job_financials(job)


@app.post("/jobs/risk")
def job_risk(row: Row, today: Optional[date] = None):
    """Under-billing risk, schedule drift and margin fade for one job."""
    job = _convert(job_from_row, [row])[0]
    return analyze_job_risk(job, today).to_dict()


@app.post("/jobs/export", response_class=PlainTextResponse)
def export_jobs(request: JobsRequest):
    """WIP report as CSV text."""
    jobs = _convert(job_from_row, request.jobs)
    logger.info(f"Exporting {len(jobs)} jobs")
    return PlainTextResponse(jobs_to_csv(jobs), media_type="text/csv")


@app.post("/labor/projections")
def labor_projections(request: CapacityRequest):
    """
    Capacity summary with monthly projections, plus the productive capacity
    figures used on the WIP schedule.
    """
    employees = _convert(employee_from_row, request.employees)
    departments = _convert(department_from_row, request.departments)
    allocations = _convert(allocation_from_row, request.allocations)
    today = request.today or date.today()

    summary = calculate_capacity_summary(
        employees, departments, allocations, request.months_ahead, today
    )
    summary["departments"] = [d.to_dict() for d in summary["departments"]]
    summary["monthly_projections"] = [p.to_dict() for p in summary["monthly_projections"]]
    summary["wip_capacity"] = calculate_capacity_for_wip(employees, departments, allocations, today)
    return summary


@app.post("/labor/allocations/validate")
def validate_employee_allocations(request: AllocationsRequest):
    allocations = _convert(allocation_from_row, request.allocations)
    return validate_allocations(allocations).to_dict()


@app.post("/valuations/calculate")
def valuation_results(row: Row):
    """Adjusted EBITDA, business value and margins for one scenario."""
    valuation = _convert(valuation_from_row, [row])[0]
    results = calculate_valuation(valuation).to_dict()
    results["suggested_multiple"] = get_suggested_multiple(valuation.annual_revenue)
    results["multiple_description"] = get_multiple_description(valuation.multiple)
    return results


@app.post("/valuations/compare")
def valuation_comparison(request: ValuationsRequest):
    valuations = _convert(valuation_from_row, request.valuations)
    if len(valuations) < 2:
        raise HTTPException(status_code=400, detail="At least two scenarios are required")
    return [row.to_dict() for row in compare_scenarios(valuations)]


@app.post("/valuations/drivers")
def value_drivers(request: ValueDriversRequest):
    """
    Value driver scores and the suggested multiple range adjusted by them.
    """
    scores = calculate_value_driver_scores(request.answers)
    base_range = get_suggested_multiple(request.annual_revenue)
    return {
        "scores": [s.to_dict() for s in scores],
        "overall_score": calculate_overall_score(request.answers),
        "base_range": base_range,
        "adjusted_range": calculate_adjusted_multiple_range(base_range, request.answers),
        **identify_strengths_and_weaknesses(scores),
    }


if __name__ == "__main__":
    logger.info(f"Starting WIP Insights API on {API_HOST}:{API_PORT}")
    uvicorn.run(app, host=API_HOST, port=API_PORT)
