"""
Business Valuation Engine ("Value Builder").

This module normalizes earnings into adjusted EBITDA, applies a valuation
multiple, and compares valuation scenarios side by side. Questionnaire
answers about the business are scored into value drivers that move the
suggested multiple range up or down.
"""

from typing import List, Dict, Any, Optional, Tuple
import logging

from dateutil.relativedelta import relativedelta

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import (
    MULTIPLE_RANGES,
    VALUE_DRIVER_CATEGORY_WEIGHTS,
    VALUE_DRIVER_IMPACT_FACTOR,
    MULTIPLE_ADJUSTMENT_LIMIT,
    MULTIPLE_FLOORS,
)

from .models import (
    Valuation,
    ValuationResults,
    ValueHistoryRecord,
    ScenarioComparisonRow,
    ValueDriverScore,
)

logger = logging.getLogger(__name__)


# Metrics shown in the scenario comparison, in display order
COMPARISON_FIELDS = [
    ("annual_revenue", "Annual Revenue"),
    ("net_profit", "Net Profit"),
    ("owner_compensation", "Owner Compensation"),
    ("depreciation", "Depreciation"),
    ("interest_expense", "Interest Expense"),
    ("taxes", "Taxes"),
    ("other_addbacks", "Other Add-backs"),
    ("adjusted_ebitda", "Adjusted EBITDA"),
    ("multiple", "Multiple"),
    ("business_value", "Business Value"),
]


# ==============================================================================
# VALUATION
# ==============================================================================

def calculate_adjusted_ebitda(inputs: Valuation) -> float:
    """
    Adjusted EBITDA = net profit + owner compensation + depreciation
                      + interest expense + taxes + other add-backs
    """
    return (
        inputs.net_profit
        + inputs.owner_compensation
        + inputs.depreciation
        + inputs.interest_expense
        + inputs.taxes
        + inputs.other_addbacks
    )


def calculate_business_value(adjusted_ebitda: float, multiple: float) -> float:
    """Business value = adjusted EBITDA x multiple."""
    return adjusted_ebitda * multiple


def calculate_valuation(inputs: Valuation) -> ValuationResults:
    """
    Calculate all valuation results.

    Margins against revenue are 0 when revenue is not positive.

    Example:
        >>> results = calculate_valuation(Valuation(
        ...     net_profit=200000, owner_compensation=80000, depreciation=20000,
        ...     interest_expense=10000, taxes=15000, other_addbacks=5000,
        ...     multiple=3.5))
        >>> results.adjusted_ebitda, results.business_value
        (330000, 1155000.0)
    """
    adjusted_ebitda = calculate_adjusted_ebitda(inputs)
    business_value = calculate_business_value(adjusted_ebitda, inputs.multiple)

    if inputs.annual_revenue > 0:
        ebitda_margin = (adjusted_ebitda / inputs.annual_revenue) * 100
        value_to_revenue = (business_value / inputs.annual_revenue) * 100
    else:
        ebitda_margin = 0
        value_to_revenue = 0

    return ValuationResults(
        adjusted_ebitda=adjusted_ebitda,
        business_value=business_value,
        ebitda_margin=ebitda_margin,
        value_to_revenue=value_to_revenue,
    )


# ==============================================================================
# SCENARIO COMPARISON
# ==============================================================================

def compare_scenarios(valuations: List[Valuation]) -> List[ScenarioComparisonRow]:
    """
    Build a row-per-metric comparison of valuation scenarios.

    With exactly two scenarios the delta is first minus second; with more
    it is the spread between the highest and lowest value.

    Args:
        valuations: Scenarios in display order

    Returns:
        One ScenarioComparisonRow per metric, or an empty list for fewer
        than two scenarios
    """
    if len(valuations) < 2:
        return []

    rows = []
    for key, label in COMPARISON_FIELDS:
        values = [float(getattr(v, key)) for v in valuations]
        highest = max(values)
        lowest = min(values)
        delta = values[0] - values[1] if len(values) == 2 else highest - lowest

        rows.append(ScenarioComparisonRow(
            field=key,
            label=label,
            values=values,
            min=lowest,
            max=highest,
            delta=delta,
        ))

    logger.debug(f"Compared {len(valuations)} valuation scenarios")
    return rows


# ==============================================================================
# VALUE TRENDS
# ==============================================================================

def calculate_delta(current: float, previous: float) -> Dict[str, float]:
    """Change between two values; the percent is 0 when previous is not positive."""
    amount = current - previous
    percent = (amount / previous) * 100 if previous > 0 else 0
    return {"amount": amount, "percent": percent}


def calculate_value_growth(
    history: List[ValueHistoryRecord],
    period_months: int = 12
) -> Optional[Dict[str, Any]]:
    """
    Growth in business value over a trailing period.

    Compares the latest record with the most recent record at least
    ``period_months`` older, or with the oldest record when none is that old.

    Returns:
        Dictionary with amount, percent and period label, or None with
        fewer than two records
    """
    if len(history) < 2:
        return None

    ordered = sorted(history, key=lambda r: r.recorded_at, reverse=True)
    latest = ordered[0]
    cutoff = latest.recorded_at - relativedelta(months=period_months)

    baseline = next((r for r in ordered if r.recorded_at <= cutoff), ordered[-1])
    if baseline is latest:
        return None

    growth = calculate_delta(latest.business_value, baseline.business_value)
    growth["period"] = f"{period_months}mo"
    return growth


# ==============================================================================
# MULTIPLE GUIDANCE
# ==============================================================================

def get_suggested_multiple(annual_revenue: float) -> Dict[str, Any]:
    """Suggested low/mid/high multiple for a company of this revenue."""
    for band in MULTIPLE_RANGES:
        upper = band["max_revenue"]
        if band["min_revenue"] <= annual_revenue and (upper is None or annual_revenue < upper):
            return dict(band)
    return dict(MULTIPLE_RANGES[0])


def get_multiple_description(multiple: float) -> str:
    """Describe the kind of company a multiple typically reflects."""
    if multiple < 2.5:
        return "Small company, project-based work"
    if multiple < 3.5:
        return "Growing company, good systems"
    if multiple < 4.5:
        return "Established, repeat customers"
    if multiple < 5.5:
        return "Market leader, diversified revenue"
    return "Premium brand, exceptional growth"


# ==============================================================================
# VALUE DRIVERS
# ==============================================================================

# Questionnaire questions: id -> (category, weight within the category)
VALUE_DRIVER_QUESTIONS: Dict[str, Tuple[str, float]] = {
    "financial_margin": ("financial", 0.3),
    "financial_growth": ("financial", 0.25),
    "financial_records": ("financial", 0.15),
    "financial_consistency": ("financial", 0.3),
    "owner_involvement": ("owner_dependency", 0.3),
    "management_team": ("owner_dependency", 0.4),
    "documented_processes": ("owner_dependency", 0.3),
    "recurring_revenue": ("revenue_predictability", 0.3),
    "backlog_visibility": ("revenue_predictability", 0.25),
    "contract_types": ("revenue_predictability", 0.2),
    "seasonality": ("revenue_predictability", 0.25),
    "competitive_advantage": ("market_position", 0.3),
    "brand_recognition": ("market_position", 0.25),
    "market_growth": ("market_position", 0.25),
    "niche_specialization": ("market_position", 0.2),
    "technology_systems": ("operational_systems", 0.3),
    "quality_control": ("operational_systems", 0.25),
    "project_management": ("operational_systems", 0.25),
    "scalability": ("operational_systems", 0.2),
    "customer_diversification": ("customer_concentration", 1.0),
    "project_size": ("project_portfolio", 0.3),
    "project_diversification": ("project_portfolio", 0.3),
    "geographic_diversification": ("project_portfolio", 0.4),
    "succession_planning": ("management_depth", 0.4),
    "key_person_risk": ("management_depth", 0.6),
    "payment_cycles": ("cash_flow", 0.4),
    "working_capital": ("cash_flow", 0.6),
    "safety_record": ("safety_compliance", 0.5),
    "bonding_capacity": ("safety_compliance", 0.5),
}

CATEGORY_NAMES = {
    "financial": "Financial Performance",
    "owner_dependency": "Owner Dependency",
    "revenue_predictability": "Revenue Predictability",
    "market_position": "Market Position",
    "operational_systems": "Operational Systems",
    "customer_concentration": "Customer Concentration",
    "project_portfolio": "Project Portfolio",
    "management_depth": "Management Depth",
    "cash_flow": "Cash Flow",
    "safety_compliance": "Safety & Compliance",
}


def calculate_value_driver_scores(answers: Dict[str, float]) -> List[ValueDriverScore]:
    """
    Score each value driver category from questionnaire answers.

    A category's score is the weighted average of its answered questions
    (-2 to +2); unanswered questions are left out of the average and a
    category with no answers scores 0. Impact is the score scaled by the
    category weight and halved, in turns of multiple.

    Args:
        answers: Question id to answer value; unknown ids are ignored

    Returns:
        One ValueDriverScore per category, in category weight order

    Example:
        >>> scores = calculate_value_driver_scores({"customer_diversification": 2})
        >>> [s.impact for s in scores if s.category == "customer_concentration"]
        [0.08]
    """
    totals = {category: [0.0, 0.0] for category in VALUE_DRIVER_CATEGORY_WEIGHTS}

    for question_id, (category, weight) in VALUE_DRIVER_QUESTIONS.items():
        answer = answers.get(question_id)
        if answer is None:
            continue
        totals[category][0] += answer * weight
        totals[category][1] += weight

    scores = []
    for category, category_weight in VALUE_DRIVER_CATEGORY_WEIGHTS.items():
        total_score, total_weight = totals[category]
        score = total_score / total_weight if total_weight > 0 else 0
        scores.append(ValueDriverScore(
            category=category,
            score=score,
            weight=category_weight,
            impact=score * category_weight * VALUE_DRIVER_IMPACT_FACTOR,
        ))

    return scores


def calculate_adjusted_multiple_range(
    base_range: Dict[str, Any],
    answers: Dict[str, float]
) -> Dict[str, float]:
    """
    Shift a low/mid/high multiple range by the total value driver impact.

    The adjustment is limited to +/-1.5 turns and the adjusted range never
    drops below 1.0x / 1.5x / 2.0x.

    Args:
        base_range: Range with ``low``, ``mid`` and ``high`` multiples, such
            as a band from get_suggested_multiple
        answers: Questionnaire answers by question id

    Returns:
        Dictionary with adjusted low, mid, high and the adjustment applied
    """
    impact = sum(s.impact for s in calculate_value_driver_scores(answers))
    adjustment = max(-MULTIPLE_ADJUSTMENT_LIMIT, min(MULTIPLE_ADJUSTMENT_LIMIT, impact))

    adjusted = {
        key: max(floor, base_range[key] + adjustment)
        for key, floor in MULTIPLE_FLOORS.items()
    }
    adjusted["adjustment"] = adjustment

    logger.debug(f"Adjusted multiple range by {adjustment:+.2f}")
    return adjusted


def calculate_overall_score(answers: Dict[str, float]) -> float:
    """Category-weighted average score across all value drivers (-2 to +2)."""
    scores = calculate_value_driver_scores(answers)
    total_weight = sum(s.weight for s in scores)
    if total_weight == 0:
        return 0
    return sum(s.score * s.weight for s in scores) / total_weight


def identify_strengths_and_weaknesses(
    scores: List[ValueDriverScore],
    count: int = 3
) -> Dict[str, List[str]]:
    """
    Strongest and weakest value driver categories.

    Ties keep their input order. Weaknesses are listed weakest first.
    """
    ranked = sorted(scores, key=lambda s: s.score, reverse=True)
    strengths = [s.category for s in ranked[:count]]
    weaknesses = [s.category for s in reversed(ranked[-count:])]
    return {"strengths": strengths, "weaknesses": weaknesses}


def get_category_name(category: str) -> str:
    """Display name of a value driver category."""
    return CATEGORY_NAMES.get(category, category)
