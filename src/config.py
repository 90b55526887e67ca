"""
Configuration management for the WIP Insights calculation engine.

This module centralizes all configuration settings including labor capacity
constants, time-and-material defaults, valuation defaults, and the runtime
settings of the API server.
"""

import os
from typing import Dict, Any, List


# ==============================================================================
# LABOR CAPACITY CONFIGURATION
# ==============================================================================

# Standard working hours
HOURS_PER_DAY = 8
DAYS_PER_WEEK = 5
WEEKS_PER_YEAR = 52
HOURS_PER_WEEK = HOURS_PER_DAY * DAYS_PER_WEEK  # 40
HOURS_PER_YEAR = HOURS_PER_WEEK * WEEKS_PER_YEAR  # 2080

# Average weeks per month, used to express monthly capacity as weekly hours
WEEKS_PER_MONTH = 4.33

# Employee defaults
DEFAULT_BURDEN_MULTIPLIER = 1.16  # 16% burden (taxes, benefits, insurance)
DEFAULT_UTILIZATION_TARGET = 0.85  # 85% utilization
DEFAULT_ANNUAL_PTO_HOURS = 80  # 2 weeks PTO
DEFAULT_FTE = 1.0

# Allocation percentages must total 100 within this tolerance
ALLOCATION_TOLERANCE = 0.01

# Default projection horizon (months)
DEFAULT_PROJECTION_MONTHS = int(os.getenv("DEFAULT_PROJECTION_MONTHS", "12"))

# Seed departments for a new company
DEFAULT_DEPARTMENTS: List[Dict[str, Any]] = [
    {"name": "Field Operations", "is_productive": True, "sort_order": 1},
    {"name": "Shop", "is_productive": True, "sort_order": 2},
    {"name": "Engineering", "is_productive": True, "sort_order": 3},
    {"name": "Project Management", "is_productive": False, "sort_order": 4},
    {"name": "Administration", "is_productive": False, "sort_order": 5},
    {"name": "Sales", "is_productive": False, "sort_order": 6},
]


# ==============================================================================
# JOB CONFIGURATION
# ==============================================================================

# Time & Material markups, stored as multipliers (1.5 = 50% markup)
DEFAULT_TM_MARKUPS: Dict[str, float] = {
    "labor": 1.5,
    "material": 1.15,
    "other": 1.10,
}

# Billing position band used by the assistant context (fraction of contract)
BILLING_POSITION_TOLERANCE = 0.02

# Under-billing beyond this fraction of contract flags a job for attention
ATTENTION_UNDERBILLED_THRESHOLD = 0.10

# Job risk thresholds
UNDERBILLING_HIGH_RISK = 0.10  # under-billed by more than 10% of contract
UNDERBILLING_MEDIUM_RISK = 0.05
SCHEDULE_DRIFT_THRESHOLD = 0.10  # time elapsed ahead of cost progress
MARGIN_FADE_THRESHOLD_POINTS = 2.0  # margin points lost since the estimate


# ==============================================================================
# VALUATION CONFIGURATION
# ==============================================================================

DEFAULT_MULTIPLE = 3.0

# Multiple ranges by company size (annual revenue); the top band has no upper bound
MULTIPLE_RANGES: List[Dict[str, Any]] = [
    {"min_revenue": 0, "max_revenue": 5_000_000, "low": 2.0, "mid": 2.5, "high": 3.0,
     "label": "Under $5M revenue"},
    {"min_revenue": 5_000_000, "max_revenue": 15_000_000, "low": 2.5, "mid": 3.25, "high": 4.0,
     "label": "$5M - $15M revenue"},
    {"min_revenue": 15_000_000, "max_revenue": 50_000_000, "low": 3.5, "mid": 4.25, "high": 5.0,
     "label": "$15M - $50M revenue"},
    {"min_revenue": 50_000_000, "max_revenue": None, "low": 4.0, "mid": 5.0, "high": 6.0,
     "label": "Over $50M revenue"},
]

# Value driver categories and their share of the multiple adjustment
VALUE_DRIVER_CATEGORY_WEIGHTS: Dict[str, float] = {
    "financial": 0.20,
    "owner_dependency": 0.15,
    "revenue_predictability": 0.15,
    "market_position": 0.12,
    "operational_systems": 0.10,
    "customer_concentration": 0.08,
    "project_portfolio": 0.08,
    "management_depth": 0.06,
    "cash_flow": 0.04,
    "safety_compliance": 0.02,
}

# Questionnaire answers are scored -2 (weak) to +2 (strong)
VALUE_DRIVER_IMPACT_FACTOR = 0.5

# The total adjustment to a multiple range is limited to +/- this many turns
MULTIPLE_ADJUSTMENT_LIMIT = 1.5
MULTIPLE_FLOORS: Dict[str, float] = {"low": 1.0, "mid": 1.5, "high": 2.0}


# ==============================================================================
# API CONFIGURATION
# ==============================================================================

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))


# ==============================================================================
# LOGGING CONFIGURATION
# ==============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
