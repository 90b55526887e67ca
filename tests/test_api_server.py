"""
Tests for the calculation API.

Exercises each endpoint through FastAPI's test client.
"""

import unittest
import csv
import io
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fastapi.testclient import TestClient

from api_server import app


JOB_ROW = {
    "job_no": "2024-001",
    "job_name": "Warehouse Retrofit",
    "status": "Active",
    "job_type": "fixed-price",
    "contract_labor": 100000,
    "contract_material": 50000,
    "budget_labor": 80000,
    "budget_material": 40000,
    "cost_labor": 40000,
    "cost_material": 20000,
    "invoiced_labor": 50000,
    "invoiced_material": 25000,
    "cost_to_complete_labor": 40000,
    "cost_to_complete_material": 20000,
}

VALUATION_ROW = {
    "name": "Base",
    "annual_revenue": 2000000,
    "net_profit": 200000,
    "owner_compensation": 80000,
    "depreciation": 20000,
    "interest_expense": 10000,
    "taxes": 15000,
    "other_addbacks": 5000,
    "multiple": 3.5,
}


class TestApi(unittest.TestCase):
    """Test the HTTP endpoints."""

    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def test_health(self):
        """Test the health check."""
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_job_financials(self):
        """Test financials for one job row."""
        response = self.client.post("/jobs/financials", json=JOB_ROW)
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertAlmostEqual(body['earned_revenue']['total'], 75000)
        self.assertAlmostEqual(body['billing']['difference'], 0)
        self.assertAlmostEqual(body['forecasted_profit'], 30000)
        self.assertAlmostEqual(body['percent_complete'], 50)

    def test_bad_job_row(self):
        """Test bad records are rejected with 422."""
        response = self.client.post("/jobs/financials", json=dict(JOB_ROW, job_type="cost-plus"))

        self.assertEqual(response.status_code, 422)
        self.assertIn("job type", response.json()['detail'])

    def test_null_tm_settings(self):
        """Test a T&M row whose settings are JSON null uses the defaults."""
        row = dict(JOB_ROW, job_type="time-material", tm_settings="null")

        response = self.client.post("/jobs/financials", json=row)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['job_type'], "time-material")
        self.assertAlmostEqual(response.json()['earned_revenue']['labor'], 60000)

    def test_tm_settings_not_an_object(self):
        """Test settings that decode to a list are rejected with 422."""
        row = dict(JOB_ROW, job_type="time-material", tm_settings="[1,2]")

        response = self.client.post("/jobs/financials", json=row)

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()['detail'], "tm_settings must be an object")

    def test_job_risk(self):
        """Test risk signals for one job at a given date."""
        row = dict(JOB_ROW, invoiced_labor=20000, invoiced_material=10000,
                   start_date="2024-01-01", end_date="2024-04-10")

        response = self.client.post("/jobs/risk", json=row, params={"today": "2024-02-20"})
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["underbilling_risk"], "High")
        self.assertEqual(body["schedule_drift_weeks"], 0)
        self.assertFalse(body["is_margin_fading"])

    def test_export(self):
        """Test CSV export."""
        response = self.client.post("/jobs/export", json={"jobs": [JOB_ROW, JOB_ROW]})
        rows = list(csv.reader(io.StringIO(response.text)))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers['content-type'].startswith("text/csv"))
        self.assertEqual(rows[0][0], "Job #")
        self.assertEqual(len(rows), 3)

    def test_labor_projections(self):
        """Test capacity summary with projections."""
        response = self.client.post("/labor/projections", json={
            "employees": [{"id": "e1", "hourly_rate": 25, "burden_multiplier": 1.2,
                           "annual_pto_hours": 0}],
            "departments": [{"id": "d1", "name": "Field", "is_productive": True}],
            "allocations": [{"employee_id": "e1", "department_id": "d1",
                             "allocation_percent": 100}],
            "months_ahead": 2,
            "today": "2024-01-15",
        })
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body['active_employees'], 1)
        self.assertEqual(len(body['monthly_projections']), 2)
        self.assertEqual(body['monthly_projections'][0]['month'], "2024-01-01")
        self.assertEqual(body['monthly_projections'][0]['total_hours'], 184)
        self.assertEqual(body['wip_capacity']['monthly_productive_hours'], 184)

    def test_labor_projections_empty(self):
        """Test projections with no workforce."""
        response = self.client.post("/labor/projections", json={"months_ahead": 1})

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()['wip_capacity'])

    def test_validate_allocations(self):
        """Test allocation validation."""
        response = self.client.post("/labor/allocations/validate", json={"allocations": [
            {"employee_id": "e1", "department_id": "d1", "allocation_percent": 60},
            {"employee_id": "e1", "department_id": "d2", "allocation_percent": 30},
        ]})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['is_valid'])
        self.assertEqual(response.json()['message'], "Allocations total 90.0% (must be 100%)")

    def test_valuation(self):
        """Test valuation results."""
        response = self.client.post("/valuations/calculate", json=VALUATION_ROW)
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertAlmostEqual(body['adjusted_ebitda'], 330000)
        self.assertAlmostEqual(body['business_value'], 1155000)
        self.assertEqual(body['suggested_multiple']['mid'], 2.5)

    def test_compare_valuations(self):
        """Test scenario comparison."""
        upside = dict(VALUATION_ROW, name="Upside", net_profit=300000)
        response = self.client.post("/valuations/compare", json={"valuations": [VALUATION_ROW, upside]})
        rows = {row['field']: row for row in response.json()}

        self.assertEqual(response.status_code, 200)
        self.assertAlmostEqual(rows['net_profit']['delta'], -100000)

    def test_value_drivers(self):
        """Test questionnaire scoring adjusts the suggested range."""
        response = self.client.post("/valuations/drivers", json={
            "answers": {"customer_diversification": 2, "safety_record": -2},
            "annual_revenue": 2000000,
        })
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(body["scores"]), 10)
        self.assertEqual(body["base_range"]["mid"], 2.5)
        self.assertAlmostEqual(body["adjusted_range"]["adjustment"], 0.06)
        self.assertEqual(body["strengths"][0], "customer_concentration")
        self.assertEqual(body["weaknesses"][0], "safety_compliance")

    def test_compare_needs_two(self):
        """Test comparison with one scenario is rejected."""
        response = self.client.post("/valuations/compare", json={"valuations": [VALUATION_ROW]})

        self.assertEqual(response.status_code, 400)


if __name__ == '__main__':
    unittest.main()
