"""
Unit tests for Labor Capacity Engine.

Tests loaded cost, available hours, the employee active window with
day-level proration, monthly projections and capacity roll-ups.
"""

import unittest
from datetime import date
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from wip_engines.models import Department, DepartmentAllocation, Employee
from wip_engines.labor_capacity_engine import (
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
    calculate_capacity_for_wip,
)


class TestRatesAndHours(unittest.TestCase):
    """Test basic rate and hour calculations."""

    def test_loaded_cost_per_hour(self):
        """Test base rate times burden."""
        self.assertAlmostEqual(calculate_loaded_cost_per_hour(30, 1.16), 34.8)

    def test_annual_available_hours(self):
        """Test FTE-adjusted hours less PTO."""
        self.assertEqual(calculate_annual_available_hours(1.0, 80), 2000)
        self.assertEqual(calculate_annual_available_hours(0.5, 40), 1000)

    def test_annual_available_hours_never_negative(self):
        """Test PTO larger than scheduled hours."""
        self.assertEqual(calculate_annual_available_hours(0.5, 2000), 0)

    def test_annual_loaded_cost(self):
        """Test loaded rate times annual hours."""
        self.assertAlmostEqual(calculate_annual_loaded_cost(20, 1.5, 1.0, 80), 60000)

    def test_working_days(self):
        """Test Monday-Friday counts."""
        self.assertEqual(get_working_days_in_month(2024, 1), 23)
        self.assertEqual(get_working_days_in_month(2024, 2), 21)
        self.assertEqual(get_working_days_in_month(2024, 6), 20)

    def test_monthly_available_hours(self):
        """Test working hours less a twelfth of PTO."""
        self.assertAlmostEqual(calculate_monthly_available_hours(1.0, 120, 2024, 6), 150)

    def test_years_of_service(self):
        """Test years floored to one decimal."""
        self.assertEqual(calculate_years_of_service(date(2020, 1, 1), date(2023, 1, 1)), 3.0)
        self.assertEqual(calculate_years_of_service(None, date(2023, 1, 1)), 0)
        self.assertEqual(calculate_years_of_service(date(2025, 1, 1), date(2023, 1, 1)), 0)

    def test_default_departments(self):
        """Test seeded departments."""
        departments = get_default_departments()

        self.assertEqual(len(departments), 6)
        self.assertTrue(departments[0].is_productive)
        self.assertFalse(departments[-1].is_productive)


class TestActiveWindow(unittest.TestCase):
    """Test when an employee counts toward capacity."""

    def test_active_between_hire_and_termination(self):
        """Test hire and termination months are both inclusive."""
        employee = Employee(hire_date=date(2024, 3, 20), termination_date=date(2024, 8, 1))

        self.assertFalse(is_employee_active_in_month(employee, 2024, 2))
        self.assertTrue(is_employee_active_in_month(employee, 2024, 3))
        self.assertTrue(is_employee_active_in_month(employee, 2024, 8))
        self.assertFalse(is_employee_active_in_month(employee, 2024, 9))

    def test_active_across_year_boundary(self):
        """Test months compare by year first."""
        employee = Employee(hire_date=date(2023, 11, 1))

        self.assertTrue(is_employee_active_in_month(employee, 2024, 1))
        self.assertFalse(is_employee_active_in_month(employee, 2023, 10))

    def test_inactive_flag_excludes(self):
        """Test is_active=False excludes the employee everywhere."""
        employee = Employee(is_active=False)

        self.assertFalse(is_employee_active_in_month(employee, 2024, 1))
        self.assertFalse(is_employee_currently_active(employee, date(2024, 1, 1)))
        self.assertEqual(calculate_prorated_monthly_hours(employee, 2024, 1), 0)

    def test_currently_active(self):
        """Test future hires and past terminations."""
        today = date(2024, 5, 1)

        self.assertTrue(is_employee_currently_active(Employee(), today))
        self.assertFalse(is_employee_currently_active(Employee(hire_date=date(2024, 6, 1)), today))
        self.assertFalse(is_employee_currently_active(Employee(termination_date=today), today))
        self.assertTrue(
            is_employee_currently_active(Employee(termination_date=date(2024, 5, 2)), today)
        )


class TestProration(unittest.TestCase):
    """Test day-level proration of boundary months."""

    def test_full_month(self):
        """Test a month with no hire or termination."""
        employee = Employee(annual_pto_hours=120)

        self.assertAlmostEqual(calculate_prorated_monthly_hours(employee, 2024, 6), 150)

    def test_hired_mid_month(self):
        """Test hire on the 15th of a 30-day month gets 16/30 of the month."""
        employee = Employee(annual_pto_hours=120, hire_date=date(2024, 6, 15))

        self.assertAlmostEqual(calculate_prorated_monthly_hours(employee, 2024, 6), 150 * 16 / 30)

    def test_terminated_on_first(self):
        """Test termination on the 1st still counts one day."""
        employee = Employee(annual_pto_hours=0, termination_date=date(2024, 8, 1))

        hours = calculate_prorated_monthly_hours(employee, 2024, 8)

        self.assertAlmostEqual(hours, 22 * 8 / 31)
        self.assertGreater(hours, 0)

    def test_hired_and_terminated_same_month(self):
        """Test hire day through termination day inclusive."""
        employee = Employee(
            annual_pto_hours=120,
            hire_date=date(2024, 6, 11),
            termination_date=date(2024, 6, 20),
        )

        self.assertAlmostEqual(calculate_prorated_monthly_hours(employee, 2024, 6), 150 * 10 / 30)

    def test_outside_window(self):
        """Test months outside the window have no hours."""
        employee = Employee(hire_date=date(2024, 7, 1))

        self.assertEqual(calculate_prorated_monthly_hours(employee, 2024, 6), 0)


class TestEmployeeAndDepartmentMetrics(unittest.TestCase):
    """Test per-employee metrics and department summaries."""

    def setUp(self):
        self.today = date(2024, 1, 15)
        self.field = Department(id="d1", name="Field", is_productive=True)
        self.office = Department(id="d2", name="Office", is_productive=False)
        self.employees = [
            Employee(id="e1", hourly_rate=20, burden_multiplier=1.5, annual_pto_hours=80),
            Employee(id="e2", hourly_rate=40, burden_multiplier=1.5, annual_pto_hours=80),
            Employee(id="e3", hourly_rate=50, is_active=False),
        ]
        self.allocations = [
            DepartmentAllocation("e1", "d1", 50),
            DepartmentAllocation("e1", "d2", 50),
            DepartmentAllocation("e2", "d1", 100),
            DepartmentAllocation("e3", "d1", 100),
        ]

    def test_employee_metrics(self):
        """Test derived employee metrics."""
        metrics = calculate_employee_metrics(self.employees[0], self.today)

        self.assertAlmostEqual(metrics.loaded_cost_per_hour, 30)
        self.assertEqual(metrics.annual_available_hours, 2000)
        self.assertAlmostEqual(metrics.annual_loaded_cost, 60000)
        self.assertAlmostEqual(metrics.monthly_available_hours, 23 * 8 - 80 / 12)
        self.assertAlmostEqual(metrics.billable_hours, metrics.monthly_available_hours * 0.85)

    def test_department_summary(self):
        """Test allocation-weighted department totals."""
        summary = calculate_department_summary(
            self.field, self.employees, self.allocations, self.today
        )

        self.assertEqual(summary.employee_count, 2)
        self.assertAlmostEqual(summary.total_fte, 1.5)
        self.assertAlmostEqual(summary.total_hours, 3000)
        self.assertAlmostEqual(summary.total_cost, 30000 + 120000)
        self.assertAlmostEqual(summary.average_loaded_rate, 45)

    def test_empty_department(self):
        """Test a department with no allocations."""
        summary = calculate_department_summary(
            Department(id="d9", name="Empty"), self.employees, self.allocations, self.today
        )

        self.assertEqual(summary.employee_count, 0)
        self.assertEqual(summary.average_loaded_rate, 0)

    def test_capacity_summary(self):
        """Test company-wide roll-up excludes inactive employees."""
        summary = calculate_capacity_summary(
            self.employees,
            [self.field, self.office],
            self.allocations,
            months_ahead=3,
            today=self.today
        )

        self.assertEqual(summary['total_employees'], 3)
        self.assertEqual(summary['active_employees'], 2)
        self.assertAlmostEqual(summary['total_fte'], 2.0)
        self.assertAlmostEqual(summary['average_hourly_rate'], 30)
        self.assertAlmostEqual(summary['total_annual_hours'], 4000)
        self.assertAlmostEqual(summary['productive_capacity_hours'], 3000)
        self.assertEqual(len(summary['departments']), 2)
        self.assertEqual(len(summary['monthly_projections']), 3)

    def test_department_cost_breakdown(self):
        """Test department shares of total cost."""
        summaries = [
            calculate_department_summary(d, self.employees, self.allocations, self.today)
            for d in (self.field, self.office)
        ]

        breakdown = get_department_cost_breakdown(summaries)

        self.assertEqual(breakdown[0]['name'], "Field")
        self.assertAlmostEqual(breakdown[0]['percent'] + breakdown[1]['percent'], 100)
        self.assertAlmostEqual(breakdown[1]['cost'], 30000)


class TestMonthlyProjections(unittest.TestCase):
    """Test month-by-month workforce projections."""

    def setUp(self):
        self.departments = [Department(id="d1", name="Field")]
        self.allocations = [DepartmentAllocation("e1", "d1", 100)]

    def test_projection_months_and_totals(self):
        """Test consecutive months starting at the start month."""
        employee = Employee(id="e1", hourly_rate=25, burden_multiplier=1.2, annual_pto_hours=0)

        projections = generate_monthly_projections(
            [employee], self.departments, self.allocations, 3, start=date(2024, 1, 15)
        )

        self.assertEqual([p.month for p in projections], ["2024-01-01", "2024-02-01", "2024-03-01"])
        self.assertEqual(projections[0].total_hours, 184)
        self.assertEqual(projections[0].total_cost, 5520)
        self.assertEqual(projections[1].total_hours, 168)
        self.assertEqual(projections[0].total_employees, 1)
        self.assertEqual(projections[0].departments[0].hours, 184)

    def test_projection_crosses_year(self):
        """Test months roll over into the next year."""
        projections = generate_monthly_projections(
            [], self.departments, self.allocations, 3, start=date(2024, 11, 30)
        )

        self.assertEqual([p.month for p in projections], ["2024-11-01", "2024-12-01", "2025-01-01"])

    def test_terminated_employee_drops_out(self):
        """Test an employee leaves the projection after the termination month."""
        employee = Employee(id="e1", hourly_rate=25, termination_date=date(2024, 2, 10))

        projections = generate_monthly_projections(
            [employee], self.departments, self.allocations, 3, start=date(2024, 1, 1)
        )

        self.assertEqual(projections[1].total_employees, 1)
        self.assertEqual(projections[2].total_employees, 0)
        self.assertEqual(projections[2].total_hours, 0)
        self.assertEqual(projections[2].departments[0].employee_count, 0)

    def test_projection_lookups(self):
        """Test month lookup and period cost."""
        employee = Employee(id="e1", hourly_rate=25, burden_multiplier=1.2, annual_pto_hours=0)
        projections = generate_monthly_projections(
            [employee], self.departments, self.allocations, 3, start=date(2024, 1, 1)
        )

        self.assertIs(get_month_projection(projections, "2024-02-01"), projections[1])
        self.assertIsNone(get_month_projection(projections, "2025-02-01"))
        self.assertEqual(
            get_total_cost_for_period(projections, 2),
            projections[0].total_cost + projections[1].total_cost
        )


class TestAllocationValidation(unittest.TestCase):
    """Test allocation total validation."""

    def test_no_allocations(self):
        """Test an unallocated employee is valid."""
        result = validate_allocations([])

        self.assertTrue(result.is_valid)
        self.assertEqual(result.message, "No allocations set")

    def test_full_allocation(self):
        """Test allocations totalling 100%."""
        result = validate_allocations([
            DepartmentAllocation("e1", "d1", 60),
            DepartmentAllocation("e1", "d2", 40),
        ])

        self.assertTrue(result.is_valid)
        self.assertEqual(result.total, 100)
        self.assertEqual(result.message, "Allocations total 100%")

    def test_partial_allocation(self):
        """Test allocations short of 100%."""
        result = validate_allocations([
            DepartmentAllocation("e1", "d1", 60),
            DepartmentAllocation("e1", "d2", 30),
        ])

        self.assertFalse(result.is_valid)
        self.assertEqual(result.message, "Allocations total 90.0% (must be 100%)")


class TestCapacityForWip(unittest.TestCase):
    """Test productive capacity for the WIP schedule."""

    def test_no_employees(self):
        """Test no capacity without employees or departments."""
        self.assertIsNone(calculate_capacity_for_wip([], [Department(id="d1")], []))
        self.assertIsNone(calculate_capacity_for_wip([Employee(id="e1")], [], []))

    def test_productive_capacity(self):
        """Test weekly hours from the current month."""
        employees = [Employee(id="e1", annual_pto_hours=0)]
        departments = [
            Department(id="d1", name="Field", is_productive=True),
            Department(id="d2", name="Office", is_productive=False),
        ]
        allocations = [DepartmentAllocation("e1", "d1", 100)]

        capacity = calculate_capacity_for_wip(employees, departments, allocations, date(2024, 1, 15))

        self.assertEqual(capacity['monthly_productive_hours'], 184)
        self.assertEqual(capacity['weekly_productive_hours'], 42)
        self.assertEqual(capacity['productive_fte'], 1.0)
        self.assertEqual(len(capacity['department_breakdown']), 1)


if __name__ == '__main__':
    unittest.main()
