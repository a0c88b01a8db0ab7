import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../src')))
from tax.SBIEDetails import SBIEDetails, default_sbie_details
from tax.SafeHarbourDetails import SafeHarbourDetails, default_safe_harbour_details


class TestSBIEDetails(unittest.TestCase):
    def setUp(self):
        self.sbie = SBIEDetails()

    def test_table_years(self):
        self.assertEqual(self.sbie.years(), list(range(2024, 2034)))
        self.assertEqual(self.sbie.first_year, 2024)
        self.assertEqual(self.sbie.last_year, 2033)

    def test_known_rates(self):
        rates_2024 = self.sbie.rates_for(2024)
        self.assertAlmostEqual(rates_2024.payroll, 9.8)
        self.assertAlmostEqual(rates_2024.asset, 7.8)
        rates_2029 = self.sbie.rates_for('2029')
        self.assertAlmostEqual(rates_2029.payroll, 8.2)
        self.assertAlmostEqual(rates_2029.asset, 6.6)

    def test_years_outside_table_use_nearest_year(self):
        self.assertEqual(self.sbie.rates_for(2020), self.sbie.rates_for(2024))
        self.assertEqual(self.sbie.rates_for(2040), self.sbie.rates_for(2033))
        self.assertAlmostEqual(self.sbie.rates_for(2040).payroll, 5.0)

    def test_unparseable_year_uses_first_year(self):
        self.assertEqual(self.sbie.rates_for('not a year'), self.sbie.rates_for(2024))
        self.assertEqual(self.sbie.rates_for(''), self.sbie.rates_for(2024))

    def test_rates_never_increase(self):
        years = self.sbie.years()
        for prev, curr in zip(years, years[1:]):
            self.assertLessEqual(self.sbie.rates_for(curr).payroll, self.sbie.rates_for(prev).payroll)
            self.assertLessEqual(self.sbie.rates_for(curr).asset, self.sbie.rates_for(prev).asset)

    def test_carve_out(self):
        carve_out = self.sbie.carve_out(18_000_000, 18_000_000, 2024)
        self.assertAlmostEqual(carve_out['payroll'], 1_764_000, places=2)
        self.assertAlmostEqual(carve_out['assets'], 1_404_000, places=2)
        self.assertAlmostEqual(carve_out['total'], 3_168_000, places=2)

    def test_gap_in_years_rejected(self):
        data = {"taxYears": [
            {"year": 2024, "payrollRate": 9.8, "assetRate": 7.8},
            {"year": 2026, "payrollRate": 9.4, "assetRate": 7.4},
        ]}
        with self.assertRaises(ValueError):
            SBIEDetails(data)

    def test_empty_table_rejected(self):
        with self.assertRaises(ValueError):
            SBIEDetails({"taxYears": []})

    def test_default_is_cached(self):
        self.assertIs(default_sbie_details(), default_sbie_details())


class TestSafeHarbourDetails(unittest.TestCase):
    def setUp(self):
        self.details = SafeHarbourDetails()

    def test_thresholds(self):
        self.assertEqual(self.details.revenue_threshold, 10_000_000)
        self.assertEqual(self.details.profit_threshold, 1_000_000)

    def test_transition_rates(self):
        self.assertEqual(self.details.transition_rate(2024), 15.0)
        self.assertEqual(self.details.transition_rate('2025'), 16.0)
        self.assertEqual(self.details.transition_rate(2026), 17.0)

    def test_transition_rate_clamps(self):
        self.assertEqual(self.details.transition_rate(2023), 15.0)
        self.assertEqual(self.details.transition_rate(2030), 17.0)

    def test_missing_de_minimis_rejected(self):
        with self.assertRaises(ValueError):
            SafeHarbourDetails({"transitionYears": [{"year": 2024, "rate": 15.0}]})

    def test_default_is_cached(self):
        self.assertIs(default_safe_harbour_details(), default_safe_harbour_details())


if __name__ == '__main__':
    unittest.main()
