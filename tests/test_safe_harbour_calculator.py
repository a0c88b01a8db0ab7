import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
from calc.safe_harbour_calculator import SafeHarbourCalculator, assess
from model.SafeHarbourData import (
    ABOVE_THRESHOLD,
    BELOW_THRESHOLD,
    DE_MINIMIS,
    LOSS_MAKING,
    ROUTINE_PROFITS,
    SIMPLIFIED_ETR,
    DeMinimisData,
    RoutineProfitsData,
    SafeHarbourResult,
    SimplifiedETRData,
)
from model.records import to_plain
from tax.SafeHarbourDetails import SafeHarbourDetails


class TestDeMinimis(unittest.TestCase):
    def setUp(self):
        self.calc = SafeHarbourCalculator()

    def test_small_jurisdiction_qualifies(self):
        result = self.calc.de_minimis_test(DeMinimisData('9,000,000', '900,000'))
        self.assertTrue(result.meets_revenue)
        self.assertTrue(result.meets_profit)
        self.assertTrue(result.qualifies)
        self.assertEqual(result.revenue_threshold, 10_000_000)

    def test_loss_uses_absolute_profit(self):
        self.assertTrue(self.calc.de_minimis_test(DeMinimisData('9,000,000', '-900,000')).qualifies)
        self.assertFalse(self.calc.de_minimis_test(DeMinimisData('9,000,000', '-1,200,000')).qualifies)

    def test_thresholds_are_strict(self):
        result = self.calc.de_minimis_test(DeMinimisData('10,000,000', '1,000,000'))
        self.assertFalse(result.meets_revenue)
        self.assertFalse(result.meets_profit)
        self.assertFalse(result.qualifies)

    def test_custom_thresholds(self):
        details = SafeHarbourDetails({
            "deMinimis": {"revenueThreshold": 50_000_000, "profitThreshold": 5_000_000},
            "transitionYears": [{"year": 2024, "rate": 15.0}],
        })
        calc = SafeHarbourCalculator(safe_harbour=details)
        self.assertTrue(calc.de_minimis_test(DeMinimisData('45,000,000', '4,000,000')).qualifies)


class TestSimplifiedETR(unittest.TestCase):
    def setUp(self):
        self.calc = SafeHarbourCalculator()

    def test_above_transition_rate(self):
        result = self.calc.simplified_etr_test(SimplifiedETRData('680,000', '4,000,000'), '2025')
        self.assertEqual(result.calculated_etr, 17.0)
        self.assertEqual(result.transition_rate, 16.0)
        self.assertTrue(result.qualifies)
        self.assertEqual(result.status, ABOVE_THRESHOLD)

    def test_rate_depends_on_year(self):
        data = SimplifiedETRData('640,000', '4,000,000')
        self.assertTrue(self.calc.simplified_etr_test(data, 2025).qualifies)
        result = self.calc.simplified_etr_test(data, 2026)
        self.assertFalse(result.qualifies)
        self.assertEqual(result.status, BELOW_THRESHOLD)

    def test_exactly_at_transition_rate_qualifies(self):
        self.assertTrue(self.calc.simplified_etr_test(SimplifiedETRData('150,000', '1,000,000'), 2024).qualifies)

    def test_loss_making_has_no_etr(self):
        for profit in ('0', '-500,000', ''):
            result = self.calc.simplified_etr_test(SimplifiedETRData('10,000', profit), 2024)
            self.assertIsNone(result.calculated_etr)
            self.assertTrue(result.qualifies)
            self.assertEqual(result.status, LOSS_MAKING)


class TestRoutineProfits(unittest.TestCase):
    def setUp(self):
        self.calc = SafeHarbourCalculator()

    def test_profit_above_sbie_fails(self):
        result = self.calc.routine_profits_test(RoutineProfitsData('4,000,000', '12,000,000', '9,000,000'), 2025)
        self.assertEqual(result.sbie_payroll, 1_152_000)
        self.assertEqual(result.sbie_assets, 684_000)
        self.assertEqual(result.total_sbie, 1_836_000)
        self.assertTrue(result.profit_exceeds_sbie)
        self.assertFalse(result.qualifies)

    def test_profit_within_sbie_qualifies(self):
        result = self.calc.routine_profits_test(RoutineProfitsData('1,000,000', '20,000,000', '0'), 2024)
        self.assertEqual(result.total_sbie, 1_960_000)
        self.assertFalse(result.profit_exceeds_sbie)
        self.assertTrue(result.qualifies)

    def test_loss_qualifies(self):
        self.assertTrue(self.calc.routine_profits_test(RoutineProfitsData('-100', '0', '0'), 2024).qualifies)


class TestAssess(unittest.TestCase):
    def test_germany_2025_qualifies_on_simplified_etr(self):
        result = assess(
            DeMinimisData('45,000,000', '4,000,000'),
            SimplifiedETRData('680,000', '4,000,000'),
            RoutineProfitsData('4,000,000', '12,000,000', '9,000,000'),
            '2025',
        )
        self.assertFalse(result.de_minimis.qualifies)
        self.assertTrue(result.simplified_etr.qualifies)
        self.assertFalse(result.routine_profits.qualifies)
        self.assertTrue(result.overall_qualifies)
        self.assertEqual(result.qualifying_test, SIMPLIFIED_ETR)

    def test_first_passing_test_is_reported(self):
        result = assess(
            DeMinimisData('5,000,000', '500,000'),
            SimplifiedETRData('200,000', '500,000'),
            RoutineProfitsData('500,000', '10,000,000', '0'),
        )
        self.assertEqual(result.qualifying_test, DE_MINIMIS)

    def test_only_routine_profits_passes(self):
        result = assess(
            DeMinimisData('50,000,000', '1,500,000'),
            SimplifiedETRData('100,000', '1,500,000'),
            RoutineProfitsData('1,500,000', '20,000,000', '0'),
        )
        self.assertEqual(result.qualifying_test, ROUTINE_PROFITS)

    def test_nothing_passes(self):
        result = assess(
            DeMinimisData('50,000,000', '4,000,000'),
            SimplifiedETRData('100,000', '4,000,000'),
            RoutineProfitsData('4,000,000', '1,000,000', '1,000,000'),
        )
        self.assertFalse(result.overall_qualifies)
        self.assertIsNone(result.qualifying_test)

    def test_result_survives_serialisation(self):
        result = assess(
            DeMinimisData('45,000,000', '-4,000,000'),
            SimplifiedETRData('0', '-4,000,000'),
            RoutineProfitsData('-4,000,000', '0', '0'),
        )
        self.assertEqual(SafeHarbourResult.from_dict(to_plain(result)), result)


if __name__ == '__main__':
    unittest.main()
