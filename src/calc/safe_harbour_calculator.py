"""Transitional CbCR Safe Harbour tests.

A jurisdiction qualifies when any of the De Minimis, Simplified ETR or Routine
Profits tests passes. The reported qualifying test is the first passing one in
that order.
"""

from typing import Optional

from calc.numeric import parse_numeric, round_amount
from model.SafeHarbourData import (
    ABOVE_THRESHOLD,
    BELOW_THRESHOLD,
    DE_MINIMIS,
    LOSS_MAKING,
    ROUTINE_PROFITS,
    SIMPLIFIED_ETR,
    TEST_PRIORITY,
    DeMinimisData,
    DeMinimisResult,
    RoutineProfitsData,
    RoutineProfitsResult,
    SafeHarbourResult,
    SimplifiedETRData,
    SimplifiedETRResult,
)
from tax.SafeHarbourDetails import SafeHarbourDetails, default_safe_harbour_details
from tax.SBIEDetails import SBIEDetails, default_sbie_details


class SafeHarbourCalculator:
    """Runs the three tests against injected reference tables.

    The SBIE table is the same one the GloBE engine uses, so the Routine
    Profits carve-out always agrees with the GloBE Calculator for a year.
    """

    def __init__(self, safe_harbour: Optional[SafeHarbourDetails] = None,
                 sbie: Optional[SBIEDetails] = None):
        self.safe_harbour = safe_harbour or default_safe_harbour_details()
        self.sbie = sbie or default_sbie_details()

    def de_minimis_test(self, data: DeMinimisData) -> DeMinimisResult:
        revenue = parse_numeric(data.total_revenue)
        profit = parse_numeric(data.profit_before_tax)

        meets_revenue = revenue < self.safe_harbour.revenue_threshold
        meets_profit = abs(profit) < self.safe_harbour.profit_threshold

        return DeMinimisResult(
            revenue_threshold=self.safe_harbour.revenue_threshold,
            profit_threshold=self.safe_harbour.profit_threshold,
            meets_revenue=meets_revenue,
            meets_profit=meets_profit,
            qualifies=meets_revenue and meets_profit,
        )

    def simplified_etr_test(self, data: SimplifiedETRData, fiscal_year) -> SimplifiedETRResult:
        taxes = parse_numeric(data.simplified_covered_taxes)
        profit = parse_numeric(data.profit_before_tax)
        transition_rate = self.safe_harbour.transition_rate(fiscal_year)

        # Loss-making jurisdictions qualify without an ETR
        if profit <= 0:
            return SimplifiedETRResult(
                calculated_etr=None,
                transition_rate=transition_rate,
                qualifies=True,
                status=LOSS_MAKING,
            )

        calculated_etr = round_amount(taxes / profit * 100, 2)
        qualifies = calculated_etr >= transition_rate
        return SimplifiedETRResult(
            calculated_etr=calculated_etr,
            transition_rate=transition_rate,
            qualifies=qualifies,
            status=ABOVE_THRESHOLD if qualifies else BELOW_THRESHOLD,
        )

    def routine_profits_test(self, data: RoutineProfitsData, fiscal_year) -> RoutineProfitsResult:
        profit = parse_numeric(data.profit_before_tax)
        amounts = self.sbie.carve_out(parse_numeric(data.eligible_payroll),
                                      parse_numeric(data.tangible_assets), fiscal_year)

        sbie_payroll = round_amount(amounts["payroll"], 2)
        sbie_assets = round_amount(amounts["assets"], 2)
        total_sbie = round_amount(sbie_payroll + sbie_assets, 2)
        profit_exceeds_sbie = profit > total_sbie

        return RoutineProfitsResult(
            sbie_payroll=sbie_payroll,
            sbie_assets=sbie_assets,
            total_sbie=total_sbie,
            profit_exceeds_sbie=profit_exceeds_sbie,
            qualifies=not profit_exceeds_sbie or profit <= 0,
        )

    def assess(self, de_minimis: DeMinimisData, simplified_etr: SimplifiedETRData,
               routine_profits: RoutineProfitsData, fiscal_year) -> SafeHarbourResult:
        results = {
            DE_MINIMIS: self.de_minimis_test(de_minimis),
            SIMPLIFIED_ETR: self.simplified_etr_test(simplified_etr, fiscal_year),
            ROUTINE_PROFITS: self.routine_profits_test(routine_profits, fiscal_year),
        }
        qualifying_test = next((name for name in TEST_PRIORITY if results[name].qualifies), None)

        return SafeHarbourResult(
            de_minimis=results[DE_MINIMIS],
            simplified_etr=results[SIMPLIFIED_ETR],
            routine_profits=results[ROUTINE_PROFITS],
            overall_qualifies=qualifying_test is not None,
            qualifying_test=qualifying_test,
        )


def assess(de_minimis: DeMinimisData, simplified_etr: SimplifiedETRData,
           routine_profits: RoutineProfitsData, fiscal_year=2024) -> SafeHarbourResult:
    """Run all three tests with the default reference tables."""
    return SafeHarbourCalculator().assess(de_minimis, simplified_etr, routine_profits, fiscal_year)
