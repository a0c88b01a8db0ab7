"""GloBE top-up tax engine.

``calculate_jurisdiction`` runs the full single-jurisdiction derivation used by
the GIR practice form. ``calculate_etr``/``calculate_sbie``/``calculate_top_up``
are the three steps of the guided GloBE Calculator, each with a matching
``validate_step*`` that returns field-keyed messages instead of raising.
"""

from typing import Dict, Optional

from calc.numeric import is_blank, is_numeric, parse_numeric, round_amount
from model.GloBEData import (
    COMPLIANT,
    LOW_TAXED,
    NO_EXCESS,
    QDMTT_OFFSET,
    TOP_UP_DUE,
    WARNING,
    JurisdictionCalcEntry,
    JurisdictionCalcResult,
    Numeric,
    Step1Result,
    Step2Result,
    Step3Result,
)
from tax.SBIEDetails import SBIEDetails, default_sbie_details

MIN_TAX_RATE = 15.0
WARNING_THRESHOLD = 15.5

INCOME_FIELDS = ('fani', 'net_taxes', 'excluded_dividends', 'excluded_equity',
                 'disallowed_expenses', 'stock_comp_adj', 'other_adj')
COVERED_TAX_FIELDS = ('current_tax', 'deferred_tax', 'utp_adj', 'non_covered_adj')


def classify_etr(etr_pct: float) -> str:
    """Status for an unrounded ETR percentage."""
    if etr_pct < MIN_TAX_RATE:
        return LOW_TAXED
    if etr_pct < WARNING_THRESHOLD:
        return WARNING
    return COMPLIANT


def calculate_jurisdiction(entry: JurisdictionCalcEntry, fiscal_year=2024,
                           sbie: Optional[SBIEDetails] = None) -> JurisdictionCalcResult:
    """GloBE income through net top-up tax for one jurisdiction.

    ``etr_status`` is the plain ETR classification (LOW_TAXED, WARNING or
    COMPLIANT). ``status`` refines LOW_TAXED into NO_EXCESS, QDMTT_OFFSET or
    TOP_UP_DUE from the top-up figures. Loss-making jurisdictions are
    NO_EXCESS.

    Intermediates stay unrounded; only the returned figures are rounded.
    ``etr`` and ``top_up_tax_pct`` are fractions rounded to 4 places and money
    is rounded to 2 places. Zero or negative GloBE income gives an ETR of 0.
    """
    if isinstance(entry, dict):
        entry = JurisdictionCalcEntry.from_dict(entry)
    sbie = sbie or default_sbie_details()

    globe_income = sum(parse_numeric(getattr(entry, f)) for f in INCOME_FIELDS)
    adjusted_covered_taxes = sum(parse_numeric(getattr(entry, f)) for f in COVERED_TAX_FIELDS)
    total_sbie = sbie.carve_out(parse_numeric(entry.payroll_costs),
                                parse_numeric(entry.tangible_assets), fiscal_year)["total"]

    etr = adjusted_covered_taxes / globe_income if globe_income > 0 else 0.0
    top_up_tax_pct = max(0.0, MIN_TAX_RATE / 100 - etr)
    excess_profit = max(0.0, globe_income - total_sbie)
    gross_top_up = excess_profit * top_up_tax_pct
    net_top_up = max(0.0, gross_top_up - parse_numeric(entry.qdmtt))

    etr_status = classify_etr(etr * 100)
    status = etr_status if globe_income > 0 else NO_EXCESS
    if status == LOW_TAXED:
        if excess_profit <= 0:
            status = NO_EXCESS
        elif net_top_up <= 0 and gross_top_up > 0:
            status = QDMTT_OFFSET
        else:
            status = TOP_UP_DUE

    return JurisdictionCalcResult(
        jurisdiction=entry.jurisdiction,
        globe_income=round_amount(globe_income, 2),
        adjusted_covered_taxes=round_amount(adjusted_covered_taxes, 2),
        total_sbie=round_amount(total_sbie, 2),
        etr=round_amount(etr, 4),
        top_up_tax_pct=round_amount(top_up_tax_pct, 4),
        excess_profit=round_amount(excess_profit, 2),
        gross_top_up=round_amount(gross_top_up, 2),
        net_top_up=round_amount(net_top_up, 2),
        status=status,
        etr_status=etr_status,
    )


def validate_step1(income: Numeric, taxes: Numeric) -> Dict[str, str]:
    if is_blank(income) or parse_numeric(income) <= 0:
        return {'s1': 'GloBE Income must be greater than zero'}
    if is_blank(taxes) or parse_numeric(taxes) < 0:
        return {'s1': 'Covered Taxes cannot be negative'}
    return {}


def calculate_etr(income: Numeric, taxes: Numeric) -> Step1Result:
    """Step 1: ETR percentage and the top-up percentage for a low-taxed jurisdiction.

    Assumes input already passed ``validate_step1``; non-positive income raises
    ValueError instead of returning field errors.
    """
    inc = parse_numeric(income)
    tax = parse_numeric(taxes)
    if inc <= 0:
        raise ValueError("GloBE Income must be greater than zero")

    etr = tax / inc * 100
    status = classify_etr(etr)
    top_up_pct = MIN_TAX_RATE - etr if status == LOW_TAXED else 0.0
    return Step1Result(etr=round_amount(etr, 2), top_up_pct=round_amount(top_up_pct, 2), status=status)


def validate_step2(payroll: Numeric, assets: Numeric) -> Dict[str, str]:
    if not is_numeric(payroll) or parse_numeric(payroll) < 0:
        return {'s2': 'Invalid Payroll amount'}
    if not is_numeric(assets) or parse_numeric(assets) < 0:
        return {'s2': 'Invalid Asset amount'}
    return {}


def calculate_sbie(payroll: Numeric, assets: Numeric, fiscal_year=2024,
                   sbie: Optional[SBIEDetails] = None) -> Step2Result:
    """Step 2: payroll and tangible asset carve-outs at the fiscal year's rates."""
    sbie = sbie or default_sbie_details()
    rates = sbie.rates_for(fiscal_year)
    amounts = sbie.carve_out(parse_numeric(payroll), parse_numeric(assets), fiscal_year)
    return Step2Result(
        rates=rates,
        pay_sbie=round_amount(amounts["payroll"], 2),
        ast_sbie=round_amount(amounts["assets"], 2),
        total_sbie=round_amount(amounts["total"], 2),
    )


def validate_step3(qdmtt: Numeric, step1: Optional[Step1Result] = None,
                   step2: Optional[Step2Result] = None) -> Dict[str, str]:
    if step1 is None or step2 is None:
        return {'s3': 'Complete Steps 1 and 2 before calculating top-up tax'}
    if parse_numeric(qdmtt) < 0:
        return {'s3': 'QDMTT cannot be negative'}
    return {}


def calculate_top_up(income: Numeric, step1: Step1Result, step2: Step2Result,
                     qdmtt: Numeric = 0) -> Step3Result:
    """Step 3: excess profit, gross top-up, QDMTT offset and net top-up tax.

    The top-up percentage and SBIE are taken from the rounded Step 1 and Step 2
    results, so a replayed calculation chains the same figures.
    Assumes ``validate_step3`` passed; missing steps raise ValueError.
    """
    if step1 is None or step2 is None:
        raise ValueError("Step 3 requires Step 1 and Step 2 results")

    excess = max(0.0, parse_numeric(income) - step2.total_sbie)
    gross = excess * (step1.top_up_pct / 100)
    offset = min(parse_numeric(qdmtt), gross)
    net = max(0.0, gross - offset)

    if step1.status == COMPLIANT:
        status = COMPLIANT
    elif excess <= 0:
        status = NO_EXCESS
    elif net <= 0 and offset > 0:
        status = QDMTT_OFFSET
    else:
        status = TOP_UP_DUE

    return Step3Result(
        excess_profit=round_amount(excess, 2),
        gross_top_up=round_amount(gross, 2),
        qdmtt_offset=round_amount(offset, 2),
        net_top_up=round_amount(net, 2),
        status=status,
    )
