"""Records for the GloBE top-up tax calculators.

The stepwise GloBE Calculator keeps the raw text the user typed in the
``Step*Data`` records and the derived numbers in the ``Step*Result`` records.
``JurisdictionCalcEntry``/``JurisdictionCalcResult`` are the one-shot
per-jurisdiction computation shared with the GIR practice form.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from model.records import record_from_dict, normalise_keys

Numeric = Union[str, int, float]

# Step 1 / single-jurisdiction status
COMPLIANT = 'COMPLIANT'
LOW_TAXED = 'LOW_TAXED'
WARNING = 'WARNING'

# Step 3 status
TOP_UP_DUE = 'TOP_UP_DUE'
NO_EXCESS = 'NO_EXCESS'
QDMTT_OFFSET = 'QDMTT_OFFSET'


@dataclass(frozen=True)
class SBIERates:
    """Carve-out percentages (e.g. 9.8 for 9.8%) for one fiscal year."""
    payroll: float
    asset: float


@dataclass
class Step1Data:
    income: str = ''
    taxes: str = ''


@dataclass(frozen=True)
class Step1Result:
    etr: float          # percent, 2dp
    top_up_pct: float   # percent, 2dp
    status: str


@dataclass
class Step2Data:
    payroll: str = ''
    assets: str = ''


@dataclass(frozen=True)
class Step2Result:
    rates: SBIERates
    pay_sbie: float
    ast_sbie: float
    total_sbie: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Step2Result':
        values = normalise_keys(data)
        rates = values.get('rates') or {}
        return cls(
            rates=SBIERates(payroll=rates.get('payroll', 0.0), asset=rates.get('asset', 0.0)),
            pay_sbie=values.get('pay_sbie', 0.0),
            ast_sbie=values.get('ast_sbie', 0.0),
            total_sbie=values.get('total_sbie', 0.0),
        )


@dataclass
class Step3Data:
    qdmtt: str = ''


@dataclass(frozen=True)
class Step3Result:
    excess_profit: float
    gross_top_up: float
    qdmtt_offset: float
    net_top_up: float
    status: str


@dataclass
class JurisdictionCalcEntry:
    """Raw inputs for one jurisdiction. Any field may be a number or user text."""
    jurisdiction: str = ''
    # GloBE income
    fani: Numeric = 0
    net_taxes: Numeric = 0
    excluded_dividends: Numeric = 0
    excluded_equity: Numeric = 0
    disallowed_expenses: Numeric = 0
    stock_comp_adj: Numeric = 0
    other_adj: Numeric = 0
    # Covered taxes
    current_tax: Numeric = 0
    deferred_tax: Numeric = 0
    utp_adj: Numeric = 0
    non_covered_adj: Numeric = 0
    # SBIE
    payroll_costs: Numeric = 0
    tangible_assets: Numeric = 0
    # Top-up
    qdmtt: Numeric = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JurisdictionCalcEntry':
        return record_from_dict(cls, data)


@dataclass(frozen=True)
class JurisdictionCalcResult:
    """Full derivation chain for one jurisdiction.

    ``etr`` and ``top_up_tax_pct`` are fractions (0.1103 == 11.03%).
    ``etr_status`` is the ETR classification before top-up refinement.
    """
    jurisdiction: str
    globe_income: float
    adjusted_covered_taxes: float
    total_sbie: float
    etr: float
    top_up_tax_pct: float
    excess_profit: float
    gross_top_up: float
    net_top_up: float
    status: str
    etr_status: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JurisdictionCalcResult':
        return record_from_dict(cls, data)


def optional_from_dict(cls, data: Optional[Dict[str, Any]]):
    """Rebuild an optional stored result; ``None`` stays ``None``."""
    if data is None:
        return None
    if hasattr(cls, 'from_dict'):
        return cls.from_dict(data)
    return record_from_dict(cls, data)
