"""Records for the Transitional CbCR Safe Harbour tests."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from model.records import record_from_dict, normalise_keys

# Simplified ETR status
ABOVE_THRESHOLD = 'ABOVE_THRESHOLD'
BELOW_THRESHOLD = 'BELOW_THRESHOLD'
LOSS_MAKING = 'LOSS_MAKING'

# Qualifying test identifiers, in reporting priority order
DE_MINIMIS = 'de_minimis'
SIMPLIFIED_ETR = 'simplified_etr'
ROUTINE_PROFITS = 'routine_profits'
TEST_PRIORITY = (DE_MINIMIS, SIMPLIFIED_ETR, ROUTINE_PROFITS)


@dataclass
class DeMinimisData:
    total_revenue: str = ''
    profit_before_tax: str = ''


@dataclass(frozen=True)
class DeMinimisResult:
    revenue_threshold: float
    profit_threshold: float
    meets_revenue: bool
    meets_profit: bool
    qualifies: bool


@dataclass
class SimplifiedETRData:
    simplified_covered_taxes: str = ''
    profit_before_tax: str = ''


@dataclass(frozen=True)
class SimplifiedETRResult:
    calculated_etr: Optional[float]  # None when loss-making
    transition_rate: float
    qualifies: bool
    status: str


@dataclass
class RoutineProfitsData:
    profit_before_tax: str = ''
    eligible_payroll: str = ''
    tangible_assets: str = ''


@dataclass(frozen=True)
class RoutineProfitsResult:
    sbie_payroll: float
    sbie_assets: float
    total_sbie: float
    profit_exceeds_sbie: bool
    qualifies: bool


@dataclass(frozen=True)
class SafeHarbourResult:
    de_minimis: Optional[DeMinimisResult]
    simplified_etr: Optional[SimplifiedETRResult]
    routine_profits: Optional[RoutineProfitsResult]
    overall_qualifies: bool
    qualifying_test: Optional[str]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SafeHarbourResult':
        values = normalise_keys(data)

        def sub(record_cls, key):
            raw = values.get(key)
            return record_from_dict(record_cls, raw) if raw is not None else None

        return cls(
            de_minimis=sub(DeMinimisResult, 'de_minimis'),
            simplified_etr=sub(SimplifiedETRResult, 'simplified_etr'),
            routine_profits=sub(RoutineProfitsResult, 'routine_profits'),
            overall_qualifies=bool(values.get('overall_qualifies', False)),
            qualifying_test=values.get('qualifying_test'),
        )
