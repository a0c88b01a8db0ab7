"""Records for the GIR filing deadline calculator.

Dates are held as ``datetime.date`` and serialised as ISO ``YYYY-MM-DD``
strings so a saved calculation reloads to the same values.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Tuple

from model.records import normalise_keys

# Milestone status
PENDING = 'PENDING'
OVERDUE = 'OVERDUE'
TODAY = 'TODAY'
URGENT = 'URGENT'


@dataclass(frozen=True)
class JurisdictionInfo:
    code: str
    name: str
    filing_authority: str
    filing_portal: str
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'name': self.name,
            'filing_authority': self.filing_authority,
            'filing_portal': self.filing_portal,
            'notes': list(self.notes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JurisdictionInfo':
        values = normalise_keys(data)
        return cls(
            code=values.get('code', ''),
            name=values.get('name', ''),
            filing_authority=values.get('filing_authority', values.get('authority', '')),
            filing_portal=values.get('filing_portal', values.get('portal', '')),
            notes=tuple(values.get('notes', ())),
        )


@dataclass
class DeadlineFormData:
    fiscal_year_end: str = ''
    filing_jurisdiction: str = ''
    upe_location: str = ''
    is_first_filing: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeadlineFormData':
        values = normalise_keys(data)
        first = values.get('is_first_filing', True)
        if isinstance(first, str):
            first = first.strip().lower() in ('yes', 'true', 'y', '1')
        return cls(
            fiscal_year_end=values.get('fiscal_year_end', '') or '',
            filing_jurisdiction=values.get('filing_jurisdiction', '') or '',
            upe_location=values.get('upe_location', '') or '',
            is_first_filing=bool(first),
        )


@dataclass(frozen=True)
class Milestone:
    name: str
    description: str
    months_prior: int
    date: date
    days_away: int
    is_deadline: bool
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'months_prior': self.months_prior,
            'date': self.date.isoformat(),
            'days_away': self.days_away,
            'is_deadline': self.is_deadline,
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Milestone':
        values = normalise_keys(data)
        return cls(
            name=values['name'],
            description=values.get('description', ''),
            months_prior=values.get('months_prior', 0),
            date=date.fromisoformat(values['date'][:10]),
            days_away=values['days_away'],
            is_deadline=bool(values.get('is_deadline', False)),
            status=values.get('status', PENDING),
        )


@dataclass(frozen=True)
class DeadlineResult:
    fy_end: date
    standard_deadline: date
    applicable_deadline: date
    is_first: bool
    days_remaining: int
    jurisdiction: JurisdictionInfo
    milestones: List[Milestone] = field(default_factory=list)

    @property
    def is_overdue(self) -> bool:
        return self.days_remaining < 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fy_end': self.fy_end.isoformat(),
            'standard_deadline': self.standard_deadline.isoformat(),
            'applicable_deadline': self.applicable_deadline.isoformat(),
            'is_first': self.is_first,
            'days_remaining': self.days_remaining,
            'jurisdiction': self.jurisdiction.to_dict(),
            'milestones': [m.to_dict() for m in self.milestones],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeadlineResult':
        values = normalise_keys(data)
        return cls(
            fy_end=date.fromisoformat(values['fy_end'][:10]),
            standard_deadline=date.fromisoformat(values['standard_deadline'][:10]),
            applicable_deadline=date.fromisoformat(values['applicable_deadline'][:10]),
            is_first=bool(values['is_first']),
            days_remaining=values['days_remaining'],
            jurisdiction=JurisdictionInfo.from_dict(values['jurisdiction']),
            milestones=[Milestone.from_dict(m) for m in values.get('milestones', [])],
        )
