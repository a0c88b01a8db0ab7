"""Records for the GIR audit file checklist."""

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List

from model.records import normalise_keys, record_from_dict

# Item status
INCOMPLETE = 'INCOMPLETE'
COMPLETE = 'COMPLETE'
NOT_APPLICABLE = 'NOT_APPLICABLE'
IN_PROGRESS = 'IN_PROGRESS'
ITEM_STATUSES = (INCOMPLETE, COMPLETE, NOT_APPLICABLE, IN_PROGRESS)

# Item priority, most urgent first
CRITICAL = 'CRITICAL'
HIGH = 'HIGH'
MEDIUM = 'MEDIUM'
PRIORITIES = (CRITICAL, HIGH, MEDIUM)

# Overall checklist status (COMPLETE and IN_PROGRESS are shared with items)
SUBSTANTIALLY_COMPLETE = 'SUBSTANTIALLY_COMPLETE'

# GIR filing status recorded on the audit file
DRAFT = 'DRAFT'
PREPARED = 'PREPARED'
SUBMITTED = 'SUBMITTED'
AMENDED = 'AMENDED'
GIR_STATUSES = (DRAFT, PREPARED, SUBMITTED, AMENDED)

SECTION_IDS = ('section1', 'section2', 'section3', 'elections', 'safeHarbour', 'controls')


def all_sections_included() -> Dict[str, bool]:
    return {section_id: True for section_id in SECTION_IDS}


@dataclass(frozen=True)
class ChecklistSection:
    id: str
    title: str


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    section: str
    priority: str
    ref: str
    text: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChecklistItem':
        return record_from_dict(cls, data)


@dataclass(frozen=True)
class ItemState:
    status: str = INCOMPLETE
    notes: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ItemState':
        return record_from_dict(cls, data)


def item_states_from_dict(data: Dict[str, Any]) -> Dict[str, ItemState]:
    """Item states keyed by item id. Ids are kept as given, not snake-cased."""
    return {item_id: ItemState.from_dict(state) for item_id, state in (data or {}).items()}


@dataclass
class AuditMetadata:
    entity_name: str = ''
    fiscal_year: int = field(default_factory=lambda: date.today().year)
    jurisdiction_count: int = 1
    filing_entity: str = ''
    gir_status: str = DRAFT
    audit_date: str = field(default_factory=lambda: date.today().isoformat())
    sections_included: Dict[str, bool] = field(default_factory=all_sections_included)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditMetadata':
        values = normalise_keys(data)
        # Section ids are camelCase data, so the nested dict is merged rather than normalised
        sections = all_sections_included()
        sections.update(values.pop('sections_included', None) or {})
        values['sections_included'] = sections
        return record_from_dict(cls, values)


@dataclass(frozen=True)
class ChecklistStats:
    """Progress over the items of the included sections.

    ``applicable`` excludes NOT_APPLICABLE items; ``percent`` is the rounded
    share of applicable items that are COMPLETE, 100 when none are applicable.
    """
    total: int
    applicable: int
    completed: int
    incomplete: int
    na: int
    percent: int
    overall_status: str
    critical_complete: bool


@dataclass(frozen=True)
class SectionProgress:
    section: ChecklistSection
    completed: int
    total: int
    percent: int


@dataclass(frozen=True)
class GapAnalysis:
    """Outstanding items, CRITICAL first, then HIGH, then MEDIUM."""
    gaps: List[ChecklistItem]

    @property
    def total(self) -> int:
        return len(self.gaps)

    @property
    def critical(self) -> int:
        return sum(1 for item in self.gaps if item.priority == CRITICAL)

    @property
    def high(self) -> int:
        return sum(1 for item in self.gaps if item.priority == HIGH)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'critical': self.critical,
            'high': self.high,
            'gaps': [asdict(item) for item in self.gaps],
        }
