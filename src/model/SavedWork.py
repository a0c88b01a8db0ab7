"""Saved-work envelopes exchanged with the persistence collaborator.

Each envelope is a denormalised snapshot of a calculator's inputs and results.
``payload()`` is what gets handed to the store (the store owns ``id`` and
``updated_at``); ``from_dict()`` rebuilds the envelope from whatever the store
hands back. Stored results are replayed as-is, never recomputed, so a saved
calculation keeps its numbers even if the rate tables change later.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from model.AuditData import AuditMetadata, ItemState, item_states_from_dict
from model.DFEData import DFECandidate, MNEInfo
from model.DeadlineData import DeadlineFormData, DeadlineResult
from model.GIRData import EntityData, GeneralInformation
from model.GloBEData import (
    JurisdictionCalcEntry,
    Step1Data,
    Step1Result,
    Step2Data,
    Step2Result,
    Step3Data,
    Step3Result,
    optional_from_dict,
)
from model.SafeHarbourData import (
    DeMinimisData,
    RoutineProfitsData,
    SafeHarbourResult,
    SimplifiedETRData,
)
from model.records import normalise_keys, record_from_dict

# Tool identifiers used as the store namespace
GLOBE_CALCULATOR = 'globe-calculator'
SAFE_HARBOUR_QUALIFIER = 'safe-harbour-qualifier'
FILING_DEADLINE_CALCULATOR = 'filing-deadline-calculator'
GIR_PRACTICE_FORM = 'gir-practice-form'
DFE_ASSESSMENT_TOOL = 'dfe-assessment-tool'
AUDIT_FILE_CHECKLIST = 'audit-file-checklist'


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _dump(record: Any) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    if hasattr(record, 'to_dict'):
        return record.to_dict()
    return asdict(record)


@dataclass
class SavedCalculation:
    mne_name: str
    jurisdiction: str
    fiscal_year: str
    currency: str
    s1_data: Step1Data
    s1_result: Optional[Step1Result]
    s2_data: Step2Data
    s2_result: Optional[Step2Result]
    s3_data: Step3Data
    s3_result: Optional[Step3Result]
    unlocked_steps: List[int] = field(default_factory=lambda: [1])
    active_step: int = 1
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> Dict[str, Any]:
        return {
            'mne_name': self.mne_name,
            'jurisdiction': self.jurisdiction,
            'fiscal_year': self.fiscal_year,
            'currency': self.currency,
            's1_data': _dump(self.s1_data),
            's1_result': _dump(self.s1_result),
            's2_data': _dump(self.s2_data),
            's2_result': _dump(self.s2_result),
            's3_data': _dump(self.s3_data),
            's3_result': _dump(self.s3_result),
            'unlocked_steps': list(self.unlocked_steps),
            'active_step': self.active_step,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedCalculation':
        values = normalise_keys(data)
        return cls(
            id=values.get('id'),
            updated_at=_parse_timestamp(values.get('updated_at')),
            mne_name=values.get('mne_name', ''),
            jurisdiction=values.get('jurisdiction', ''),
            fiscal_year=str(values.get('fiscal_year', '')),
            currency=values.get('currency', 'EUR'),
            s1_data=record_from_dict(Step1Data, values.get('s1_data') or {}),
            s1_result=optional_from_dict(Step1Result, values.get('s1_result')),
            s2_data=record_from_dict(Step2Data, values.get('s2_data') or {}),
            s2_result=optional_from_dict(Step2Result, values.get('s2_result')),
            s3_data=record_from_dict(Step3Data, values.get('s3_data') or {}),
            s3_result=optional_from_dict(Step3Result, values.get('s3_result')),
            unlocked_steps=list(values.get('unlocked_steps') or [1]),
            active_step=values.get('active_step', 1),
        )


@dataclass
class SavedAssessment:
    mne_name: str
    jurisdiction: str
    fiscal_year: str
    currency: str
    de_minimis_data: DeMinimisData
    simplified_etr_data: SimplifiedETRData
    routine_profits_data: RoutineProfitsData
    result: Optional[SafeHarbourResult]
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> Dict[str, Any]:
        return {
            'mne_name': self.mne_name,
            'jurisdiction': self.jurisdiction,
            'fiscal_year': self.fiscal_year,
            'currency': self.currency,
            'de_minimis_data': _dump(self.de_minimis_data),
            'simplified_etr_data': _dump(self.simplified_etr_data),
            'routine_profits_data': _dump(self.routine_profits_data),
            'result': _dump(self.result),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedAssessment':
        values = normalise_keys(data)
        return cls(
            id=values.get('id'),
            updated_at=_parse_timestamp(values.get('updated_at')),
            mne_name=values.get('mne_name', ''),
            jurisdiction=values.get('jurisdiction', ''),
            fiscal_year=str(values.get('fiscal_year', '')),
            currency=values.get('currency', 'EUR'),
            de_minimis_data=record_from_dict(DeMinimisData, values.get('de_minimis_data') or {}),
            simplified_etr_data=record_from_dict(SimplifiedETRData, values.get('simplified_etr_data') or {}),
            routine_profits_data=record_from_dict(RoutineProfitsData, values.get('routine_profits_data') or {}),
            result=optional_from_dict(SafeHarbourResult, values.get('result')),
        )


@dataclass
class SavedDeadlineCalculation:
    mne_name: str
    form_data: DeadlineFormData
    result: Optional[DeadlineResult]
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> Dict[str, Any]:
        return {
            'mne_name': self.mne_name,
            'form_data': _dump(self.form_data),
            'result': _dump(self.result),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedDeadlineCalculation':
        values = normalise_keys(data)
        return cls(
            id=values.get('id'),
            updated_at=_parse_timestamp(values.get('updated_at')),
            mne_name=values.get('mne_name', ''),
            form_data=DeadlineFormData.from_dict(values.get('form_data') or {}),
            result=optional_from_dict(DeadlineResult, values.get('result')),
        )


@dataclass
class SavedPracticeSession:
    name: str
    section1: GeneralInformation
    section2: List[EntityData] = field(default_factory=list)
    section3: List[JurisdictionCalcEntry] = field(default_factory=list)
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'section1': _dump(self.section1),
            'section2': [_dump(e) for e in self.section2],
            'section3': [_dump(j) for j in self.section3],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedPracticeSession':
        values = normalise_keys(data)
        return cls(
            id=values.get('id'),
            updated_at=_parse_timestamp(values.get('updated_at')),
            name=values.get('name', ''),
            section1=GeneralInformation.from_dict(values.get('section1') or {}),
            section2=[EntityData.from_dict(e) for e in values.get('section2') or []],
            section3=[JurisdictionCalcEntry.from_dict(j) for j in values.get('section3') or []],
        )


@dataclass
class SavedDFEAssessment:
    name: str
    mne_info: MNEInfo
    candidates: List[DFECandidate] = field(default_factory=list)
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'mne_info': _dump(self.mne_info),
            'candidates': [_dump(c) for c in self.candidates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedDFEAssessment':
        values = normalise_keys(data)
        return cls(
            id=values.get('id'),
            updated_at=_parse_timestamp(values.get('updated_at')),
            name=values.get('name', ''),
            mne_info=MNEInfo.from_dict(values.get('mne_info') or {}),
            candidates=[DFECandidate.from_dict(c) for c in values.get('candidates') or []],
        )


@dataclass
class SavedAuditChecklist:
    name: str
    metadata: AuditMetadata
    item_states: Dict[str, ItemState] = field(default_factory=dict)
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'metadata': _dump(self.metadata),
            'item_states': {item_id: _dump(state) for item_id, state in self.item_states.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedAuditChecklist':
        values = normalise_keys(data)
        return cls(
            id=values.get('id'),
            updated_at=_parse_timestamp(values.get('updated_at')),
            name=values.get('name', ''),
            metadata=AuditMetadata.from_dict(values.get('metadata') or {}),
            item_states=item_states_from_dict(values.get('item_states')),
        )
