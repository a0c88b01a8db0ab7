"""Stateful calculator sessions and the saved-work store they persist to.

A session holds the caller-owned inputs and results for one calculator, runs
the pure engines on explicit calculate calls and records field-keyed errors.
Persistence goes through a ``SavedWorkStore``: ``save`` hands over a full
snapshot, ``load`` replays the stored results exactly as saved (nothing is
recomputed, so historical results survive rate table changes), and ``delete``
removes a record. Without a store, or when the store raises, each of the three
logs the failure, sets a ``global`` error and reports ``ERROR`` through
``save_status``; nothing is retried.
"""

import copy
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from calc import audit_checklist, deadline_calculator, dfe_calculator, gir_calculator, globe_calculator
from calc.safe_harbour_calculator import SafeHarbourCalculator
from model.AuditData import ITEM_STATUSES, AuditMetadata, ChecklistStats, GapAnalysis, ItemState
from model.DFEData import DFECandidate, MNEInfo, ScoredCandidate
from model.DeadlineData import DeadlineFormData, DeadlineResult
from model.GIRData import EntityData, GeneralInformation, GIRValidationStatus
from model.GloBEData import (
    JurisdictionCalcEntry,
    JurisdictionCalcResult,
    Step1Data,
    Step1Result,
    Step2Data,
    Step2Result,
    Step3Data,
    Step3Result,
)
from model.SafeHarbourData import (
    DeMinimisData,
    RoutineProfitsData,
    SafeHarbourResult,
    SimplifiedETRData,
)
from model.SavedWork import (
    AUDIT_FILE_CHECKLIST,
    DFE_ASSESSMENT_TOOL,
    FILING_DEADLINE_CALCULATOR,
    GIR_PRACTICE_FORM,
    GLOBE_CALCULATOR,
    SAFE_HARBOUR_QUALIFIER,
    SavedAssessment,
    SavedAuditChecklist,
    SavedCalculation,
    SavedDeadlineCalculation,
    SavedDFEAssessment,
    SavedPracticeSession,
)
from tax.AuditChecklistDetails import default_audit_checklist_details

logger = logging.getLogger(__name__)

# save_status values
IDLE = 'idle'
SAVING = 'saving'
SAVED = 'saved'
ERROR = 'error'


class SavedWorkStore(Protocol):
    async def save(self, tool_id: str, data: Dict[str, Any]) -> str:
        """Persist a snapshot and return its id. A snapshot carrying an ``id`` replaces that record."""
        ...

    async def load(self, tool_id: str, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def delete(self, tool_id: str, record_id: str) -> None:
        ...


class InMemorySavedWorkStore:
    """Process-local store keyed by tool id. Records are deep-copied in and out."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def save(self, tool_id: str, data: Dict[str, Any]) -> str:
        records = self._records.setdefault(tool_id, {})
        record_id = data.get('id') or str(uuid.uuid4())
        record = copy.deepcopy(data)
        record['id'] = record_id
        record['updated_at'] = datetime.now(timezone.utc).isoformat()
        records[record_id] = record
        logger.debug("Saved %s record %s", tool_id, record_id)
        return record_id

    async def load(self, tool_id: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(tool_id, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def delete(self, tool_id: str, record_id: str) -> None:
        self._records.get(tool_id, {}).pop(record_id, None)
        logger.debug("Deleted %s record %s", tool_id, record_id)

    def list(self, tool_id: str) -> List[Dict[str, Any]]:
        """Records for a tool, most recently updated first."""
        records = self._records.get(tool_id, {}).values()
        return [copy.deepcopy(r) for r in sorted(records, key=lambda r: r['updated_at'], reverse=True)]


class _Session:
    tool_id = ''
    envelope = None

    def __init__(self, store: Optional[SavedWorkStore] = None):
        self.store = store
        self.current_id: Optional[str] = None
        self.save_status = IDLE
        self.errors: Dict[str, str] = {}

    def snapshot(self):
        raise NotImplementedError

    def restore(self, envelope) -> None:
        raise NotImplementedError

    def _save_errors(self) -> Dict[str, str]:
        return {}

    async def save(self) -> Optional[str]:
        """Persist the current state; returns the record id, or None if not saved."""
        if self.store is None:
            self.errors = {'global': 'No saved-work store configured'}
            return None
        errors = self._save_errors()
        if errors:
            self.errors = errors
            return None

        self.save_status = SAVING
        payload = self.snapshot().payload()
        if self.current_id:
            payload['id'] = self.current_id
        try:
            record_id = await self.store.save(self.tool_id, payload)
        except Exception:
            logger.exception("Saving %s failed", self.tool_id)
            self.save_status = ERROR
            self.errors = {'global': 'Could not save work'}
            return None

        if not self.current_id:
            self.current_id = record_id
        self.save_status = SAVED
        logger.info("Saved %s record %s", self.tool_id, record_id)
        return record_id

    async def load(self, record_id: str) -> bool:
        """Replace the session state with a stored record; returns False on failure."""
        if self.store is None:
            self.errors = {'global': 'No saved-work store configured'}
            return False
        try:
            data = await self.store.load(self.tool_id, record_id)
        except Exception:
            logger.exception("Loading %s record %s failed", self.tool_id, record_id)
            self.save_status = ERROR
            self.errors = {'global': f'Could not load saved work {record_id}'}
            return False
        if data is None:
            logger.warning("No %s record with id %s", self.tool_id, record_id)
            self.errors = {'global': f'Saved work {record_id} not found'}
            return False
        envelope = self.envelope.from_dict(data)
        self.restore(envelope)
        self.current_id = record_id
        self.errors = {}
        logger.info("Loaded %s record %s", self.tool_id, record_id)
        return True

    async def delete(self, record_id: str) -> bool:
        """Remove a stored record; returns False if the store is missing or fails."""
        if self.store is None:
            self.errors = {'global': 'No saved-work store configured'}
            return False
        try:
            await self.store.delete(self.tool_id, record_id)
        except Exception:
            logger.exception("Deleting %s record %s failed", self.tool_id, record_id)
            self.save_status = ERROR
            self.errors = {'global': f'Could not delete saved work {record_id}'}
            return False
        if self.current_id == record_id:
            self.current_id = None
        return True


class GloBESession(_Session):
    """Guided three-step GloBE Calculator for one jurisdiction.

    Step 2 unlocks after a successful Step 1 and Step 3 after Step 2.
    """

    tool_id = GLOBE_CALCULATOR
    envelope = SavedCalculation

    def __init__(self, store: Optional[SavedWorkStore] = None, mne_name: str = '',
                 jurisdiction: str = '', fiscal_year: str = '2024', currency: str = 'EUR'):
        super().__init__(store)
        self.mne_name = mne_name
        self.jurisdiction = jurisdiction
        self.fiscal_year = fiscal_year
        self.currency = currency
        self._clear_steps()

    def _clear_steps(self):
        self.s1_data = Step1Data()
        self.s1_result: Optional[Step1Result] = None
        self.s2_data = Step2Data()
        self.s2_result: Optional[Step2Result] = None
        self.s3_data = Step3Data()
        self.s3_result: Optional[Step3Result] = None
        self.unlocked_steps = [1]
        self.active_step = 1

    def start(self, mne_name: str) -> bool:
        if not (mne_name or '').strip():
            self.errors = {'mne': 'Please enter an MNE Group Name to proceed.'}
            return False
        self.mne_name = mne_name.strip()
        self.errors = {}
        return True

    def _unlock(self, step: int):
        if step not in self.unlocked_steps:
            self.unlocked_steps.append(step)

    def calculate_etr(self) -> Optional[Step1Result]:
        errors = globe_calculator.validate_step1(self.s1_data.income, self.s1_data.taxes)
        if errors:
            self.errors = errors
            return None
        self.s1_result = globe_calculator.calculate_etr(self.s1_data.income, self.s1_data.taxes)
        self.errors = {}
        self._unlock(2)
        return self.s1_result

    def calculate_sbie(self) -> Optional[Step2Result]:
        errors = globe_calculator.validate_step2(self.s2_data.payroll, self.s2_data.assets)
        if errors:
            self.errors = errors
            return None
        self.s2_result = globe_calculator.calculate_sbie(self.s2_data.payroll, self.s2_data.assets, self.fiscal_year)
        self.errors = {}
        self._unlock(3)
        return self.s2_result

    def calculate_top_up(self) -> Optional[Step3Result]:
        errors = globe_calculator.validate_step3(self.s3_data.qdmtt, self.s1_result, self.s2_result)
        if errors:
            self.errors = errors
            return None
        self.s3_result = globe_calculator.calculate_top_up(
            self.s1_data.income, self.s1_result, self.s2_result, self.s3_data.qdmtt)
        self.errors = {}
        return self.s3_result

    def reset_for_next(self):
        """Start a new jurisdiction for the same MNE group."""
        self.current_id = None
        self.jurisdiction = ''
        self._clear_steps()
        self.errors = {}

    def _save_errors(self) -> Dict[str, str]:
        if self.s1_result is None:
            return {'global': 'Please calculate ETR before saving.'}
        return {}

    def snapshot(self) -> SavedCalculation:
        return SavedCalculation(
            id=self.current_id,
            mne_name=self.mne_name,
            jurisdiction=self.jurisdiction,
            fiscal_year=self.fiscal_year,
            currency=self.currency,
            s1_data=replace(self.s1_data),
            s1_result=self.s1_result,
            s2_data=replace(self.s2_data),
            s2_result=self.s2_result,
            s3_data=replace(self.s3_data),
            s3_result=self.s3_result,
            unlocked_steps=list(self.unlocked_steps),
            active_step=self.active_step,
        )

    def restore(self, envelope: SavedCalculation) -> None:
        self.mne_name = envelope.mne_name
        self.jurisdiction = envelope.jurisdiction
        self.fiscal_year = envelope.fiscal_year
        self.currency = envelope.currency
        self.s1_data = envelope.s1_data
        self.s1_result = envelope.s1_result
        self.s2_data = envelope.s2_data
        self.s2_result = envelope.s2_result
        self.s3_data = envelope.s3_data
        self.s3_result = envelope.s3_result
        self.unlocked_steps = list(envelope.unlocked_steps)
        self.active_step = envelope.active_step


class SafeHarbourSession(_Session):
    tool_id = SAFE_HARBOUR_QUALIFIER
    envelope = SavedAssessment

    def __init__(self, store: Optional[SavedWorkStore] = None, calculator: Optional[SafeHarbourCalculator] = None):
        super().__init__(store)
        self.calculator = calculator or SafeHarbourCalculator()
        self.reset()

    def reset(self):
        self.mne_name = ''
        self.jurisdiction = ''
        self.fiscal_year = '2024'
        self.currency = 'EUR'
        self.de_minimis_data = DeMinimisData()
        self.simplified_etr_data = SimplifiedETRData()
        self.routine_profits_data = RoutineProfitsData()
        self.result: Optional[SafeHarbourResult] = None

    def run_assessment(self) -> SafeHarbourResult:
        self.result = self.calculator.assess(self.de_minimis_data, self.simplified_etr_data,
                                             self.routine_profits_data, self.fiscal_year)
        self.errors = {}
        return self.result

    def _save_errors(self) -> Dict[str, str]:
        errors = {}
        if not self.mne_name.strip():
            errors['mne'] = 'MNE Group Name is required'
        if not self.jurisdiction.strip():
            errors['jurisdiction'] = 'Jurisdiction is required'
        return errors

    def snapshot(self) -> SavedAssessment:
        return SavedAssessment(
            id=self.current_id,
            mne_name=self.mne_name,
            jurisdiction=self.jurisdiction,
            fiscal_year=self.fiscal_year,
            currency=self.currency,
            de_minimis_data=replace(self.de_minimis_data),
            simplified_etr_data=replace(self.simplified_etr_data),
            routine_profits_data=replace(self.routine_profits_data),
            result=self.result,
        )

    def restore(self, envelope: SavedAssessment) -> None:
        self.mne_name = envelope.mne_name
        self.jurisdiction = envelope.jurisdiction
        self.fiscal_year = envelope.fiscal_year
        self.currency = envelope.currency
        self.de_minimis_data = envelope.de_minimis_data
        self.simplified_etr_data = envelope.simplified_etr_data
        self.routine_profits_data = envelope.routine_profits_data
        self.result = envelope.result


class DeadlineSession(_Session):
    tool_id = FILING_DEADLINE_CALCULATOR
    envelope = SavedDeadlineCalculation

    def __init__(self, store: Optional[SavedWorkStore] = None, today: Optional[date] = None):
        super().__init__(store)
        self.today = today
        self.mne_name = ''
        self.form = DeadlineFormData()
        self.result: Optional[DeadlineResult] = None

    def calculate(self) -> Optional[DeadlineResult]:
        errors = deadline_calculator.validate(self.mne_name, self.form)
        if errors:
            self.errors = errors
            return None
        self.result = deadline_calculator.calculate_deadline(self.form, today=self.today)
        self.errors = {}
        return self.result

    def _save_errors(self) -> Dict[str, str]:
        if not self.mne_name.strip():
            return {'mne': 'MNE Group Name is required'}
        if self.result is None and self.calculate() is None:
            return self.errors
        return {}

    def snapshot(self) -> SavedDeadlineCalculation:
        return SavedDeadlineCalculation(
            id=self.current_id,
            mne_name=self.mne_name,
            form_data=replace(self.form),
            result=self.result,
        )

    def restore(self, envelope: SavedDeadlineCalculation) -> None:
        self.mne_name = envelope.mne_name
        self.form = envelope.form_data
        self.result = envelope.result


class PracticeSession(_Session):
    """GIR practice form: general information, entity structure and computations."""

    tool_id = GIR_PRACTICE_FORM
    envelope = SavedPracticeSession

    def __init__(self, store: Optional[SavedWorkStore] = None):
        super().__init__(store)
        self.name = ''
        self.reset()

    def reset(self):
        self.section1 = GeneralInformation()
        self.section2: List[EntityData] = []
        self.section3: List[JurisdictionCalcEntry] = []

    def load_case_study(self, case_id: str = 'CS1'):
        case = gir_calculator.load_case_study(case_id)
        self.section1 = case.section1
        self.section2 = list(case.section2)
        self.section3 = list(case.section3)
        self.name = case.name

    def add_entity(self, entity: EntityData) -> EntityData:
        if not entity.id:
            entity = replace(entity, id=uuid.uuid4().hex[:8])
        self.section2.append(entity)
        return entity

    def remove_entity(self, entity_id: str):
        self.section2 = [e for e in self.section2 if e.id != entity_id]

    def add_missing_jurisdictions(self) -> List[str]:
        missing = gir_calculator.missing_jurisdictions(self.section2, self.section3)
        self.section3 = gir_calculator.add_missing_jurisdictions(self.section2, self.section3)
        return missing

    def fiscal_year(self) -> int:
        return gir_calculator.fiscal_year_of(self.section1)

    def results(self) -> List[JurisdictionCalcResult]:
        return gir_calculator.calculate_all(self.section3, self.fiscal_year())

    def validation_status(self) -> GIRValidationStatus:
        return gir_calculator.validation_status(self.section2, self.section3)

    def structure_warnings(self) -> Dict[str, Any]:
        return {
            'parent_cycles': gir_calculator.find_parent_cycles(self.section2),
            'dangling_parents': gir_calculator.find_dangling_parents(self.section2),
            'missing_jurisdictions': gir_calculator.missing_jurisdictions(self.section2, self.section3),
        }

    def validate(self) -> Dict[str, str]:
        self.errors = gir_calculator.validate_general_information(self.section1)
        return self.errors

    def snapshot(self) -> SavedPracticeSession:
        name = self.name or f"{self.section1.mne_group_name or 'Untitled'} - {datetime.now():%H:%M:%S}"
        return SavedPracticeSession(
            id=self.current_id,
            name=name,
            section1=replace(self.section1),
            section2=[replace(e) for e in self.section2],
            section3=[replace(j) for j in self.section3],
        )

    def restore(self, envelope: SavedPracticeSession) -> None:
        self.name = envelope.name
        self.section1 = envelope.section1
        self.section2 = list(envelope.section2)
        self.section3 = list(envelope.section3)


class DFESession(_Session):
    tool_id = DFE_ASSESSMENT_TOOL
    envelope = SavedDFEAssessment

    def __init__(self, store: Optional[SavedWorkStore] = None):
        super().__init__(store)
        self.name = ''
        self.mne_info = MNEInfo(fiscal_year=date.today().year)
        self.candidates: List[DFECandidate] = []

    def load_case_study(self):
        self.mne_info, self.candidates = dfe_calculator.load_dfe_case_study()

    def add_candidate(self, candidate: DFECandidate) -> DFECandidate:
        if not candidate.id:
            candidate = replace(candidate, id=uuid.uuid4().hex[:8])
        self.candidates.append(candidate)
        return candidate

    def remove_candidate(self, candidate_id: str):
        self.candidates = [c for c in self.candidates if c.id != candidate_id]

    def ranked(self) -> List[ScoredCandidate]:
        return dfe_calculator.rank_candidates(self.candidates)

    def snapshot(self) -> SavedDFEAssessment:
        name = self.name or f"{self.mne_info.mne_group_name or 'Untitled'} - {date.today():%d/%m/%Y}"
        return SavedDFEAssessment(
            id=self.current_id,
            name=name,
            mne_info=replace(self.mne_info),
            candidates=[replace(c) for c in self.candidates],
        )

    def restore(self, envelope: SavedDFEAssessment) -> None:
        self.name = envelope.name
        self.mne_info = envelope.mne_info
        self.candidates = list(envelope.candidates)


class AuditChecklistSession(_Session):
    """GIR audit file checklist. Starting needs an entity name."""

    tool_id = AUDIT_FILE_CHECKLIST
    envelope = SavedAuditChecklist

    def __init__(self, store: Optional[SavedWorkStore] = None):
        super().__init__(store)
        self.metadata = AuditMetadata()
        self.item_states: Dict[str, ItemState] = {}

    def start(self) -> bool:
        if not self.metadata.entity_name.strip():
            self.errors = {'entity_name': 'Please enter an entity name to start the checklist.'}
            return False
        self.errors = {}
        return True

    def load_case_study(self):
        self.metadata, self.item_states = audit_checklist.load_audit_case_study()
        self.errors = {}

    def _known_item(self, item_id: str) -> bool:
        try:
            default_audit_checklist_details().item(item_id)
        except KeyError:
            self.errors = {'item': f'Unknown checklist item {item_id}'}
            return False
        return True

    def set_status(self, item_id: str, status: str) -> bool:
        if not self._known_item(item_id):
            return False
        if status not in ITEM_STATUSES:
            self.errors = {'status': f'Unknown item status {status}'}
            return False
        self.item_states[item_id] = replace(self.item_states.get(item_id, ItemState()), status=status)
        self.errors = {}
        return True

    def cycle_status(self, item_id: str) -> Optional[str]:
        """Advance an item to its next status and return it."""
        status = audit_checklist.next_status(audit_checklist.status_of(self.item_states, item_id))
        return status if self.set_status(item_id, status) else None

    def set_notes(self, item_id: str, notes: str) -> bool:
        if not self._known_item(item_id):
            return False
        self.item_states[item_id] = replace(self.item_states.get(item_id, ItemState()), notes=notes or '')
        self.errors = {}
        return True

    def stats(self) -> ChecklistStats:
        return audit_checklist.calculate_stats(self.metadata, self.item_states)

    def gaps(self) -> GapAnalysis:
        return audit_checklist.gap_analysis(self.metadata, self.item_states)

    def snapshot(self) -> SavedAuditChecklist:
        return SavedAuditChecklist(
            id=self.current_id,
            name=audit_checklist.save_name(self.metadata),
            metadata=replace(self.metadata, sections_included=dict(self.metadata.sections_included)),
            item_states=dict(self.item_states),
        )

    def restore(self, envelope: SavedAuditChecklist) -> None:
        self.metadata = envelope.metadata
        self.item_states = dict(envelope.item_states)
