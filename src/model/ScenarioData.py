"""Containers for a scenario run, shared by the CLI and the MCP tools.

A scenario is ``{"tool": <name>, "inputs": {...}}``. Running one produces a
``ScenarioResult`` holding either field-keyed validation errors or the
calculator's result record.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from model.AuditData import (
    AuditMetadata,
    ChecklistItem,
    ChecklistStats,
    GapAnalysis,
    ItemState,
    SectionProgress,
)
from model.DFEData import RECOMMENDED, MNEInfo, ScoredCandidate
from model.GIRData import GeneralInformation, GIRValidationStatus
from model.GloBEData import JurisdictionCalcResult, Step1Result, Step2Result, Step3Result
from model.records import to_plain

# Tool names accepted in scenario files
GLOBE = 'globe'
GLOBE_STEPS = 'globe-steps'
SAFE_HARBOUR = 'safe-harbour'
DEADLINE = 'deadline'
GIR = 'gir'
DFE = 'dfe'
AUDIT = 'audit-checklist'
TOOLS = (GLOBE, GLOBE_STEPS, SAFE_HARBOUR, DEADLINE, GIR, DFE, AUDIT)


@dataclass(frozen=True)
class GloBEStepsReport:
    """Results of the guided calculator. Later steps are None if an earlier one failed validation."""
    step1: Optional[Step1Result]
    step2: Optional[Step2Result]
    step3: Optional[Step3Result]


@dataclass(frozen=True)
class GIRReport:
    section1: GeneralInformation
    fiscal_year: int
    results: List[JurisdictionCalcResult]
    validation: GIRValidationStatus
    section1_errors: Dict[str, str]
    missing_jurisdictions: List[str]
    parent_cycles: List[List[str]]
    dangling_parents: List[str]


@dataclass(frozen=True)
class DFEReport:
    mne_info: MNEInfo
    ranking: List[ScoredCandidate]

    @property
    def recommended(self) -> Optional[ScoredCandidate]:
        return next((c for c in self.ranking if c.status == RECOMMENDED), None)


@dataclass(frozen=True)
class AuditReport:
    """Audit file checklist dashboard. ``items`` is the checklist view after ``filter`` and ``search``."""
    metadata: AuditMetadata
    item_states: Dict[str, ItemState]
    stats: ChecklistStats
    sections: List[SectionProgress]
    gaps: GapAnalysis
    filter: str
    search: str
    items: List[ChecklistItem]


@dataclass
class ScenarioResult:
    tool: str
    name: str = ''
    mne_name: str = ''
    jurisdiction: str = ''
    fiscal_year: str = ''
    currency: str = 'EUR'
    errors: Dict[str, str] = field(default_factory=dict)
    result: Any = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tool': self.tool,
            'name': self.name,
            'mne_name': self.mne_name,
            'jurisdiction': self.jurisdiction,
            'fiscal_year': self.fiscal_year,
            'currency': self.currency,
            'errors': dict(self.errors),
            'result': to_plain(self.result),
        }
