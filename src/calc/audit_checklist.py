"""GIR audit file checklist: progress, gap analysis and the worked example.

Item states are keyed by item id. An item with no recorded state counts as
INCOMPLETE. Only items in the sections marked as included take part in the
overall statistics and the gap analysis.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from calc.numeric import round_amount
from model.AuditData import (
    COMPLETE,
    CRITICAL,
    IN_PROGRESS,
    INCOMPLETE,
    NOT_APPLICABLE,
    PRIORITIES,
    SUBSTANTIALLY_COMPLETE,
    AuditMetadata,
    ChecklistItem,
    ChecklistStats,
    GapAnalysis,
    ItemState,
    SectionProgress,
)
from tax.AuditChecklistDetails import AuditChecklistDetails, default_audit_checklist_details

logger = logging.getLogger(__name__)

# Checklist view filters
FILTER_ALL = 'ALL'
FILTER_INCOMPLETE = 'INCOMPLETE'
FILTER_CRITICAL = 'CRITICAL'
FILTERS = (FILTER_ALL, FILTER_INCOMPLETE, FILTER_CRITICAL)

NEXT_STATUS = {
    INCOMPLETE: COMPLETE,
    COMPLETE: NOT_APPLICABLE,
    NOT_APPLICABLE: IN_PROGRESS,
    IN_PROGRESS: INCOMPLETE,
}

SUBSTANTIALLY_COMPLETE_MIN_PCT = 90
IN_PROGRESS_MIN_PCT = 50

ItemStates = Mapping[str, ItemState]


def _percent(part: int, whole: int) -> int:
    return int(round_amount(part / whole * 100, 0)) if whole else 100


def status_of(item_states: ItemStates, item_id: str) -> str:
    state = item_states.get(item_id)
    return state.status if state is not None else INCOMPLETE


def next_status(current: str) -> str:
    """Status after one click on an item: INCOMPLETE, COMPLETE, N/A, IN PROGRESS, round again."""
    return NEXT_STATUS.get(current, INCOMPLETE)


def active_items(metadata: AuditMetadata,
                 details: Optional[AuditChecklistDetails] = None) -> List[ChecklistItem]:
    details = details or default_audit_checklist_details()
    return [item for item in details.items if metadata.sections_included.get(item.section, False)]


def calculate_stats(metadata: AuditMetadata, item_states: ItemStates,
                    details: Optional[AuditChecklistDetails] = None) -> ChecklistStats:
    """Overall progress.

    COMPLETE needs every applicable item done, CRITICAL ones included.
    Otherwise the status follows the completion percentage: 90 and above is
    SUBSTANTIALLY_COMPLETE, 50 and above IN_PROGRESS, anything lower INCOMPLETE.
    """
    active = active_items(metadata, details)
    applicable = [i for i in active if status_of(item_states, i.id) != NOT_APPLICABLE]
    completed = [i for i in applicable if status_of(item_states, i.id) == COMPLETE]
    critical = [i for i in applicable if i.priority == CRITICAL]
    critical_done = [i for i in critical if status_of(item_states, i.id) == COMPLETE]

    percent = _percent(len(completed), len(applicable))
    critical_complete = len(critical_done) == len(critical)
    if percent == 100 and critical_complete:
        overall = COMPLETE
    elif percent >= SUBSTANTIALLY_COMPLETE_MIN_PCT:
        overall = SUBSTANTIALLY_COMPLETE
    elif percent >= IN_PROGRESS_MIN_PCT:
        overall = IN_PROGRESS
    else:
        overall = INCOMPLETE

    return ChecklistStats(
        total=len(active),
        applicable=len(applicable),
        completed=len(completed),
        incomplete=len(applicable) - len(completed),
        na=len(active) - len(applicable),
        percent=percent,
        overall_status=overall,
        critical_complete=critical_complete,
    )


def section_progress(metadata: AuditMetadata, item_states: ItemStates,
                     details: Optional[AuditChecklistDetails] = None) -> List[SectionProgress]:
    """Completion of each included section, N/A items left out of the total."""
    details = details or default_audit_checklist_details()
    progress = []
    for section in details.sections:
        if not metadata.sections_included.get(section.id, False):
            continue
        statuses = [status_of(item_states, i.id) for i in details.items_in(section.id)]
        completed = statuses.count(COMPLETE)
        total = len(statuses) - statuses.count(NOT_APPLICABLE)
        progress.append(SectionProgress(section=section, completed=completed, total=total,
                                        percent=_percent(completed, total)))
    return progress


def filter_items(metadata: AuditMetadata, item_states: ItemStates, mode: str = FILTER_ALL,
                 search: str = '', details: Optional[AuditChecklistDetails] = None) -> List[ChecklistItem]:
    """Items of the included sections shown by the checklist view.

    INCOMPLETE hides COMPLETE and N/A items, CRITICAL keeps CRITICAL items
    only. ``search`` matches item text or id, ignoring case.
    """
    mode = (mode or FILTER_ALL).upper()
    if mode not in FILTERS:
        raise ValueError(f"Unknown checklist filter '{mode}'. Expected one of: {', '.join(FILTERS)}")
    needle = (search or '').strip().lower()

    shown = []
    for item in active_items(metadata, details):
        status = status_of(item_states, item.id)
        if mode == FILTER_INCOMPLETE and status in (COMPLETE, NOT_APPLICABLE):
            continue
        if mode == FILTER_CRITICAL and item.priority != CRITICAL:
            continue
        if needle and needle not in item.text.lower() and needle not in item.id.lower():
            continue
        shown.append(item)
    return shown


def gap_analysis(metadata: AuditMetadata, item_states: ItemStates,
                 details: Optional[AuditChecklistDetails] = None) -> GapAnalysis:
    """INCOMPLETE and IN_PROGRESS items, by priority then checklist order."""
    gaps = [i for i in active_items(metadata, details)
            if status_of(item_states, i.id) in (INCOMPLETE, IN_PROGRESS)]
    gaps.sort(key=lambda item: PRIORITIES.index(item.priority))
    return GapAnalysis(gaps=gaps)


def save_name(metadata: AuditMetadata) -> str:
    return f"{metadata.entity_name or 'Untitled'} - FY{metadata.fiscal_year}"


def load_audit_case_study(details: Optional[AuditChecklistDetails] = None
                          ) -> Tuple[AuditMetadata, Dict[str, ItemState]]:
    """The GlobalTech Manufacturing audit file, part way through preparation."""
    details = details or default_audit_checklist_details()
    case = details.case_study
    metadata = AuditMetadata.from_dict(case.get('metadata') or {})

    verified = set(case.get('verifiedSections') or [])
    drafts = set(case.get('draftItems') or [])
    states: Dict[str, ItemState] = {}
    for item in details.items:
        if item.section in verified:
            states[item.id] = ItemState(COMPLETE, case.get('verifiedNote', ''))
        elif item.id in drafts:
            states[item.id] = ItemState(COMPLETE, case.get('draftNote', ''))
        else:
            states[item.id] = ItemState()
    for item_id, state in (case.get('overrides') or {}).items():
        states[item_id] = ItemState.from_dict(state)
    logger.debug("Loaded audit case study for %s", metadata.entity_name)
    return metadata, states
