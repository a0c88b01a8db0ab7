"""Runs a scenario spec through the matching calculator.

Scenario inputs use the camelCase keys of the web tools' saved data, e.g.::

    {"tool": "globe", "inputs": {"fiscalYear": "2024", "currency": "EUR",
                                 "entry": {"jurisdiction": "IE", "fani": 28000000, ...}}}

Validation problems come back as field-keyed ``errors`` on the result rather
than exceptions; an unknown tool or malformed spec raises ``ValueError``.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from calc import audit_checklist, dfe_calculator, gir_calculator
from calc.deadline_calculator import calculate_deadline, parse_date, validate
from calc.globe_calculator import calculate_jurisdiction
from calc.safe_harbour_calculator import SafeHarbourCalculator
from calc.sessions import GloBESession
from model.AuditData import AuditMetadata, item_states_from_dict
from model.DFEData import DFECandidate, MNEInfo
from model.DeadlineData import DeadlineFormData
from model.GIRData import EntityData, GeneralInformation
from model.GloBEData import JurisdictionCalcEntry, Step1Data, Step2Data, Step3Data
from model.SafeHarbourData import DeMinimisData, RoutineProfitsData, SimplifiedETRData
from model.ScenarioData import (
    AUDIT,
    DEADLINE,
    DFE,
    GIR,
    GLOBE,
    GLOBE_STEPS,
    SAFE_HARBOUR,
    TOOLS,
    AuditReport,
    DFEReport,
    GIRReport,
    GloBEStepsReport,
    ScenarioResult,
)
from model.records import normalise_keys, record_from_dict, unknown_keys

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return '' if value is None else str(value)


def _run_globe(inputs: Dict[str, Any], result: ScenarioResult) -> None:
    raw_entry = inputs.get('entry') or {}
    unknown = unknown_keys(JurisdictionCalcEntry, raw_entry)
    if unknown:
        logger.warning("Rejecting GloBE entry with unknown fields: %s", ', '.join(unknown))
        result.jurisdiction = _text(raw_entry.get('jurisdiction')) or result.jurisdiction
        result.errors = {'entry': f"Unknown entry fields: {', '.join(unknown)}"}
        return
    entry = JurisdictionCalcEntry.from_dict(raw_entry)
    result.jurisdiction = entry.jurisdiction
    result.result = calculate_jurisdiction(entry, result.fiscal_year)


def _run_globe_steps(inputs: Dict[str, Any], result: ScenarioResult) -> None:
    session = GloBESession(mne_name=result.mne_name, jurisdiction=result.jurisdiction,
                           fiscal_year=result.fiscal_year, currency=result.currency)
    session.s1_data = Step1Data(income=_text(inputs.get('income')), taxes=_text(inputs.get('taxes')))
    session.s2_data = Step2Data(payroll=_text(inputs.get('payroll')), assets=_text(inputs.get('assets')))
    session.s3_data = Step3Data(qdmtt=_text(inputs.get('qdmtt')))

    # Each step only runs once the previous one succeeded
    if session.calculate_etr() and session.calculate_sbie():
        session.calculate_top_up()
    result.errors = dict(session.errors)
    result.result = GloBEStepsReport(step1=session.s1_result, step2=session.s2_result, step3=session.s3_result)


def _run_safe_harbour(inputs: Dict[str, Any], result: ScenarioResult) -> None:
    result.result = SafeHarbourCalculator().assess(
        record_from_dict(DeMinimisData, inputs.get('de_minimis') or {}),
        record_from_dict(SimplifiedETRData, inputs.get('simplified_etr') or {}),
        record_from_dict(RoutineProfitsData, inputs.get('routine_profits') or {}),
        result.fiscal_year,
    )


def _run_deadline(inputs: Dict[str, Any], result: ScenarioResult, today: Optional[date]) -> None:
    form = DeadlineFormData.from_dict(inputs)
    result.jurisdiction = form.filing_jurisdiction
    errors = validate(result.mne_name, form)
    if errors:
        result.errors = errors
        return
    result.result = calculate_deadline(form, today=today or parse_date(inputs.get('today')))


def _run_gir(inputs: Dict[str, Any], result: ScenarioResult) -> None:
    if inputs.get('case_study'):
        case = gir_calculator.load_case_study(inputs['case_study'])
        section1, section2, section3 = case.section1, case.section2, case.section3
        result.name = result.name or case.name
    else:
        section1 = GeneralInformation.from_dict(inputs.get('section1') or {})
        section2 = [EntityData.from_dict(e) for e in inputs.get('section2') or []]
        for j in inputs.get('section3') or []:
            unknown = unknown_keys(JurisdictionCalcEntry, j)
            if unknown:
                logger.warning("Ignoring unknown Section 3 fields for %s: %s",
                               j.get('jurisdiction', '?'), ', '.join(unknown))
        section3 = [JurisdictionCalcEntry.from_dict(j) for j in inputs.get('section3') or []]
    if inputs.get('add_missing_jurisdictions'):
        section3 = gir_calculator.add_missing_jurisdictions(section2, section3)

    fiscal_year = gir_calculator.fiscal_year_of(section1)
    result.mne_name = result.mne_name or section1.mne_group_name
    result.currency = section1.reporting_currency or result.currency
    result.fiscal_year = str(fiscal_year)
    result.result = GIRReport(
        section1=section1,
        fiscal_year=fiscal_year,
        results=gir_calculator.calculate_all(section3, fiscal_year),
        validation=gir_calculator.validation_status(section2, section3),
        section1_errors=gir_calculator.validate_general_information(section1),
        missing_jurisdictions=gir_calculator.missing_jurisdictions(section2, section3),
        parent_cycles=gir_calculator.find_parent_cycles(section2),
        dangling_parents=gir_calculator.find_dangling_parents(section2),
    )


def _run_dfe(inputs: Dict[str, Any], result: ScenarioResult) -> None:
    if inputs.get('case_study'):
        mne_info, candidates = dfe_calculator.load_dfe_case_study()
    else:
        mne_info = MNEInfo.from_dict(inputs.get('mne_info') or {})
        candidates = [DFECandidate.from_dict(c) for c in inputs.get('candidates') or []]
    result.mne_name = result.mne_name or mne_info.mne_group_name
    result.fiscal_year = str(mne_info.fiscal_year)
    result.result = DFEReport(mne_info=mne_info, ranking=dfe_calculator.rank_candidates(candidates))


def _run_audit(inputs: Dict[str, Any], result: ScenarioResult) -> None:
    if inputs.get('case_study'):
        metadata, item_states = audit_checklist.load_audit_case_study()
    else:
        metadata = AuditMetadata.from_dict(inputs.get('metadata') or {})
        item_states = item_states_from_dict(inputs.get('item_states'))
    result.mne_name = result.mne_name or metadata.entity_name
    result.fiscal_year = str(metadata.fiscal_year)
    result.name = result.name or audit_checklist.save_name(metadata)

    mode = _text(inputs.get('filter') or audit_checklist.FILTER_ALL).upper()
    if mode not in audit_checklist.FILTERS:
        result.errors = {'filter': f"Unknown checklist filter '{mode}'"}
        return
    search = _text(inputs.get('search'))
    result.result = AuditReport(
        metadata=metadata,
        item_states=item_states,
        stats=audit_checklist.calculate_stats(metadata, item_states),
        sections=audit_checklist.section_progress(metadata, item_states),
        gaps=audit_checklist.gap_analysis(metadata, item_states),
        filter=mode,
        search=search,
        items=audit_checklist.filter_items(metadata, item_states, mode, search),
    )


def run_scenario(spec: Dict[str, Any], name: str = '', today: Optional[date] = None) -> ScenarioResult:
    """Run ``{"tool": ..., "inputs": ...}`` and return the populated ScenarioResult."""
    tool = (spec or {}).get('tool')
    if tool not in TOOLS:
        raise ValueError(f"Unknown tool '{tool}'. Expected one of: {', '.join(TOOLS)}")

    inputs = normalise_keys(spec.get('inputs') or {})
    result = ScenarioResult(
        tool=tool,
        name=name,
        mne_name=_text(inputs.get('mne_name')),
        jurisdiction=_text(inputs.get('jurisdiction')),
        fiscal_year=_text(inputs.get('fiscal_year') or '2024'),
        currency=_text(inputs.get('currency') or 'EUR'),
    )
    logger.debug("Running %s scenario %s", tool, name or '<inline>')

    if tool == GLOBE:
        _run_globe(inputs, result)
    elif tool == GLOBE_STEPS:
        _run_globe_steps(inputs, result)
    elif tool == SAFE_HARBOUR:
        _run_safe_harbour(inputs, result)
    elif tool == DEADLINE:
        _run_deadline(inputs, result, today)
    elif tool == GIR:
        _run_gir(inputs, result)
    elif tool == DFE:
        _run_dfe(inputs, result)
    elif tool == AUDIT:
        _run_audit(inputs, result)

    if result.errors:
        logger.info("%s scenario %s has validation errors: %s", tool, name or '<inline>', result.errors)
    return result
