"""GIR practice form engine.

Section 3 computations reuse the single-jurisdiction GloBE engine per entry;
jurisdictions are never blended. Structure checks over Section 2 (parent cycles
and dangling parent references) are advisory and never block a calculation.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from calc.deadline_calculator import EARLIEST_FY_END, parse_date
from calc.globe_calculator import calculate_jurisdiction
from calc.numeric import parse_numeric
from model.GIRData import CaseStudy, EntityData, GeneralInformation, GIRValidationStatus
from model.GloBEData import JurisdictionCalcEntry, JurisdictionCalcResult
from model.field_metadata import get_label, required_fields
from tax.SBIEDetails import SBIEDetails
from tax.year_table import load_reference

logger = logging.getLogger(__name__)

CASE_STUDIES_FILE = 'case-studies.json'


def calculate_all(entries: Sequence[JurisdictionCalcEntry], fiscal_year=2024,
                  sbie: Optional[SBIEDetails] = None) -> List[JurisdictionCalcResult]:
    return [calculate_jurisdiction(entry, fiscal_year, sbie) for entry in entries]


def needed_jurisdictions(entities: Sequence[EntityData]) -> List[str]:
    """Distinct non-empty Section 2 jurisdictions in first-seen order."""
    seen = []
    for entity in entities:
        if entity.jurisdiction and entity.jurisdiction not in seen:
            seen.append(entity.jurisdiction)
    return seen


def missing_jurisdictions(entities: Sequence[EntityData],
                          entries: Sequence[JurisdictionCalcEntry]) -> List[str]:
    present = {entry.jurisdiction for entry in entries}
    return [code for code in needed_jurisdictions(entities) if code not in present]


def add_missing_jurisdictions(entities: Sequence[EntityData],
                              entries: Sequence[JurisdictionCalcEntry]) -> List[JurisdictionCalcEntry]:
    """A new Section 3 list with a blank entry appended per missing jurisdiction."""
    return list(entries) + [JurisdictionCalcEntry(jurisdiction=code)
                            for code in missing_jurisdictions(entities, entries)]


def validation_status(entities: Sequence[EntityData],
                      entries: Sequence[JurisdictionCalcEntry]) -> GIRValidationStatus:
    """Count of structure jurisdictions against count of Section 3 entries.

    This compares counts only; use ``missing_jurisdictions`` to see which codes
    are absent.
    """
    s2_count = len(needed_jurisdictions(entities))
    s3_count = len(entries)
    return GIRValidationStatus(jurisdiction_match=s2_count <= s3_count, s2_count=s2_count, s3_count=s3_count)


def find_dangling_parents(entities: Sequence[EntityData]) -> List[str]:
    """Ids of entities whose direct parent is not in the structure."""
    ids = {entity.id for entity in entities}
    return [entity.id for entity in entities if entity.direct_parent and entity.direct_parent not in ids]


def find_parent_cycles(entities: Sequence[EntityData]) -> List[List[str]]:
    """Each ownership cycle once, as the list of entity ids around the loop."""
    parent_of = {entity.id: entity.direct_parent for entity in entities if entity.id}
    cycles = []
    finished = set()

    for start in parent_of:
        path = []
        position = {}
        current = start
        while current and current in parent_of and current not in finished:
            if current in position:
                cycles.append(path[position[current]:])
                break
            position[current] = len(path)
            path.append(current)
            current = parent_of[current]
        finished.update(path)

    if cycles:
        logger.warning("Entity structure has %d parent cycle(s): %s", len(cycles), cycles)
    return cycles


def validate_general_information(section1: GeneralInformation) -> Dict[str, str]:
    """Field-keyed messages for missing or inconsistent Section 1 data."""
    errors = {}
    for field_name in required_fields('S1'):
        value = getattr(section1, field_name)
        if isinstance(value, bool):
            continue
        if field_name == 'consolidated_revenue':
            if parse_numeric(value) <= 0:
                errors[field_name] = f"{get_label(field_name)} must be greater than zero"
        elif not str(value or '').strip():
            errors[field_name] = f"{get_label(field_name)} is required"

    if section1.filing_type == 'AMENDED' and not section1.amendment_reason.strip():
        errors['amendment_reason'] = 'Amendment Reason is required for an amended return'

    fy_start = parse_date(section1.fiscal_year_start)
    fy_end = parse_date(section1.fiscal_year_end)
    if section1.fiscal_year_end and fy_end is None:
        errors['fiscal_year_end'] = 'Fiscal Year End must be a valid date (YYYY-MM-DD)'
    elif fy_end is not None and fy_end < EARLIEST_FY_END:
        errors['fiscal_year_end'] = 'GIR applies to fiscal years ending on or after 31 Dec 2023'
    if section1.fiscal_year_start and fy_start is None:
        errors['fiscal_year_start'] = 'Fiscal Year Start must be a valid date (YYYY-MM-DD)'
    elif fy_start is not None and fy_end is not None and fy_start > fy_end:
        errors['fiscal_year_start'] = 'Fiscal Year Start must be before Fiscal Year End'
    return errors


def fiscal_year_of(section1: GeneralInformation) -> int:
    """The SBIE year for a return: the fiscal year end's year, else today's."""
    fy_end = parse_date(section1.fiscal_year_end)
    return fy_end.year if fy_end else date.today().year


def load_case_study(case_id: str = 'CS1') -> CaseStudy:
    data = load_reference(CASE_STUDIES_FILE)
    if case_id not in data:
        raise ValueError(f"Unknown case study '{case_id}'. Available: {', '.join(sorted(data))}")
    logger.debug("Loaded case study %s", case_id)
    return CaseStudy.from_dict(data[case_id])


def case_study_ids() -> List[str]:
    return sorted(load_reference(CASE_STUDIES_FILE))
