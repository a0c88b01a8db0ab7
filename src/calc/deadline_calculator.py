"""GIR filing deadline calculator.

The standard GIR deadline is 15 months after fiscal year end; a group's first
filing gets 18 months. Milestones count back from the applicable deadline.
"""

import calendar
from datetime import date
from typing import Dict, List, Optional

from model.DeadlineData import (
    OVERDUE,
    PENDING,
    TODAY,
    URGENT,
    DeadlineFormData,
    DeadlineResult,
    Milestone,
)
from tax.JurisdictionDetails import JurisdictionDetails, default_jurisdiction_details

STANDARD_MONTHS = 15
FIRST_FILING_MONTHS = 18
URGENT_DAYS = 30

# GIR applies to fiscal years ending on or after this date
EARLIEST_FY_END = date(2023, 12, 31)

MILESTONE_DEFINITIONS = [
    {"name": "Data Collection Start", "months_prior": 9, "description": "Begin gathering financial data"},
    {"name": "Safe Harbour Assessment", "months_prior": 6, "description": "Complete GIR-002 tests"},
    {"name": "GloBE Calculations", "months_prior": 4, "description": "Complete GIR-001 calculations"},
    {"name": "Internal Review", "months_prior": 2, "description": "Management sign-off"},
    {"name": "XML Generation", "months_prior": 1, "description": "Generate & validate GIR file"},
    {"name": "FILING DEADLINE", "months_prior": 0, "description": "Submit to tax authority", "is_deadline": True},
]


def add_months(start: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def days_between(start: date, end: date) -> int:
    return (end - start).days


def parse_date(value) -> Optional[date]:
    """ISO 'YYYY-MM-DD' (a time suffix is ignored) to a date, or None if invalid."""
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def milestone_status(days_away: int) -> str:
    if days_away < 0:
        return OVERDUE
    if days_away == 0:
        return TODAY
    if days_away < URGENT_DAYS:
        return URGENT
    return PENDING


def validate(mne_name: str, form: DeadlineFormData) -> Dict[str, str]:
    """Field-keyed messages; an empty dict means the form can be calculated."""
    errors = {}
    if not (mne_name or '').strip():
        errors['mne'] = 'MNE Group Name is required'
    if not form.fiscal_year_end:
        errors['fy'] = 'Fiscal Year End Date is required'
    else:
        fy_end = parse_date(form.fiscal_year_end)
        if fy_end is None:
            errors['fy'] = 'Fiscal Year End Date must be a valid date (YYYY-MM-DD)'
        elif fy_end < EARLIEST_FY_END:
            errors['fy'] = 'GIR applies to fiscal years ending on or after 31 Dec 2023'
    if not form.filing_jurisdiction:
        errors['jur'] = 'Filing Jurisdiction is required'
    if not form.upe_location:
        errors['upe'] = 'UPE Location is required'
    return errors


def calculate_milestones(applicable_deadline: date, today: date) -> List[Milestone]:
    milestones = []
    for definition in MILESTONE_DEFINITIONS:
        milestone_date = add_months(applicable_deadline, -definition["months_prior"])
        days_away = days_between(today, milestone_date)
        milestones.append(Milestone(
            name=definition["name"],
            description=definition["description"],
            months_prior=definition["months_prior"],
            date=milestone_date,
            days_away=days_away,
            is_deadline=definition.get("is_deadline", False),
            status=milestone_status(days_away),
        ))
    return sorted(milestones, key=lambda m: m.date)


def calculate_deadline(form: DeadlineFormData, today: Optional[date] = None,
                       jurisdictions: Optional[JurisdictionDetails] = None) -> DeadlineResult:
    """Deadlines, days remaining and milestone timeline for a validated form.

    ``today`` defaults to the current date. A negative ``days_remaining`` means
    the deadline has passed; it is reported, not rejected.

    Assumes the form already passed ``validate``; an unparseable fiscal year
    end raises ValueError instead of returning field errors.
    """
    fy_end = parse_date(form.fiscal_year_end)
    if fy_end is None:
        raise ValueError(f"Invalid fiscal year end: {form.fiscal_year_end!r}")
    today = today or date.today()
    jurisdictions = jurisdictions or default_jurisdiction_details()

    standard_deadline = add_months(fy_end, STANDARD_MONTHS)
    applicable_deadline = add_months(fy_end, FIRST_FILING_MONTHS) if form.is_first_filing else standard_deadline

    return DeadlineResult(
        fy_end=fy_end,
        standard_deadline=standard_deadline,
        applicable_deadline=applicable_deadline,
        is_first=form.is_first_filing,
        days_remaining=days_between(today, applicable_deadline),
        jurisdiction=jurisdictions.lookup(form.filing_jurisdiction),
        milestones=calculate_milestones(applicable_deadline, today),
    )
