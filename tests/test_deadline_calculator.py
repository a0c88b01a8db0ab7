import os
import sys
from datetime import date
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import pytest
from calc.deadline_calculator import (
    add_months,
    calculate_deadline,
    days_between,
    milestone_status,
    parse_date,
    validate,
)
from model.DeadlineData import OVERDUE, PENDING, TODAY, URGENT, DeadlineFormData, DeadlineResult


def uk_form(first=True, fy_end='2024-12-31'):
    return DeadlineFormData(fiscal_year_end=fy_end, filing_jurisdiction='UK',
                            upe_location='UK', is_first_filing=first)


def test_first_filing_gets_eighteen_months():
    result = calculate_deadline(uk_form(first=True), today=date(2025, 6, 30))
    assert result.standard_deadline == date(2026, 3, 31)
    assert result.applicable_deadline == date(2026, 6, 30)
    assert result.is_first
    assert result.days_remaining == 365
    assert not result.is_overdue


def test_subsequent_filing_uses_standard_deadline():
    result = calculate_deadline(uk_form(first=False), today=date(2025, 6, 30))
    assert result.applicable_deadline == date(2026, 3, 31)
    assert result.applicable_deadline == result.standard_deadline


def test_jurisdiction_info_attached():
    result = calculate_deadline(uk_form(), today=date(2025, 6, 30))
    assert result.jurisdiction.code == 'UK'
    assert result.jurisdiction.filing_authority == 'HMRC'


def test_unknown_jurisdiction_uses_fallback():
    form = uk_form()
    form.filing_jurisdiction = 'XX'
    result = calculate_deadline(form, today=date(2025, 6, 30))
    assert result.jurisdiction.code == 'OTHER'


def test_overdue_deadline_is_reported():
    result = calculate_deadline(uk_form(first=False, fy_end='2023-12-31'), today=date(2025, 4, 1))
    assert result.applicable_deadline == date(2025, 3, 31)
    assert result.days_remaining == -1
    assert result.is_overdue
    assert all(m.status == OVERDUE for m in result.milestones)


def test_milestones_count_back_from_deadline():
    result = calculate_deadline(uk_form(), today=date(2025, 6, 30))
    dates = [(m.name, m.date) for m in result.milestones]
    assert dates == [
        ('Data Collection Start', date(2025, 9, 30)),
        ('Safe Harbour Assessment', date(2025, 12, 30)),
        ('GloBE Calculations', date(2026, 2, 28)),
        ('Internal Review', date(2026, 4, 30)),
        ('XML Generation', date(2026, 5, 30)),
        ('FILING DEADLINE', date(2026, 6, 30)),
    ]
    assert result.milestones[-1].is_deadline
    assert result.milestones[0].days_away == 92
    assert result.milestones[0].status == PENDING


def test_milestone_statuses_around_today():
    result = calculate_deadline(uk_form(), today=date(2026, 5, 30))
    by_name = {m.name: m for m in result.milestones}
    assert by_name['Internal Review'].status == OVERDUE
    assert by_name['XML Generation'].status == TODAY
    assert by_name['FILING DEADLINE'].status == PENDING
    assert by_name['FILING DEADLINE'].days_away == 31


@pytest.mark.parametrize("days, status", [(-1, OVERDUE), (0, TODAY), (1, URGENT), (29, URGENT), (30, PENDING)])
def test_milestone_status(days, status):
    assert milestone_status(days) == status


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 8, 31), -6) == date(2024, 2, 29)
    assert add_months(date(2024, 12, 31), 15) == date(2026, 3, 31)


def test_days_between():
    assert days_between(date(2024, 1, 1), date(2025, 1, 1)) == 366
    assert days_between(date(2025, 1, 2), date(2025, 1, 1)) == -1


def test_parse_date():
    assert parse_date('2024-12-31') == date(2024, 12, 31)
    assert parse_date('2024-12-31T00:00:00Z') == date(2024, 12, 31)
    assert parse_date('31/12/2024') is None
    assert parse_date('') is None
    assert parse_date(date(2024, 1, 1)) == date(2024, 1, 1)


def test_validate_requires_all_fields():
    errors = validate('', DeadlineFormData(fiscal_year_end='', filing_jurisdiction='', upe_location=''))
    assert set(errors) == {'mne', 'fy', 'jur', 'upe'}


def test_validate_rejects_fiscal_year_before_gir():
    errors = validate('GlobalTech', uk_form(fy_end='2023-12-30'))
    assert errors == {'fy': 'GIR applies to fiscal years ending on or after 31 Dec 2023'}


def test_validate_rejects_bad_date():
    errors = validate('GlobalTech', uk_form(fy_end='2024-13-01'))
    assert 'fy' in errors


def test_validate_accepts_complete_form():
    assert validate('GlobalTech', uk_form()) == {}


def test_form_from_saved_data():
    form = DeadlineFormData.from_dict({
        'fiscalYearEnd': '2024-12-31', 'filingJurisdiction': 'IE',
        'upeLocation': 'US', 'isFirstFiling': 'no',
    })
    assert form.filing_jurisdiction == 'IE'
    assert form.is_first_filing is False


def test_result_survives_serialisation():
    result = calculate_deadline(uk_form(), today=date(2025, 6, 30))
    assert DeadlineResult.from_dict(result.to_dict()) == result


def test_invalid_date_raises():
    with pytest.raises(ValueError):
        calculate_deadline(uk_form(fy_end='garbage'), today=date(2025, 1, 1))
