"""Tests for the calculator result renderers."""

import pytest
import sys
import os
import json
from datetime import date

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from calc.scenario_runner import run_scenario
from render.renderers import (
    DEFAULT_RENDERERS,
    RENDERER_REGISTRY,
    AuditChecklistRenderer,
    DeadlineRenderer,
    DFERenderer,
    GIRRenderer,
    GloBEStepsRenderer,
    JsonRenderer,
    JurisdictionRenderer,
    SafeHarbourRenderer,
    format_multiline_headers,
    renderer_for,
)
from model.ScenarioData import TOOLS


# Path to the scenario files
INPUT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..', 'input-parameters'))


def load_scenario(name: str, today=None):
    with open(os.path.join(INPUT_DIR, name, 'spec.json'), 'r') as f:
        return run_scenario(json.load(f), name=name, today=today)


class TestRegistry:
    def test_every_tool_has_a_default_renderer(self):
        for tool in TOOLS:
            assert DEFAULT_RENDERERS[tool] in RENDERER_REGISTRY

    def test_default_renderer_for_tool(self):
        assert isinstance(renderer_for(load_scenario('ireland-2024')), JurisdictionRenderer)
        assert isinstance(renderer_for(load_scenario('globaltech-dfe')), DFERenderer)

    def test_json_renders_any_tool(self):
        assert isinstance(renderer_for(load_scenario('globaltech-gir'), 'Json'), JsonRenderer)

    def test_mismatched_mode_rejected(self):
        with pytest.raises(ValueError):
            renderer_for(load_scenario('ireland-2024'), 'Deadline')

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            renderer_for(load_scenario('ireland-2024'), 'Paycheck')


class TestJurisdictionRenderer:
    def test_render(self, capsys):
        JurisdictionRenderer().render(load_scenario('ireland-2024'))
        output = capsys.readouterr().out
        assert 'GLOBE TOP-UP TAX: IE FY2024' in output
        assert 'GloBE Income:' in output
        assert '€32,800,000.00' in output
        assert '10.98%' in output
        assert '4.02%' in output
        assert '€1,191,702.44' in output
        assert 'TOP UP DUE' in output
        assert 'LOW TAXED' in output

    def test_render_unknown_entry_fields(self, capsys):
        scenario = run_scenario({'tool': 'globe', 'inputs': {'entry': {'jurisdiction': 'IE', 'qdmttPaid': 1}}})
        JurisdictionRenderer().render(scenario)
        output = capsys.readouterr().out
        assert 'GLOBE TOP-UP TAX: IE FY2024' in output
        assert 'VALIDATION ERRORS' in output
        assert '[entry] Unknown entry fields: qdmttPaid' in output


class TestGloBEStepsRenderer:
    def test_render_all_steps(self, capsys):
        GloBEStepsRenderer().render(load_scenario('ireland-2024-steps'))
        output = capsys.readouterr().out
        assert 'GLOBE CALCULATOR: GlobalTech Manufacturing Group (IE)' in output
        assert 'STEP 1: EFFECTIVE TAX RATE' in output
        assert 'STEP 2: SBIE (FY2024 rates 9.8% / 7.8%)' in output
        assert '€3,188,000.00' in output
        assert 'STEP 3: TOP-UP TAX' in output
        assert 'VALIDATION ERRORS' not in output

    def test_render_errors(self, capsys):
        scenario = run_scenario({'tool': 'globe-steps', 'inputs': {'income': '0', 'taxes': '1'}})
        GloBEStepsRenderer().render(scenario)
        output = capsys.readouterr().out
        assert 'STEP 1' not in output
        assert '[s1] GloBE Income must be greater than zero' in output


class TestSafeHarbourRenderer:
    def test_render(self, capsys):
        SafeHarbourRenderer().render(load_scenario('safe-harbour-2025'))
        output = capsys.readouterr().out
        assert 'QUALIFIES via Simplified ETR Test' in output
        assert '17.00%' in output
        assert '16.00%' in output
        assert '€1,836,000' in output

    def test_loss_making_etr(self, capsys):
        scenario = run_scenario({'tool': 'safe-harbour', 'inputs': {
            'deMinimis': {'totalRevenue': '50,000,000', 'profitBeforeTax': '-3,000,000'},
            'simplifiedEtr': {'simplifiedCoveredTaxes': '0', 'profitBeforeTax': '-3,000,000'},
        }})
        SafeHarbourRenderer().render(scenario)
        assert 'N/A (loss-making)' in capsys.readouterr().out


class TestDeadlineRenderer:
    def test_render(self, capsys):
        DeadlineRenderer().render(load_scenario('deadline-first-filing'))
        output = capsys.readouterr().out
        assert 'Applicable Deadline:' in output
        assert '2026-06-30' in output
        assert '2026-03-31' in output
        assert 'Yes (18 months)' in output
        assert 'HMRC' in output
        assert '** FILING DEADLINE **' in output

    def test_render_overdue(self, capsys):
        DeadlineRenderer().render(load_scenario('deadline-first-filing', today=date(2026, 7, 10)))
        assert 'OVERDUE by 10' in capsys.readouterr().out

    def test_render_errors(self, capsys):
        scenario = run_scenario({'tool': 'deadline', 'inputs': {}})
        DeadlineRenderer().render(scenario)
        output = capsys.readouterr().out
        assert '[mne] MNE Group Name is required' in output


class TestGIRRenderer:
    def test_render(self, capsys):
        GIRRenderer().render(load_scenario('globaltech-gir'))
        output = capsys.readouterr().out
        assert 'GIR SUMMARY: GlobalTech Manufacturing Group FY2024' in output
        assert '32,800,000.00' in output
        assert '1,191,702.44' in output
        assert 'WARNING (4 / 1)' in output
        assert 'GB, DE, FR' in output

    def test_render_cycle_warning(self, capsys):
        scenario = run_scenario({'tool': 'gir', 'inputs': {
            'section1': {'mneGroupName': 'Loop Group', 'fiscalYearEnd': '2024-12-31'},
            'section2': [{'id': 'A', 'jurisdiction': 'IE', 'directParent': 'B'},
                         {'id': 'B', 'jurisdiction': 'IE', 'directParent': 'A'}],
            'section3': [{'jurisdiction': 'IE'}],
        }})
        GIRRenderer().render(scenario)
        assert 'WARNING parent cycle: A -> B -> A' in capsys.readouterr().out


class TestDFERenderer:
    def test_render(self, capsys):
        DFERenderer().render(load_scenario('globaltech-dfe'))
        output = capsys.readouterr().out
        assert 'Recommended DFE: GlobalTech Manufacturing Ltd' in output
        assert 'NOT RECOMMENDED' in output
        lines = [line for line in output.splitlines() if line.strip().startswith(('1 ', '2 '))]
        assert 'GlobalTech Manufacturing Ltd' in lines[0]
        assert 'GlobalTech GmbH' in lines[1]


class TestAuditChecklistRenderer:
    def test_render_case_study(self, capsys):
        AuditChecklistRenderer().render(load_scenario('globaltech-audit'))
        output = capsys.readouterr().out
        assert 'AUDIT FILE CHECKLIST: GlobalTech Manufacturing Ltd FY2024' in output
        assert '24% (16 / 66)' in output
        assert 'CHECKLIST (CRITICAL)' in output
        assert 'GAP ANALYSIS: 50 gaps (7 critical, 27 high)' in output
        assert 'Waiting on Switzerland tax team' in output
        section3 = next(line for line in output.splitlines() if 'Section 3: GloBE Computation' in line)
        assert '3 / 18' in section3
        assert section3.rstrip().endswith('17%')

    def test_default_renderer(self):
        assert isinstance(renderer_for(load_scenario('globaltech-audit')), AuditChecklistRenderer)

    def test_render_errors(self, capsys):
        scenario = run_scenario({'tool': 'audit-checklist', 'inputs': {'filter': 'OPEN'}})
        AuditChecklistRenderer().render(scenario)
        output = capsys.readouterr().out
        assert 'VALIDATION ERRORS' in output
        assert "[filter] Unknown checklist filter 'OPEN'" in output


class TestJsonRenderer:
    def test_render(self, capsys):
        JsonRenderer().render(load_scenario('ireland-2024'))
        data = json.loads(capsys.readouterr().out)
        assert data['tool'] == 'globe'
        assert data['result']['status'] == 'TOP_UP_DUE'
        assert data['result']['total_sbie'] == 3_188_000


class TestMultilineHeaders:
    def test_short_headers_single_line(self):
        header_lines, sep_line = format_multiline_headers([('ETR', 8), ('Status', 10)])
        assert len(header_lines) == 1
        assert header_lines[0].startswith('  Jurisdiction')
        assert sep_line == f"  {'-' * 12} {'-' * 8} {'-' * 10}"

    def test_long_headers_wrap(self):
        header_lines, _ = format_multiline_headers([('Adjusted Covered Taxes', 10), ('ETR', 6)])
        assert len(header_lines) == 3
        assert 'Jurisdiction' in header_lines[-1]
        assert header_lines[-1].rstrip().endswith('ETR')
        assert 'Jurisdiction' not in header_lines[0]
