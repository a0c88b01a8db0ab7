"""Renderer classes for displaying calculator results.

Each renderer takes a ``ScenarioResult`` and prints the part of it that its
calculator produced. ``RENDERER_REGISTRY`` maps the ``--mode`` names to
renderer classes and ``DEFAULT_RENDERERS`` picks one per tool.
"""

import json
from abc import ABC, abstractmethod
from typing import List

from calc.numeric import format_currency, format_money, format_percent
from model.ScenarioData import (
    AUDIT,
    DEADLINE,
    DFE,
    GIR,
    GLOBE,
    GLOBE_STEPS,
    SAFE_HARBOUR,
    ScenarioResult,
)
from model.SafeHarbourData import TEST_PRIORITY
from model.field_metadata import get_label, wrap_header

WIDTH = 72

TEST_NAMES = {
    'de_minimis': 'De Minimis Test',
    'simplified_etr': 'Simplified ETR Test',
    'routine_profits': 'Routine Profits Test',
}


def format_multiline_headers(columns: List[tuple], first_label: str = 'Jurisdiction',
                             first_width: int = 12) -> tuple[List[str], str]:
    """Format column headers with multi-line wrapping support.

    Args:
        columns: List of (header_text, width) tuples for each column
        first_label: Label of the leading row-key column
        first_width: Width of the leading row-key column

    Returns:
        Tuple of (list of header lines, separator line)
    """
    wrapped_headers = [(wrap_header(header, width), width) for header, width in columns]
    max_lines = max(len(lines) for lines, _ in wrapped_headers) if wrapped_headers else 1

    # Pad at the top so the last header line sits on the separator
    for lines, _ in wrapped_headers:
        while len(lines) < max_lines:
            lines.insert(0, "")

    header_lines = []
    for line_idx in range(max_lines):
        label = first_label if line_idx == max_lines - 1 else ''
        header_line = f"  {label:<{first_width}}"
        for lines, width in wrapped_headers:
            header_line += f" {lines[line_idx]:>{width}}"
        header_lines.append(header_line)

    sep_line = f"  {'-' * first_width}"
    for _, width in wrapped_headers:
        sep_line += f" {'-' * width}"

    return header_lines, sep_line


def print_title(title: str) -> None:
    print()
    print("=" * WIDTH)
    print(f"{title:^{WIDTH}}")
    print("=" * WIDTH)


def print_section(title: str) -> None:
    print()
    print("-" * WIDTH)
    print(title)
    print("-" * WIDTH)


def print_row(label: str, value: str) -> None:
    print(f"  {label + ':':<40} {value:>26}")


def print_errors(scenario: ScenarioResult) -> None:
    print_section("VALIDATION ERRORS")
    for field_name, message in scenario.errors.items():
        print(f"  [{field_name}] {message}")


class BaseRenderer(ABC):
    """Abstract base class for all renderers."""

    @abstractmethod
    def render(self, scenario: ScenarioResult) -> None:
        """Render the scenario result to output."""
        pass


class JurisdictionRenderer(BaseRenderer):
    """Full derivation chain for a single jurisdiction."""

    def render(self, scenario: ScenarioResult) -> None:
        if scenario.errors:
            print_title(f"GLOBE TOP-UP TAX: {scenario.jurisdiction or 'N/A'} FY{scenario.fiscal_year}")
            print_errors(scenario)
            print()
            return
        r = scenario.result
        money = lambda v: format_currency(v, scenario.currency, 2)

        print_title(f"GLOBE TOP-UP TAX: {r.jurisdiction or 'N/A'} FY{scenario.fiscal_year}")
        print_section("GLOBE INCOME AND COVERED TAXES")
        print_row(get_label('globe_income'), money(r.globe_income))
        print_row(get_label('adjusted_covered_taxes'), money(r.adjusted_covered_taxes))
        print_row(get_label('total_sbie'), money(r.total_sbie))

        print_section("TOP-UP TAX")
        print_row(get_label('etr'), format_percent(r.etr * 100))
        print_row('Top-up Tax %', format_percent(r.top_up_tax_pct * 100))
        print_row(get_label('excess_profit'), money(r.excess_profit))
        print_row(get_label('gross_top_up'), money(r.gross_top_up))
        print_row(get_label('net_top_up'), money(r.net_top_up))
        print_row('Status', r.status.replace('_', ' '))
        print_row('ETR Status', r.etr_status.replace('_', ' '))
        print()


class GloBEStepsRenderer(BaseRenderer):
    """The guided three-step GloBE Calculator."""

    def render(self, scenario: ScenarioResult) -> None:
        report = scenario.result
        money = lambda v: format_currency(v, scenario.currency, 2)

        title = f"GLOBE CALCULATOR: {scenario.mne_name or 'Untitled'}"
        if scenario.jurisdiction:
            title += f" ({scenario.jurisdiction})"
        print_title(title)

        if report.step1:
            print_section("STEP 1: EFFECTIVE TAX RATE")
            print_row('ETR', format_percent(report.step1.etr))
            print_row('Top-up %', format_percent(report.step1.top_up_pct))
            print_row('Status', report.step1.status.replace('_', ' '))

        if report.step2:
            rates = report.step2.rates
            print_section(f"STEP 2: SBIE (FY{scenario.fiscal_year} rates {rates.payroll}% / {rates.asset}%)")
            print_row('Payroll Carve-out', money(report.step2.pay_sbie))
            print_row('Tangible Asset Carve-out', money(report.step2.ast_sbie))
            print_row('Total SBIE', money(report.step2.total_sbie))

        if report.step3:
            print_section("STEP 3: TOP-UP TAX")
            print_row('Excess Profit', money(report.step3.excess_profit))
            print_row('Gross Top-up Tax', money(report.step3.gross_top_up))
            print_row('QDMTT Offset', money(report.step3.qdmtt_offset))
            print_row('Net Top-up Tax', money(report.step3.net_top_up))
            print_row('Status', report.step3.status.replace('_', ' '))

        if scenario.errors:
            print_errors(scenario)
        print()


class SafeHarbourRenderer(BaseRenderer):
    """Transitional CbCR Safe Harbour assessment."""

    def render(self, scenario: ScenarioResult) -> None:
        r = scenario.result
        money = lambda v: format_currency(v, scenario.currency, 0)

        print_title(f"SAFE HARBOUR ASSESSMENT FY{scenario.fiscal_year}")
        verdict = "QUALIFIES" if r.overall_qualifies else "DOES NOT QUALIFY"
        print(f"  {verdict}" + (f" via {TEST_NAMES[r.qualifying_test]}" if r.qualifying_test else ""))

        dm = r.de_minimis
        print_section(TEST_NAMES['de_minimis'].upper())
        print_row(f"Revenue below {money(dm.revenue_threshold)}", 'Yes' if dm.meets_revenue else 'No')
        print_row(f"|Profit| below {money(dm.profit_threshold)}", 'Yes' if dm.meets_profit else 'No')

        se = r.simplified_etr
        print_section(TEST_NAMES['simplified_etr'].upper())
        print_row('Simplified ETR', 'N/A (loss-making)' if se.calculated_etr is None else format_percent(se.calculated_etr))
        print_row('Transition Rate', format_percent(se.transition_rate))
        print_row('Status', se.status.replace('_', ' '))

        rp = r.routine_profits
        print_section(TEST_NAMES['routine_profits'].upper())
        print_row('Payroll Carve-out', money(rp.sbie_payroll))
        print_row('Tangible Asset Carve-out', money(rp.sbie_assets))
        print_row('Total SBIE', money(rp.total_sbie))
        print_row('Profit exceeds SBIE', 'Yes' if rp.profit_exceeds_sbie else 'No')

        print_section("SUMMARY")
        for test in TEST_PRIORITY:
            print_row(TEST_NAMES[test], 'PASS' if getattr(r, test).qualifies else 'FAIL')
        print()


class DeadlineRenderer(BaseRenderer):
    """GIR filing deadline and milestone timeline."""

    def render(self, scenario: ScenarioResult) -> None:
        if scenario.errors:
            print_title("FILING DEADLINE")
            print_errors(scenario)
            print()
            return
        r = scenario.result

        print_title(f"GIR FILING DEADLINE: {scenario.mne_name}")
        print_row('Fiscal Year End', r.fy_end.isoformat())
        print_row('Standard Deadline (15 months)', r.standard_deadline.isoformat())
        print_row('Applicable Deadline', r.applicable_deadline.isoformat())
        print_row('First Filing Extension', 'Yes (18 months)' if r.is_first else 'No')
        if r.is_overdue:
            print_row('Days Remaining', f"OVERDUE by {-r.days_remaining}")
        else:
            print_row('Days Remaining', str(r.days_remaining))

        print_section(f"FILING AUTHORITY: {r.jurisdiction.name}")
        print_row('Authority', r.jurisdiction.filing_authority)
        print_row('Portal', r.jurisdiction.filing_portal)
        for note in r.jurisdiction.notes:
            print(f"  - {note}")

        print_section("MILESTONES")
        for m in r.milestones:
            name = m.name if not m.is_deadline else f"** {m.name} **"
            print(f"  {m.date.isoformat():<12} {name:<28} {m.days_away:>6}d  {m.status}")
        print()


class GIRRenderer(BaseRenderer):
    """GIR practice form Section 3 summary with structure cross-checks."""

    def render(self, scenario: ScenarioResult) -> None:
        report = scenario.result

        print_title(f"GIR SUMMARY: {report.section1.mne_group_name or 'Untitled'} FY{report.fiscal_year}")

        columns = [(get_label(f), 16) for f in
                   ('globe_income', 'adjusted_covered_taxes', 'total_sbie', 'etr', 'net_top_up')]
        print()
        header_lines, sep_line = format_multiline_headers(columns)
        for line in header_lines:
            print(line)
        print(sep_line)
        for r in report.results:
            print(f"  {r.jurisdiction:<12} {format_money(r.globe_income):>16} {format_money(r.adjusted_covered_taxes):>16}"
                  f" {format_money(r.total_sbie):>16} {format_percent(r.etr * 100):>16} {format_money(r.net_top_up):>16}")
        total = sum(r.net_top_up for r in report.results)
        print(f"  {'TOTAL':<12} {'':>16} {'':>16} {'':>16} {'':>16} {format_money(total):>16}")

        print_section("VALIDATION")
        v = report.validation
        print_row('Jurisdiction check', f"{'PASS' if v.jurisdiction_match else 'WARNING'} ({v.s2_count} / {v.s3_count})")
        if report.missing_jurisdictions:
            print_row('Missing jurisdictions', ', '.join(report.missing_jurisdictions))
        for cycle in report.parent_cycles:
            print(f"  WARNING parent cycle: {' -> '.join(cycle + cycle[:1])}")
        if report.dangling_parents:
            print_row('Unknown parent references', ', '.join(report.dangling_parents))
        for field_name, message in report.section1_errors.items():
            print(f"  [{field_name}] {message}")
        print()


class DFERenderer(BaseRenderer):
    """Ranked Designated Filing Entity candidates."""

    def render(self, scenario: ScenarioResult) -> None:
        report = scenario.result

        print_title(f"DFE ASSESSMENT: {report.mne_info.mne_group_name or 'Untitled'}")
        print()
        print(f"  {'Rank':<5} {'Entity':<32} {'Jurisdiction':<16} {'Score':>5}  Status")
        print(f"  {'-' * 5} {'-' * 32} {'-' * 16} {'-' * 5}  {'-' * 15}")
        for rank, scored in enumerate(report.ranking, start=1):
            c = scored.candidate
            print(f"  {rank:<5} {c.entity_name[:32]:<32} {c.jurisdiction[:16]:<16} {scored.score:>5}  {scored.status}")

        recommended = report.recommended
        print()
        if recommended:
            print(f"  Recommended DFE: {recommended.candidate.entity_name}")
        else:
            print("  No candidate meets the recommendation criteria.")
        print()


class AuditChecklistRenderer(BaseRenderer):
    """Audit file checklist dashboard, checklist view and gap analysis."""

    def render(self, scenario: ScenarioResult) -> None:
        if scenario.errors:
            print_title("AUDIT FILE CHECKLIST")
            print_errors(scenario)
            print()
            return
        report = scenario.result
        meta = report.metadata
        stats = report.stats

        print_title(f"AUDIT FILE CHECKLIST: {meta.entity_name or 'Untitled'} FY{meta.fiscal_year}")
        print(f"  {meta.jurisdiction_count} jurisdictions | GIR status: {meta.gir_status} | Audit date: {meta.audit_date}")

        print_section("PROGRESS")
        print_row('Completion', f"{stats.percent}% ({stats.completed} / {stats.applicable})")
        print_row('Overall Status', stats.overall_status.replace('_', ' '))
        print_row('Outstanding Items', str(stats.incomplete))
        print_row('Not Applicable', str(stats.na))
        print_row('Critical Items Complete', 'Yes' if stats.critical_complete else 'No')
        print()
        for progress in report.sections:
            print(f"  {progress.section.title:<44} {progress.completed:>3} / {progress.total:<3} {progress.percent:>4}%")

        print_section(f"CHECKLIST ({report.filter}{', search: ' + report.search if report.search else ''})")
        for item in report.items:
            state = report.item_states.get(item.id)
            status = state.status if state else 'INCOMPLETE'
            print(f"  {item.id:<7} {item.priority:<9} {status.replace('_', ' '):<15} {item.text}")
        if not report.items:
            print("  No items match.")

        gaps = report.gaps
        print_section(f"GAP ANALYSIS: {gaps.total} gaps ({gaps.critical} critical, {gaps.high} high)")
        for item in gaps.gaps:
            state = report.item_states.get(item.id)
            note = f" - {state.notes}" if state and state.notes else ''
            print(f"  {item.id:<7} {item.priority:<9} [{item.ref}] {item.text}{note}")
        if not gaps.gaps:
            print("  No gaps detected.")
        print()


class JsonRenderer(BaseRenderer):
    """Machine-readable output of the whole scenario."""

    def render(self, scenario: ScenarioResult) -> None:
        print(json.dumps(scenario.to_dict(), indent=2, default=str))


RENDERER_REGISTRY = {
    'GloBE': JurisdictionRenderer,
    'GloBESteps': GloBEStepsRenderer,
    'SafeHarbour': SafeHarbourRenderer,
    'Deadline': DeadlineRenderer,
    'GIR': GIRRenderer,
    'DFE': DFERenderer,
    'Audit': AuditChecklistRenderer,
    'Json': JsonRenderer,
}

DEFAULT_RENDERERS = {
    GLOBE: 'GloBE',
    GLOBE_STEPS: 'GloBESteps',
    SAFE_HARBOUR: 'SafeHarbour',
    DEADLINE: 'Deadline',
    GIR: 'GIR',
    DFE: 'DFE',
    AUDIT: 'Audit',
}


def renderer_for(scenario: ScenarioResult, mode: str = None) -> BaseRenderer:
    """The renderer for ``mode``, or the tool's default renderer.

    Only the tool's own renderer and ``Json`` understand a given result.
    """
    default = DEFAULT_RENDERERS[scenario.tool]
    name = mode or default
    if name not in RENDERER_REGISTRY:
        raise ValueError(f"Unknown mode '{name}'. Available: {', '.join(RENDERER_REGISTRY)}")
    if name not in (default, 'Json'):
        raise ValueError(f"Mode '{name}' cannot render a {scenario.tool} scenario; use {default} or Json")
    return RENDERER_REGISTRY[name]()
