"""GIR data point reference.

Each GIR field carries an identifier (e.g. ``S3.2.1``), a display name, its
data type, whether it is required, a description, the usual ERP source and
the common issues seen when preparing it. Fields the calculators derive are
flagged ``calculated``. ``FIELD_FOR_RECORD`` maps the record attribute names
used by the calculators back to their data point so renderers can label
output consistently.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class DataPoint:
    """Metadata for a single GIR data point."""
    name: str
    type: str
    required: str  # 'Yes', 'Optional' or 'Conditional'
    description: str
    erp_source: str
    common_issues: str
    calculated: bool = False


DATA_POINTS: Dict[str, DataPoint] = {
    # Section 1.1 MNE Group
    "S1.1.1": DataPoint("MNE Group Name", "Text", "Yes", "Legal name of the MNE group.", "Legal entity master data", "Inconsistent naming conventions."),
    "S1.1.2": DataPoint("UPE Legal Name", "Text", "Yes", "Ultimate Parent Entity legal name.", "Entity Master", "Must match tax registration exactly."),
    "S1.1.3": DataPoint("UPE Jurisdiction", "Code", "Yes", "Country of UPE incorporation (ISO 3166-1).", "Entity Master (Country Code)", "Using full names instead of codes."),
    "S1.1.4": DataPoint("UPE Tax ID", "Text", "Conditional", 'Tax identification number (use "NOTIN" if none).', "Tax Master Data", "Formatting differences."),
    "S1.1.5": DataPoint("LEI", "Text", "Optional", "Legal Entity Identifier (20 chars).", "Treasury System", "Expired LEIs."),

    # Section 1.2 Reporting Period
    "S1.2.1": DataPoint("Fiscal Year Start", "Date", "Yes", "Start date of the reporting fiscal year.", "GL Configuration", "Wrong format (must be YYYY-MM-DD)."),
    "S1.2.2": DataPoint("Fiscal Year End", "Date", "Yes", "End date of the reporting fiscal year.", "GL Configuration", "Non-standard fiscal years."),
    "S1.2.3": DataPoint("Reporting Currency", "Code", "Yes", "ISO 4217 Currency Code (e.g., EUR, USD).", "Consolidation System", "Using symbols instead of codes."),
    "S1.2.4": DataPoint("First Filing Year", "Boolean", "Yes", "Indicates if this is the first GloBE filing.", "N/A", "Incorrect toggle for transition years."),
    "S1.2.5": DataPoint("Consolidated Revenue", "Numeric", "Yes", "Total consolidated revenue of the MNE Group.", "Consolidated P&L", "Excluding relevant income streams."),

    # Section 1.3 Filing Entity
    "S1.3.1": DataPoint("DFE Name", "Text", "Yes", "Designated Filing Entity Name.", "Tax Admin", "Mismatch with notification."),
    "S1.3.2": DataPoint("DFE Jurisdiction", "Code", "Yes", "Jurisdiction of the Filing Entity.", "Tax Admin", "Must match DFE tax residency."),
    "S1.3.3": DataPoint("DFE Tax ID", "Text", "Yes", "Tax ID of the Filing Entity.", "Tax Admin", "Typos."),
    "S1.3.4": DataPoint("Filing Type", "Code", "Yes", "ORIGINAL or AMENDED.", "N/A", "Amending without reason."),
    "S1.3.5": DataPoint("Amendment Reason", "Text", "Conditional", "Reason for amendment if type is AMENDED.", "N/A", "Vague descriptions."),

    # Section 2 Entity Details
    "S2.1.1": DataPoint("Entity Name", "Text", "Yes", "Legal name of the Constituent Entity.", "Entity Master", "Abbreviations not matching legal docs."),
    "S2.1.2": DataPoint("Entity Internal ID", "Text", "Yes", "Internal reference code for the entity.", "Entity Master", "System ID changes."),
    "S2.1.3": DataPoint("Entity Jurisdiction", "Code", "Yes", "Tax jurisdiction of the entity.", "Entity Master", "PE jurisdiction vs Main Entity jurisdiction."),
    "S2.1.4": DataPoint("Entity Tax ID", "Text", "Conditional", "Tax Identification Number.", "Tax Master", "Missing for new entities."),
    "S2.2.1": DataPoint("Direct Parent Entity", "Reference", "Yes", "ID of the immediate parent entity.", "Structure Chart", "Circular references."),
    "S2.2.2": DataPoint("Ownership Percentage", "Numeric", "Yes", "Direct ownership percentage held by parent.", "Share Register", "Not summing to 100% correctly."),
    "S2.3.1": DataPoint("Entity Type", "Code", "Yes", "UPE, CE, PE, JV, or MOCE.", "Tax Hierarchy", "Misclassification of PEs."),
    "S2.3.2": DataPoint("Is Excluded Entity", "Boolean", "Yes", "Pension funds, govt entities, etc.", "Tax Classification", "Incorrect exclusions."),

    # Section 3 GloBE Income
    "S3.2.1": DataPoint("Financial Accounting Net Income", "Numeric", "Yes", "Net income/loss before consolidation adjustments.", "Trial Balance", "Using local GAAP instead of UPE GAAP."),
    "S3.2.2": DataPoint("Net Taxes Included in Income", "Numeric", "Yes", "Tax expense included in financial income.", "GL Tax Accounts", "Missing deferred tax impacts."),
    "S3.2.3": DataPoint("Excluded Dividends", "Numeric", "Optional", "Dividends from portfolio holdings.", "Investment Subledger", "Including operating dividends."),
    "S3.2.4": DataPoint("Excluded Equity Gains/Losses", "Numeric", "Optional", "Gains/losses from equity interests.", "Investment Subledger", "Including portfolio <10% holdings."),
    "S3.2.5": DataPoint("Policy Disallowed Expenses", "Numeric", "Optional", "Expenses disallowed under GloBE rules.", "GL Analysis", "Missing certain disallowed items."),
    "S3.2.6": DataPoint("Stock Compensation Adjustment", "Numeric", "Optional", "Stock-based compensation adjustments.", "HR/Payroll", "Timing differences."),
    "S3.2.7": DataPoint("Other Adjustments", "Numeric", "Optional", "Other GloBE income adjustments.", "Various", "Undocumented adjustments."),
    "S3.2.8": DataPoint("GloBE Income", "Numeric", "Yes", "Net GloBE Income after adjustments.", "Calculated", "Incorrect adjustments applied.", calculated=True),

    # Section 3 Covered Taxes
    "S3.3.1": DataPoint("Current Tax Expense", "Numeric", "Yes", "Current tax expense for the fiscal year.", "Tax Provision", "Accruals vs cash tax confusion."),
    "S3.3.2": DataPoint("Deferred Tax Expense", "Numeric", "Yes", "Deferred tax expense for the period.", "Tax Provision", "Recapture timing."),
    "S3.3.4": DataPoint("UTP Adjustment", "Numeric", "Optional", "Uncertain Tax Positions adjustments.", "Tax Provision Workpapers", "Double counting."),
    "S3.3.5": DataPoint("Non-Covered Tax Adjustment", "Numeric", "Optional", "Taxes not qualifying as covered.", "GL Analysis", "Digital Services Taxes inclusion."),
    "S3.3.6": DataPoint("Adjusted Covered Taxes", "Numeric", "Yes", "Total covered taxes after adjustments.", "Calculated", "Missed uncertain tax positions.", calculated=True),

    # Section 3 SBIE & Top-up
    "S3.4.1": DataPoint("Eligible Payroll Costs", "Numeric", "Yes", "Payroll costs for employees in jurisdiction.", "HR/Payroll System", "Including independent contractors."),
    "S3.4.4": DataPoint("Eligible Tangible Assets", "Numeric", "Yes", "Carrying value of tangible assets.", "Fixed Asset Register", "Using gross book value instead of carrying value."),
    "S3.4.7": DataPoint("Total SBIE", "Numeric", "Yes", "Total Substance-Based Income Exclusion.", "Calculated", "Using wrong year rates.", calculated=True),
    "S3.5.3": DataPoint("Jurisdictional ETR", "Numeric", "Yes", "Effective Tax Rate (Taxes / Income).", "Calculated", "Zero income denominator errors.", calculated=True),
    "S3.5.7": DataPoint("Excess Profit", "Numeric", "Yes", "GloBE Income minus SBIE.", "Calculated", "Negative values handling.", calculated=True),
    "S3.5.8": DataPoint("Gross Top-up Tax", "Numeric", "Yes", "Top-up Tax before QDMTT.", "Calculated", "Negative top-up tax handling.", calculated=True),
    "S3.5.10": DataPoint("Net Top-up Tax", "Numeric", "Yes", "Final top-up tax after QDMTT offset.", "Calculated", "QDMTT allocation errors.", calculated=True),
}

# Record attribute -> data point id
FIELD_FOR_RECORD: Dict[str, str] = {
    "mne_group_name": "S1.1.1",
    "upe_legal_name": "S1.1.2",
    "upe_jurisdiction": "S1.1.3",
    "upe_tax_id": "S1.1.4",
    "lei": "S1.1.5",
    "fiscal_year_start": "S1.2.1",
    "fiscal_year_end": "S1.2.2",
    "reporting_currency": "S1.2.3",
    "first_filing": "S1.2.4",
    "consolidated_revenue": "S1.2.5",
    "dfe_name": "S1.3.1",
    "dfe_jurisdiction": "S1.3.2",
    "dfe_tax_id": "S1.3.3",
    "filing_type": "S1.3.4",
    "amendment_reason": "S1.3.5",
    "fani": "S3.2.1",
    "net_taxes": "S3.2.2",
    "excluded_dividends": "S3.2.3",
    "excluded_equity": "S3.2.4",
    "disallowed_expenses": "S3.2.5",
    "stock_comp_adj": "S3.2.6",
    "other_adj": "S3.2.7",
    "globe_income": "S3.2.8",
    "current_tax": "S3.3.1",
    "deferred_tax": "S3.3.2",
    "utp_adj": "S3.3.4",
    "non_covered_adj": "S3.3.5",
    "adjusted_covered_taxes": "S3.3.6",
    "payroll_costs": "S3.4.1",
    "tangible_assets": "S3.4.4",
    "total_sbie": "S3.4.7",
    "etr": "S3.5.3",
    "excess_profit": "S3.5.7",
    "gross_top_up": "S3.5.8",
    "net_top_up": "S3.5.10",
}


def get_data_point(point_id: str) -> DataPoint | None:
    """Get the DataPoint for an id, or None if not found."""
    return DATA_POINTS.get(point_id)


def get_label(field_name: str) -> str:
    """Get the display name for a record attribute, or the attribute name if unmapped."""
    point = DATA_POINTS.get(FIELD_FOR_RECORD.get(field_name, ""))
    return point.name if point else field_name


def required_fields(section_prefix: str) -> List[str]:
    """Record attributes whose data point is unconditionally required, e.g. for 'S1'."""
    return [
        attr for attr, point_id in FIELD_FOR_RECORD.items()
        if point_id.startswith(section_prefix)
        and DATA_POINTS[point_id].required == "Yes"
        and not DATA_POINTS[point_id].calculated
    ]


def search_data_points(query: str, limit: int = 10) -> List[Tuple[str, DataPoint]]:
    """Case-insensitive match on data point id or name, in reference order."""
    if not query:
        return []
    needle = query.lower()
    matches = [
        (point_id, point) for point_id, point in DATA_POINTS.items()
        if needle in point_id.lower() or needle in point.name.lower()
    ]
    return matches[:limit]


def wrap_header(text: str, max_width: int) -> list[str]:
    """Wrap a header text into multiple lines to fit within max_width.

    Words are split on spaces and distributed across lines to minimize
    the total number of lines while staying within max_width.
    """
    if len(text) <= max_width:
        return [text]

    words = text.split()
    lines = []
    current_line = ""

    for word in words:
        if not current_line:
            current_line = word
        elif len(current_line) + 1 + len(word) <= max_width:
            current_line += " " + word
        else:
            lines.append(current_line)
            current_line = word

    if current_line:
        lines.append(current_line)

    return lines
