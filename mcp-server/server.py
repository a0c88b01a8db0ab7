#!/usr/bin/env python3
"""MCP Server for the Pillar Two calculators.

This server exposes the GloBE, Safe Harbour, filing deadline, GIR, DFE and
audit file checklist calculators as MCP tools, allowing AI assistants to
answer Pillar Two questions and keep saved work between calls.
"""

import os
import sys
import json
import asyncio
import logging
from typing import Any

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from tools import PillarTwoTools

logger = logging.getLogger(__name__)

# Create the MCP server
server = Server("pillar-two-calculators")

# Global tools instance (initialized on startup)
tools: PillarTwoTools | None = None


def get_tools() -> PillarTwoTools:
    """Get or initialize the tools instance."""
    global tools
    if tools is None:
        # Default scenario can be set via PILLAR_TWO_SCENARIO env var
        default_scenario = os.environ.get('PILLAR_TWO_SCENARIO')
        base_path = os.path.join(os.path.dirname(__file__), '..')
        tools = PillarTwoTools(base_path, default_scenario)
    return tools


def _schema(properties: dict | None = None, required: list | None = None) -> dict:
    return {"type": "object", "properties": properties or {}, "required": required or []}


FISCAL_YEAR_PARAM = {
    "type": "string",
    "description": "Fiscal year, e.g. '2024'. Years outside the rate tables use the nearest year."
}

SCENARIO_PARAM = {
    "type": "string",
    "description": "The scenario name (folder in input-parameters). If not specified, uses the default scenario. Use list_scenarios to see available scenarios."
}

TOOL_ID_PARAM = {
    "type": "string",
    "enum": [
        "globe-calculator",
        "safe-harbour-qualifier",
        "filing-deadline-calculator",
        "gir-practice-form",
        "dfe-assessment-tool",
        "audit-file-checklist",
    ],
    "description": "Which tool the saved work belongs to"
}

RECORD_ID_PARAM = {
    "type": "string",
    "description": "Id returned by save_work"
}

AMOUNT_PARAM = {
    "type": ["number", "string"],
    "description": "Amount in the reporting currency; text with thousands separators is accepted"
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available Pillar Two tools."""
    return [
        Tool(
            name="list_jurisdictions",
            description="List the jurisdictions with known GIR filing information (authority, portal, notes) and the fallback code used for any other jurisdiction.",
            inputSchema=_schema()
        ),
        Tool(
            name="get_rate_schedule",
            description="Get the SBIE payroll and tangible asset carve-out rates and the Safe Harbour Simplified ETR transition rates. Pass a year to get just that year's rates.",
            inputSchema=_schema({"year": FISCAL_YEAR_PARAM})
        ),
        Tool(
            name="calculate_globe",
            description="Run the single-jurisdiction GloBE computation: GloBE income, adjusted covered taxes, ETR, SBIE, excess profit, top-up tax and status.",
            inputSchema=_schema({
                "entry": {
                    "type": "object",
                    "description": "One jurisdiction's GloBE inputs. Omitted amounts are zero; unknown fields are rejected.",
                    "properties": {
                        "jurisdiction": {"type": "string", "description": "Jurisdiction code, e.g. IE"},
                        "fani": AMOUNT_PARAM,
                        "netTaxes": AMOUNT_PARAM,
                        "excludedDividends": AMOUNT_PARAM,
                        "excludedEquity": AMOUNT_PARAM,
                        "disallowedExpenses": AMOUNT_PARAM,
                        "stockCompAdj": AMOUNT_PARAM,
                        "otherAdj": AMOUNT_PARAM,
                        "currentTax": AMOUNT_PARAM,
                        "deferredTax": AMOUNT_PARAM,
                        "utpAdj": AMOUNT_PARAM,
                        "nonCoveredAdj": AMOUNT_PARAM,
                        "payrollCosts": AMOUNT_PARAM,
                        "tangibleAssets": AMOUNT_PARAM,
                        "qdmtt": AMOUNT_PARAM
                    },
                    "additionalProperties": False
                },
                "fiscal_year": FISCAL_YEAR_PARAM,
                "currency": {"type": "string", "description": "Reporting currency, default EUR"}
            }, ["entry"])
        ),
        Tool(
            name="calculate_globe_steps",
            description="Run the guided three-step GloBE calculation (ETR, SBIE, top-up tax). Validation problems are returned as field-keyed errors.",
            inputSchema=_schema({
                "income": AMOUNT_PARAM,
                "taxes": AMOUNT_PARAM,
                "payroll": AMOUNT_PARAM,
                "assets": AMOUNT_PARAM,
                "qdmtt": AMOUNT_PARAM,
                "fiscal_year": FISCAL_YEAR_PARAM,
                "currency": {"type": "string"},
                "mne_name": {"type": "string"},
                "jurisdiction": {"type": "string"}
            }, ["income", "taxes"])
        ),
        Tool(
            name="assess_safe_harbour",
            description="Assess the Transitional CbCR Safe Harbour: De Minimis, Simplified ETR and Routine Profits tests.",
            inputSchema=_schema({
                "de_minimis": {"type": "object", "description": "totalRevenue and profitBeforeTax"},
                "simplified_etr": {"type": "object", "description": "simplifiedCoveredTaxes and profitBeforeTax"},
                "routine_profits": {"type": "object", "description": "profitBeforeTax, eligiblePayroll and tangibleAssets"},
                "fiscal_year": FISCAL_YEAR_PARAM,
                "jurisdiction": {"type": "string"}
            })
        ),
        Tool(
            name="calculate_filing_deadline",
            description="Calculate the GIR filing deadline (15 months after fiscal year end, 18 for the first filing), days remaining and key milestones.",
            inputSchema=_schema({
                "mne_name": {"type": "string"},
                "fiscal_year_end": {"type": "string", "description": "ISO date, e.g. 2024-12-31"},
                "filing_jurisdiction": {"type": "string"},
                "upe_location": {"type": "string"},
                "is_first_filing": {"type": "boolean"},
                "today": {"type": "string", "description": "Optional ISO date to measure days remaining from"}
            }, ["mne_name", "fiscal_year_end", "filing_jurisdiction", "upe_location"])
        ),
        Tool(
            name="calculate_gir",
            description="Compute every jurisdiction of a GIR practice form and cross-check Sections 1-3. Pass case_study (e.g. CS1) or the sections themselves.",
            inputSchema=_schema({
                "case_study": {"type": "string"},
                "section1": {"type": "object"},
                "section2": {"type": "array", "items": {"type": "object"}},
                "section3": {"type": "array", "items": {"type": "object"}},
                "add_missing_jurisdictions": {"type": "boolean"}
            })
        ),
        Tool(
            name="assess_dfe",
            description="Score and rank Designated Filing Entity candidates. Pass case_study=true for the built-in case study.",
            inputSchema=_schema({
                "mne_info": {"type": "object"},
                "candidates": {"type": "array", "items": {"type": "object"}},
                "case_study": {"type": "boolean"}
            })
        ),
        Tool(
            name="assess_audit_checklist",
            description="GIR audit file checklist: completion statistics, per-section progress, a filtered checklist view and a priority-ordered gap analysis. Pass case_study=true for the built-in case study.",
            inputSchema=_schema({
                "case_study": {"type": "boolean"},
                "metadata": {
                    "type": "object",
                    "description": "entityName, fiscalYear, jurisdictionCount, filingEntity, girStatus, auditDate and sectionsIncluded (section1, section2, section3, elections, safeHarbour, controls)"
                },
                "item_states": {
                    "type": "object",
                    "description": "Item id (e.g. S3-009) to {status, notes}; status is INCOMPLETE, COMPLETE, NOT_APPLICABLE or IN_PROGRESS"
                },
                "filter": {"type": "string", "enum": ["ALL", "INCOMPLETE", "CRITICAL"]},
                "search": {"type": "string", "description": "Case-insensitive match on item text or id"}
            })
        ),
        Tool(
            name="search_data_points",
            description="Search GIR data points by id or name, e.g. 'S1.1.1' or 'covered taxes'.",
            inputSchema=_schema({
                "query": {"type": "string"},
                "limit": {"type": "integer", "description": "Maximum matches, default 10"}
            }, ["query"])
        ),
        Tool(
            name="list_scenarios",
            description="List the scenarios available in input-parameters and which calculator each one runs.",
            inputSchema=_schema()
        ),
        Tool(
            name="reload_scenarios",
            description="Reload scenario spec.json files from disk without restarting the server.",
            inputSchema=_schema()
        ),
        Tool(
            name="run_scenario",
            description="Run a saved scenario through its calculator and return the full result.",
            inputSchema=_schema({"scenario": SCENARIO_PARAM})
        ),
        Tool(
            name="save_work",
            description="Save work for one of the tools. Include id to update an existing record.",
            inputSchema=_schema({"tool_id": TOOL_ID_PARAM, "data": {"type": "object"}}, ["tool_id", "data"])
        ),
        Tool(
            name="load_work",
            description="Load a saved record.",
            inputSchema=_schema({"tool_id": TOOL_ID_PARAM, "id": RECORD_ID_PARAM}, ["tool_id", "id"])
        ),
        Tool(
            name="delete_work",
            description="Delete a saved record.",
            inputSchema=_schema({"tool_id": TOOL_ID_PARAM, "id": RECORD_ID_PARAM}, ["tool_id", "id"])
        ),
        Tool(
            name="list_saved_work",
            description="List saved records for a tool, most recently updated first.",
            inputSchema=_schema({"tool_id": TOOL_ID_PARAM}, ["tool_id"])
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        p2_tools = get_tools()
        arguments = arguments or {}

        if name == "list_jurisdictions":
            result = p2_tools.list_jurisdictions()
        elif name == "get_rate_schedule":
            result = p2_tools.get_rate_schedule(arguments.get("year"))
        elif name == "calculate_globe":
            result = p2_tools.calculate_globe(
                arguments["entry"],
                arguments.get("fiscal_year", "2024"),
                arguments.get("currency", "EUR")
            )
        elif name == "calculate_globe_steps":
            result = p2_tools.calculate_globe_steps(**arguments)
        elif name == "assess_safe_harbour":
            result = p2_tools.assess_safe_harbour(**arguments)
        elif name == "calculate_filing_deadline":
            result = p2_tools.calculate_filing_deadline(**arguments)
        elif name == "calculate_gir":
            result = p2_tools.calculate_gir(**arguments)
        elif name == "assess_dfe":
            result = p2_tools.assess_dfe(**arguments)
        elif name == "assess_audit_checklist":
            result = p2_tools.assess_audit_checklist(**arguments)
        elif name == "search_data_points":
            result = p2_tools.search_data_points(arguments["query"], arguments.get("limit", 10))
        elif name == "list_scenarios":
            result = p2_tools.list_scenarios()
        elif name == "reload_scenarios":
            result = p2_tools.reload_scenarios()
        elif name == "run_scenario":
            result = p2_tools.run_scenario(arguments.get("scenario"))
        elif name == "save_work":
            result = await p2_tools.save_work(arguments["tool_id"], arguments["data"])
        elif name == "load_work":
            result = await p2_tools.load_work(arguments["tool_id"], arguments["id"])
        elif name == "delete_work":
            result = await p2_tools.delete_work(arguments["tool_id"], arguments["id"])
        elif name == "list_saved_work":
            result = p2_tools.list_saved_work(arguments["tool_id"])
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(
            type="text",
            text=json.dumps(result, indent=2, default=str)
        )]
    except Exception as e:
        logger.warning("Tool %s failed: %s", name, e)
        return [TextContent(
            type="text",
            text=json.dumps({"error": str(e)}, indent=2)
        )]


async def main():
    """Run the MCP server."""
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(level=os.environ.get('PILLAR_TWO_LOG_LEVEL', 'WARNING').upper(),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
                        stream=sys.stderr)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    asyncio.run(main())
