"""Pillar Two calculator tools for the MCP server.

This module provides the tool implementations that wrap the calculators and
reference tables and expose them, plus scenario files and saved work, to MCP
clients. Every method returns a JSON-ready dict.
"""

import os
import sys
import json
import logging
from typing import Any, Dict, List, Optional

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from calc.numeric import get_transition_rate
from calc.scenario_runner import run_scenario
from calc.sessions import InMemorySavedWorkStore
from model.ScenarioData import AUDIT, DEADLINE, DFE, GIR, GLOBE, GLOBE_STEPS, SAFE_HARBOUR
from model.SavedWork import (
    AUDIT_FILE_CHECKLIST,
    DFE_ASSESSMENT_TOOL,
    FILING_DEADLINE_CALCULATOR,
    GIR_PRACTICE_FORM,
    GLOBE_CALCULATOR,
    SAFE_HARBOUR_QUALIFIER,
    SavedAssessment,
    SavedAuditChecklist,
    SavedCalculation,
    SavedDeadlineCalculation,
    SavedDFEAssessment,
    SavedPracticeSession,
)
from model.field_metadata import search_data_points
from model.records import to_plain
from tax.JurisdictionDetails import default_jurisdiction_details
from tax.SafeHarbourDetails import default_safe_harbour_details
from tax.SBIEDetails import default_sbie_details

logger = logging.getLogger(__name__)

SAVED_WORK_ENVELOPES = {
    GLOBE_CALCULATOR: SavedCalculation,
    SAFE_HARBOUR_QUALIFIER: SavedAssessment,
    FILING_DEADLINE_CALCULATOR: SavedDeadlineCalculation,
    GIR_PRACTICE_FORM: SavedPracticeSession,
    DFE_ASSESSMENT_TOOL: SavedDFEAssessment,
    AUDIT_FILE_CHECKLIST: SavedAuditChecklist,
}


class PillarTwoTools:
    """Tools that wrap the Pillar Two calculators for MCP access."""

    def __init__(self, base_path: str, default_scenario: Optional[str] = None, store=None):
        """Initialize and discover available scenarios.

        Args:
            base_path: Path to the project root (holding input-parameters)
            default_scenario: Scenario run_scenario uses when none is named
            store: Saved-work store; defaults to an in-memory store
        """
        self.base_path = base_path
        self.default_scenario = default_scenario
        self.store = store or InMemorySavedWorkStore()
        self.scenarios: Dict[str, dict] = {}
        self._discover_scenarios()

    def _discover_scenarios(self):
        """Load every input-parameters/<name>/spec.json."""
        input_params_path = os.path.join(self.base_path, 'input-parameters')
        if not os.path.exists(input_params_path):
            return

        for name in sorted(os.listdir(input_params_path)):
            spec_path = os.path.join(input_params_path, name, 'spec.json')
            if not os.path.exists(spec_path):
                continue
            try:
                with open(spec_path, 'r', encoding='utf-8') as f:
                    self.scenarios[name] = json.load(f)
            except (OSError, json.JSONDecodeError):
                # A broken scenario file should not take the other scenarios down
                logger.exception("Failed to load scenario '%s'", name)

        if self.default_scenario is None and self.scenarios:
            self.default_scenario = next(iter(self.scenarios))

    # Reference data

    def list_jurisdictions(self) -> dict:
        details = default_jurisdiction_details()
        return {
            "jurisdictions": [info.to_dict() for info in details.all()],
            "fallback_code": details.fallback_code,
        }

    def get_rate_schedule(self, year: Optional[Any] = None) -> dict:
        sbie = default_sbie_details()
        safe_harbour = default_safe_harbour_details()
        if year is not None:
            rates = sbie.rates_for(year)
            return {
                "year": year,
                "sbie": {"payroll_rate": rates.payroll, "asset_rate": rates.asset},
                "transition_rate": get_transition_rate(year),
            }
        return {
            "sbie": [
                {"year": y, "payroll_rate": r.payroll, "asset_rate": r.asset}
                for y, r in sorted(sbie.rates_by_year.items())
            ],
            "transition_rates": [
                {"year": y, "rate": rate} for y, rate in sorted(safe_harbour.rate_by_year.items())
            ],
            "de_minimis": {
                "revenue_threshold": safe_harbour.revenue_threshold,
                "profit_threshold": safe_harbour.profit_threshold,
            },
        }

    def search_data_points(self, query: str, limit: int = 10) -> dict:
        matches = search_data_points(query, limit)
        return {
            "query": query,
            "matches": [dict(id=point_id, **to_plain(point)) for point_id, point in matches],
        }

    # Calculators

    def _run(self, tool: str, inputs: Dict[str, Any]) -> dict:
        return run_scenario({"tool": tool, "inputs": inputs}).to_dict()

    def calculate_globe(self, entry: Dict[str, Any], fiscal_year: Any = '2024', currency: str = 'EUR') -> dict:
        return self._run(GLOBE, {"entry": entry, "fiscal_year": fiscal_year, "currency": currency})

    def calculate_globe_steps(self, income: Any, taxes: Any, payroll: Any = '', assets: Any = '',
                              qdmtt: Any = '', fiscal_year: Any = '2024', currency: str = 'EUR',
                              mne_name: str = '', jurisdiction: str = '') -> dict:
        return self._run(GLOBE_STEPS, {
            "income": income, "taxes": taxes, "payroll": payroll, "assets": assets, "qdmtt": qdmtt,
            "fiscal_year": fiscal_year, "currency": currency,
            "mne_name": mne_name, "jurisdiction": jurisdiction,
        })

    def assess_safe_harbour(self, de_minimis: Optional[dict] = None, simplified_etr: Optional[dict] = None,
                            routine_profits: Optional[dict] = None, fiscal_year: Any = '2024',
                            jurisdiction: str = '') -> dict:
        return self._run(SAFE_HARBOUR, {
            "de_minimis": de_minimis or {}, "simplified_etr": simplified_etr or {},
            "routine_profits": routine_profits or {}, "fiscal_year": fiscal_year,
            "jurisdiction": jurisdiction,
        })

    def calculate_filing_deadline(self, mne_name: str, fiscal_year_end: str, filing_jurisdiction: str,
                                  upe_location: str, is_first_filing: bool = True,
                                  today: Optional[str] = None) -> dict:
        return self._run(DEADLINE, {
            "mne_name": mne_name, "fiscal_year_end": fiscal_year_end,
            "filing_jurisdiction": filing_jurisdiction, "upe_location": upe_location,
            "is_first_filing": is_first_filing, "today": today,
        })

    def calculate_gir(self, case_study: Optional[str] = None, section1: Optional[dict] = None,
                      section2: Optional[List[dict]] = None, section3: Optional[List[dict]] = None,
                      add_missing_jurisdictions: bool = False) -> dict:
        return self._run(GIR, {
            "case_study": case_study, "section1": section1, "section2": section2, "section3": section3,
            "add_missing_jurisdictions": add_missing_jurisdictions,
        })

    def assess_dfe(self, mne_info: Optional[dict] = None, candidates: Optional[List[dict]] = None,
                   case_study: bool = False) -> dict:
        return self._run(DFE, {"mne_info": mne_info, "candidates": candidates, "case_study": case_study})

    def assess_audit_checklist(self, case_study: bool = False, metadata: Optional[dict] = None,
                               item_states: Optional[dict] = None, filter: str = 'ALL',
                               search: str = '') -> dict:
        return self._run(AUDIT, {
            "case_study": case_study, "metadata": metadata, "item_states": item_states,
            "filter": filter, "search": search,
        })

    # Scenarios

    def list_scenarios(self) -> dict:
        return {
            "available_scenarios": list(self.scenarios),
            "default_scenario": self.default_scenario,
            "tools": {name: spec.get("tool") for name, spec in self.scenarios.items()},
        }

    def reload_scenarios(self) -> dict:
        """Re-read scenario files from disk."""
        self.scenarios = {}
        self._discover_scenarios()
        if self.default_scenario not in self.scenarios:
            self.default_scenario = next(iter(self.scenarios), None)
        return {"reloaded": True, **self.list_scenarios()}

    def run_scenario(self, scenario: Optional[str] = None) -> dict:
        name = scenario or self.default_scenario
        if name not in self.scenarios:
            raise ValueError(f"Scenario '{name}' not found. Available scenarios: {list(self.scenarios)}")
        return run_scenario(self.scenarios[name], name=name).to_dict()

    # Saved work

    def _envelope(self, tool_id: str):
        if tool_id not in SAVED_WORK_ENVELOPES:
            raise ValueError(f"Unknown tool id '{tool_id}'. Expected one of: {list(SAVED_WORK_ENVELOPES)}")
        return SAVED_WORK_ENVELOPES[tool_id]

    async def save_work(self, tool_id: str, data: dict) -> dict:
        """Normalise ``data`` through the tool's envelope and store it."""
        envelope = self._envelope(tool_id).from_dict(data)
        payload = envelope.payload()
        if envelope.id:
            payload['id'] = envelope.id
        record_id = await self.store.save(tool_id, payload)
        return {"tool_id": tool_id, "id": record_id}

    async def load_work(self, tool_id: str, record_id: str) -> dict:
        self._envelope(tool_id)
        record = await self.store.load(tool_id, record_id)
        if record is None:
            return {"error": f"No saved {tool_id} record with id {record_id}"}
        return record

    async def delete_work(self, tool_id: str, record_id: str) -> dict:
        self._envelope(tool_id)
        await self.store.delete(tool_id, record_id)
        return {"tool_id": tool_id, "id": record_id, "deleted": True}

    def list_saved_work(self, tool_id: str) -> dict:
        self._envelope(tool_id)
        return {"tool_id": tool_id, "records": self.store.list(tool_id)}
