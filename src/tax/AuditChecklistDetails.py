from functools import lru_cache
from typing import Dict, List

from model.AuditData import PRIORITIES, ChecklistItem, ChecklistSection
from tax.year_table import load_reference

AUDIT_CHECKLIST_FILE = 'audit-checklist.json'


class AuditChecklistDetails:
	"""The GIR audit file checklist: sections and their items, in display order."""

	def __init__(self, data: Dict = None):
		if data is None:
			data = load_reference(AUDIT_CHECKLIST_FILE)
		self.sections: List[ChecklistSection] = [ChecklistSection(id=s["id"], title=s["title"]) for s in data.get("sections", [])]
		if not self.sections:
			raise ValueError(f"{AUDIT_CHECKLIST_FILE} must contain a 'sections' array with at least one entry")
		section_ids = {s.id for s in self.sections}

		self.items: List[ChecklistItem] = []
		seen = set()
		for entry in data.get("items", []):
			item = ChecklistItem.from_dict(entry)
			if item.section not in section_ids:
				raise ValueError(f"{AUDIT_CHECKLIST_FILE} item {item.id} names unknown section '{item.section}'")
			if item.priority not in PRIORITIES:
				raise ValueError(f"{AUDIT_CHECKLIST_FILE} item {item.id} has unknown priority '{item.priority}'")
			if item.id in seen:
				raise ValueError(f"{AUDIT_CHECKLIST_FILE} item {item.id} is defined twice")
			seen.add(item.id)
			self.items.append(item)
		self.case_study: Dict = data.get("caseStudy", {})

	def items_in(self, section_id: str) -> List[ChecklistItem]:
		return [item for item in self.items if item.section == section_id]

	def item(self, item_id: str) -> ChecklistItem:
		for item in self.items:
			if item.id == item_id:
				return item
		raise KeyError(item_id)


@lru_cache(maxsize=1)
def default_audit_checklist_details() -> AuditChecklistDetails:
	return AuditChecklistDetails()
