import logging
from functools import lru_cache
from typing import Dict, List

from model.DeadlineData import JurisdictionInfo
from tax.year_table import load_reference

logger = logging.getLogger(__name__)

JURISDICTIONS_FILE = 'jurisdictions.json'


class JurisdictionDetails:
	"""GIR filing authority details by jurisdiction code."""

	def __init__(self, data: Dict = None):
		if data is None:
			data = load_reference(JURISDICTIONS_FILE)
		entries = data.get("jurisdictions", [])
		if not entries:
			raise ValueError(f"{JURISDICTIONS_FILE} must contain a 'jurisdictions' array with at least one entry")
		self.by_code: Dict[str, JurisdictionInfo] = {}
		for entry in entries:
			info = JurisdictionInfo.from_dict(entry)
			self.by_code[info.code] = info
		self.fallback_code = data.get("fallbackCode", "OTHER")
		if self.fallback_code not in self.by_code:
			raise ValueError(f"{JURISDICTIONS_FILE} fallback jurisdiction '{self.fallback_code}' is not defined")

	def codes(self) -> List[str]:
		return list(self.by_code)

	def all(self) -> List[JurisdictionInfo]:
		return list(self.by_code.values())

	def lookup(self, code: str) -> JurisdictionInfo:
		"""Info for a code; unknown codes get the fallback jurisdiction."""
		info = self.by_code.get((code or '').strip().upper())
		if info is None:
			logger.debug("Unknown jurisdiction %r, using %s", code, self.fallback_code)
			return self.by_code[self.fallback_code]
		return info


@lru_cache(maxsize=1)
def default_jurisdiction_details() -> JurisdictionDetails:
	return JurisdictionDetails()
