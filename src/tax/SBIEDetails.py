from functools import lru_cache
from typing import Dict, List

from model.GloBEData import SBIERates
from tax.year_table import clamp_year, load_reference, parse_year, sequential_years

SBIE_FILE = 'sbie-rates.json'


class SBIEDetails:
	"""Substance-Based Income Exclusion carve-out rates by fiscal year.

	Rates are percentages (9.8 means 9.8%). Years before the first table year use
	the first year's rates and years after the last use the last year's.
	"""

	def __init__(self, data: Dict = None):
		if data is None:
			data = load_reference(SBIE_FILE)
		self.rates_by_year: Dict[int, SBIERates] = {}
		self._load_rates(data)

	def _load_rates(self, data: Dict):
		tax_years = sequential_years(data.get("taxYears", []), SBIE_FILE)
		for year_data in tax_years:
			self.rates_by_year[year_data["year"]] = SBIERates(
				payroll=float(year_data["payrollRate"]),
				asset=float(year_data["assetRate"]),
			)
		self.first_year = tax_years[0]["year"]
		self.last_year = tax_years[-1]["year"]

	def years(self) -> List[int]:
		return sorted(self.rates_by_year)

	def rates_for(self, year) -> SBIERates:
		"""Rates for a fiscal year, given as an int or text such as '2025'."""
		tax_year = clamp_year(parse_year(year, self.first_year), self.first_year, self.last_year)
		return self.rates_by_year[tax_year]

	def carve_out(self, payroll: float, assets: float, year) -> Dict[str, float]:
		"""Unrounded payroll, asset and total carve-out amounts."""
		rates = self.rates_for(year)
		pay_sbie = payroll * rates.payroll / 100
		ast_sbie = assets * rates.asset / 100
		return {"payroll": pay_sbie, "assets": ast_sbie, "total": pay_sbie + ast_sbie}


@lru_cache(maxsize=1)
def default_sbie_details() -> SBIEDetails:
	return SBIEDetails()
