from functools import lru_cache
from typing import Dict

from tax.year_table import clamp_year, load_reference, parse_year, sequential_years

SAFE_HARBOUR_FILE = 'safe-harbour.json'


class SafeHarbourDetails:
	"""Transitional CbCR Safe Harbour parameters.

	Holds the De Minimis revenue and profit thresholds and the Simplified ETR
	transition rate (a percentage) for each transition year. Years outside the
	transition period use the nearest year's rate.
	"""

	def __init__(self, data: Dict = None):
		if data is None:
			data = load_reference(SAFE_HARBOUR_FILE)
		de_minimis = data.get("deMinimis", {})
		if "revenueThreshold" not in de_minimis or "profitThreshold" not in de_minimis:
			raise ValueError(f"{SAFE_HARBOUR_FILE} must define deMinimis revenueThreshold and profitThreshold")
		self.revenue_threshold = float(de_minimis["revenueThreshold"])
		self.profit_threshold = float(de_minimis["profitThreshold"])

		transition_years = sequential_years(data.get("transitionYears", []), SAFE_HARBOUR_FILE)
		self.rate_by_year: Dict[int, float] = {y["year"]: float(y["rate"]) for y in transition_years}
		self.first_year = transition_years[0]["year"]
		self.last_year = transition_years[-1]["year"]

	def transition_rate(self, year) -> float:
		tax_year = clamp_year(parse_year(year, self.first_year), self.first_year, self.last_year)
		return self.rate_by_year[tax_year]


@lru_cache(maxsize=1)
def default_safe_harbour_details() -> SafeHarbourDetails:
	return SafeHarbourDetails()
