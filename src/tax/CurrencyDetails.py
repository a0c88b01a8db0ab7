from functools import lru_cache
from typing import Dict, List

from tax.year_table import load_reference

CURRENCIES_FILE = 'currencies.json'


class CurrencyDetails:
	def __init__(self, data: Dict = None):
		if data is None:
			data = load_reference(CURRENCIES_FILE)
		self.currencies: Dict[str, Dict[str, str]] = {c["code"]: c for c in data.get("currencies", [])}

	def codes(self) -> List[str]:
		return list(self.currencies)

	def symbol(self, code: str) -> str:
		"""Display symbol for a currency code; unknown codes display as the code."""
		currency = self.currencies.get(code)
		return currency["symbol"] if currency else code


@lru_cache(maxsize=1)
def default_currency_details() -> CurrencyDetails:
	return CurrencyDetails()
