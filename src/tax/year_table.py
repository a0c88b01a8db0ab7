import json
import logging
import os
import re
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

REFERENCE_DIR = os.path.join(os.path.dirname(__file__), 'reference')

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def load_reference(file_name: str) -> Dict[str, Any]:
    path = os.path.join(REFERENCE_DIR, file_name)
    logger.debug("Loading reference data from %s", path)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def sequential_years(entries: List[Dict[str, Any]], file_name: str) -> List[Dict[str, Any]]:
    """Sort year entries and check there are no gaps."""
    if not entries:
        raise ValueError(f"{file_name} must contain at least one year entry")

    entries = sorted(entries, key=lambda x: x["year"])

    for i in range(1, len(entries)):
        if entries[i]["year"] != entries[i-1]["year"] + 1:
            raise ValueError(f"Years in {file_name} must be sequential. Gap found between {entries[i-1]['year']} and {entries[i]['year']}")

    return entries


def parse_year(year, default: int) -> int:
    """Parse a fiscal year given as int or text ('2024', '2024-12-31').

    Text without a leading integer falls back to ``default``.
    """
    if isinstance(year, bool):
        return default
    if isinstance(year, int):
        return year
    if isinstance(year, float):
        return int(year)
    match = _LEADING_INT.match(str(year or ''))
    if not match:
        return default
    return int(match.group(1))


def clamp_year(year: int, first_year: int, last_year: int) -> int:
    return max(first_year, min(last_year, year))
