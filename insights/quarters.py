from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple


_FQ_RE = re.compile(r"^\s*FY\s*(\d{2}|\d{4})\s*Q([1-4])\s*$", re.IGNORECASE)


def parse_fiscal_quarter(label: object) -> Tuple[Optional[int], Optional[int]]:
    """Parse 'FY25 Q1' -> (2025, 1). Anything else -> (None, None)."""
    if label is None:
        return None, None
    match = _FQ_RE.match(str(label))
    if not match:
        return None, None
    year = int(match.group(1))
    if year < 100:
        year += 2000
    return year, int(match.group(2))


def is_fiscal_quarter(label: object) -> bool:
    return parse_fiscal_quarter(label)[0] is not None


def quarter_sort_key(label: object) -> Tuple[int, int]:
    year, quarter = parse_fiscal_quarter(label)
    return (year or 0, quarter or 0)


def sort_quarters(labels: Iterable[str], *, newest_first: bool = True) -> List[str]:
    unique = list(dict.fromkeys(str(x) for x in labels if x))
    return sorted(unique, key=quarter_sort_key, reverse=newest_first)


def format_quarter_label(label: object) -> str:
    year, quarter = parse_fiscal_quarter(label)
    if year is None:
        return "" if label is None else str(label)
    return f"Q{quarter} {year}"


def make_quarter_label(year: int, quarter: int) -> str:
    return f"FY{year % 100:02d} Q{quarter}"


def previous_quarter(label: object) -> Optional[str]:
    year, quarter = parse_fiscal_quarter(label)
    if year is None:
        return None
    if quarter == 1:
        return make_quarter_label(year - 1, 4)
    return make_quarter_label(year, quarter - 1)
