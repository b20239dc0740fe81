from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from insights.models import PRODUCTS, QUARTERS
from insights.quarters import make_quarter_label, parse_fiscal_quarter, previous_quarter, sort_quarters


@dataclass(frozen=True)
class DashboardFilters:
    product: str = PRODUCTS[0]
    quarter: str = QUARTERS[0]
    previous_quarter: Optional[str] = None
    top_n: int = 10
    # Quarter whose idea lists are expanded (responsiveness, submissions); defaults to `quarter`.
    detail_quarter: Optional[str] = None


def match_product(value: object) -> str:
    if value is None:
        return PRODUCTS[0]
    s = str(value).strip().lower()
    for product in PRODUCTS:
        if product.lower() == s:
            return product
    return PRODUCTS[0]


def canonical_quarter(value: object) -> Optional[str]:
    year, quarter = parse_fiscal_quarter(value)
    return make_quarter_label(year, quarter) if year is not None else None


def normalize_filters(raw: dict, *, available_quarters: Optional[List[str]] = None) -> DashboardFilters:
    quarters = sort_quarters(available_quarters or QUARTERS)

    product = match_product(raw.get("product"))

    quarter = canonical_quarter(raw.get("quarter")) or (quarters[0] if quarters else QUARTERS[0])
    detail_quarter = canonical_quarter(raw.get("detail_quarter"))

    top_n = raw.get("top_n", 10)
    try:
        top_n = int(top_n)
    except (TypeError, ValueError):
        top_n = 10
    top_n = max(1, min(50, top_n))

    return DashboardFilters(
        product=product,
        quarter=quarter,
        previous_quarter=previous_quarter(quarter),
        top_n=top_n,
        detail_quarter=detail_quarter or quarter,
    )
