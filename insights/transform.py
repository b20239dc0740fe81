from __future__ import annotations

import math
import re
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from insights.csv_ingest import REQUIRED_FIELDS, CSVError, read_csv_text, rows_for_product
from insights.models import (
    AGING_TREND_QUARTERS,
    AgingIdeas,
    ContinuedEngagement,
    DashboardData,
    Feature,
    Forum,
    IdeaVolume,
    LineChartPoint,
    MetricSummary,
    RoadmapAlignment,
    StackedBarRow,
)

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def safe_number(value: object) -> Union[int, float]:
    """Blank or unparseable -> 0. Integral values come back as int."""
    if value is None:
        return 0
    try:
        if pd.isna(value):
            return 0
    except (TypeError, ValueError):
        pass
    s = str(value).strip()
    if not s:
        return 0
    try:
        num = float(s)
    except ValueError:
        return 0
    if not math.isfinite(num):
        return 0
    return int(num) if num.is_integer() else num


def parse_int_prefix(value: object) -> Optional[int]:
    if value is None:
        return None
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else None


def split_list(value: object) -> List[str]:
    if value is None:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _text(row: Dict[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None:
        return ""
    return str(value)


def _present(row: Dict[str, Any], *keys: str) -> bool:
    return all(_text(row, k).strip() for k in keys)


def transform_feature(row: Dict[str, Any]) -> Optional[Feature]:
    if not _present(row, "feature_name", "vote_count", "status", "status_updated_at", "client_voters"):
        return None
    votes = parse_int_prefix(row.get("vote_count"))
    if votes is None:
        return None
    return Feature(
        feature_name=_text(row, "feature_name"),
        vote_count=votes,
        status=_text(row, "status"),
        status_updated_at=_text(row, "status_updated_at"),
        client_voters=split_list(row.get("client_voters")),
    )


def _metric_summary(first: Dict[str, Any]) -> MetricSummary:
    trend = [
        {"quarter": quarter, "count": safe_number(first.get(f"aging_ideas_trend_q{idx}"))}
        for idx, quarter in enumerate(AGING_TREND_QUARTERS, start=1)
    ]
    return MetricSummary(
        responsiveness=safe_number(first.get("responsiveness")),
        roadmap_alignment=RoadmapAlignment(
            committed=safe_number(first.get("roadmap_alignment_committed")),
            total=safe_number(first.get("roadmap_alignment_total")),
        ),
        cross_client_collaboration=safe_number(first.get("cross_client_collaboration")),
        continued_engagement=ContinuedEngagement(
            rate=safe_number(first.get("continued_engagement_rate")),
            numerator=safe_number(first.get("continued_engagement_numerator")),
            denominator=safe_number(first.get("continued_engagement_denominator")),
            ideas=[],
        ),
        idea_volume=IdeaVolume(
            quarterly=safe_number(first.get("quarterly_ideas")),
            total=safe_number(first.get("total_ideas")),
        ),
        aging_ideas=AgingIdeas(count=safe_number(first.get("aging_ideas_count")), trend=trend),
    )


def _quarter_number(label: str) -> int:
    tail = label.strip()[-1:] if label.strip() else ""
    return int(tail) if tail.isdigit() else 0


def transform_dashboard_rows(rows: pd.DataFrame) -> DashboardData:
    records: List[Dict[str, Any]] = rows.to_dict(orient="records")
    if not records:
        return DashboardData()
    first = records[0]

    stacked: List[StackedBarRow] = []
    seen_years = set()
    for row in records:
        year = _text(row, "year").strip()
        key = (year, _text(row, "product").strip().lower())
        if not year or key in seen_years:
            continue
        seen_years.add(key)
        stacked.append(
            StackedBarRow(
                year=year,
                candidate_ideas=safe_number(row.get("candidate_ideas")),
                in_development=safe_number(row.get("in_development")),
                archived_ideas=safe_number(row.get("archived_ideas")),
                flagged_for_future=safe_number(row.get("flagged_for_future")),
            )
        )

    line: List[LineChartPoint] = []
    seen_quarters = set()
    for row in records:
        quarter = _text(row, "active_quarter").strip()
        if not quarter or quarter in seen_quarters:
            continue
        seen_quarters.add(quarter)
        line.append(LineChartPoint(quarter=quarter, clients_representing=safe_number(row.get("active_clients_representing"))))
    line.sort(key=lambda p: _quarter_number(p.quarter))

    features = [f for f in (transform_feature(row) for row in records) if f is not None]
    features.sort(key=lambda f: f.vote_count, reverse=True)

    forums = [
        Forum(name=_text(row, "forum_name"), audience=_text(row, "forum_audience"), purpose=_text(row, "forum_purpose"))
        for row in records
        if _present(row, "forum_name", "forum_audience", "forum_purpose")
    ]

    return DashboardData(
        metric_summary=_metric_summary(first),
        stacked_bar_data=stacked,
        line_chart_data=line,
        top_features=features,
        data_socialization_forums=forums,
    )


def parse_dashboard_csv(content: Union[str, bytes], product: str) -> DashboardData:
    df = read_csv_text(content)
    if df.empty:
        raise CSVError("Invalid data structure", "data", ["The CSV file must contain at least one row of data"])

    product_rows = rows_for_product(df, product)
    if product_rows.empty:
        raise CSVError("Invalid product data", "data", [f"The CSV file does not contain data for {product}"])

    first_row = df.iloc[0]
    empty_fields = [f for f in REQUIRED_FIELDS if f in df.columns and not str(first_row[f]).strip()]
    if empty_fields:
        raise CSVError(
            "Missing required values",
            "data",
            ["The following required fields are empty in the first row:", *[f"- {f}" for f in empty_fields]],
        )

    return transform_dashboard_rows(product_rows)
