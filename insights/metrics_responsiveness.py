from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from insights.charts import percent_axis, to_vega_spec
from insights.config import THEME
from insights.data import format_quarter_label, quarter_sort_key, round_half_up
from insights.filters import DashboardFilters
from insights.models import DashboardData


def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return None
    return float(value)


def _as_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return []


def quarterly_rows(table: pd.DataFrame, dashboard: Optional[DashboardData]) -> List[Dict[str, Any]]:
    """Chronological quarter rows; stored table rows win over the dashboard blob."""
    if table is not None and not table.empty:
        raw = table.to_dict(orient="records")
    elif dashboard is not None:
        raw = list(dashboard.metric_summary.responsiveness_quarterly_data)
    else:
        raw = []

    rows: Dict[str, Dict[str, Any]] = {}
    for r in raw:
        quarter = r.get("quarter")
        if not quarter or str(quarter) in rows:
            continue
        pct = _num(r.get("percentage")) or 0.0
        total = _num(r.get("total_ideas")) or 0.0
        moved = _num(r.get("ideas_moved_out_of_review"))
        if moved is None:
            moved = float(round_half_up(total * pct / 100))
        rows[str(quarter)] = {
            "quarter": str(quarter),
            "label": format_quarter_label(quarter),
            "percentage": pct,
            "total_ideas": total,
            "ideas_moved_out_of_review": moved,
            "ideas_list": _as_list(r.get("ideas_list")),
        }
    ordered = sorted(rows.values(), key=lambda x: quarter_sort_key(x["quarter"]))
    prev = None
    for row in ordered:
        row["change"] = row["percentage"] - prev if prev is not None else None
        prev = row["percentage"]
    return ordered


def compute_responsiveness(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    dashboard: Optional[DashboardData] = ctx.get("dashboard")
    rows = quarterly_rows(ctx.get("responsiveness_trends", pd.DataFrame()), dashboard)

    current = next((r for r in rows if r["quarter"] == filters.quarter), None)
    value = current["percentage"] if current else (dashboard.metric_summary.responsiveness if dashboard else None)
    detail = next((r for r in rows if r["quarter"] == filters.detail_quarter), None)

    charts: Dict[str, Any] = {}
    if rows:
        df = pd.DataFrame([{k: v for k, v in r.items() if k != "ideas_list"} for r in rows])
        hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
        base = alt.Chart(df).encode(
            x=alt.X("label:N", title="Quarter", sort=df["label"].tolist(), axis=alt.Axis(labelAngle=0, grid=False)),
            y=alt.Y("percentage:Q", scale=alt.Scale(domain=[0, 100]), axis=percent_axis("Responsiveness")),
        )
        line = base.mark_line(color=THEME["accent_primary"])
        points = (
            base.mark_point(filled=True, size=80, color=THEME["accent_primary"])
            .encode(
                opacity=alt.condition(hover, alt.value(1), alt.value(0.4)),
                tooltip=[
                    alt.Tooltip("label:N", title="Quarter"),
                    alt.Tooltip("percentage:Q", title="Responsiveness %"),
                    alt.Tooltip("total_ideas:Q", title="Total ideas", format=","),
                    alt.Tooltip("ideas_moved_out_of_review:Q", title="Moved out of review", format=","),
                ],
            )
            .add_params(hover)
        )
        charts["responsiveness_trend"] = to_vega_spec((line + points).properties(height=260))

    return {
        "filters": asdict(filters),
        "value": value,
        "change": current["change"] if current else None,
        "quarters": rows,
        "selected_quarter": detail,
        "charts": charts,
    }
