from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import numpy as np
import pandas as pd

from insights.charts import percent_axis, to_vega_spec
from insights.config import THEME
from insights.data import format_quarter_label
from insights.filters import DashboardFilters
from insights.models import DashboardData

FOLLOW_UP_WINDOW_DAYS = 90


def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return None if pd.isna(value) else float(value)
    except (TypeError, ValueError):
        return None


def is_included(row: Dict[str, Any]) -> bool:
    """Explicit flag wins; otherwise the follow-up must land within 90 days."""
    flag = row.get("included")
    if isinstance(flag, (bool, np.bool_)):
        return bool(flag)
    days = _num(row.get("days_between"))
    return days is not None and days <= FOLLOW_UP_WINDOW_DAYS


def _idea(row: Dict[str, Any]) -> Dict[str, Any]:
    changes = row.get("subsequent_changes")
    return {
        "id": row.get("idea_id") if pd.notna(row.get("idea_id")) else None,
        "name": row.get("idea_name") if pd.notna(row.get("idea_name")) else None,
        "initial_status_change": row.get("initial_status_change") if pd.notna(row.get("initial_status_change")) else None,
        "subsequent_changes": changes if isinstance(changes, list) else [],
        "days_between": _num(row.get("days_between")),
        "included": is_included(row),
    }


def _summary_from(df: pd.DataFrame) -> Optional[Dict[str, Optional[float]]]:
    if df.empty:
        return None
    first = df.iloc[0]
    return {"rate": _num(first.get("rate")), "numerator": _num(first.get("numerator")), "denominator": _num(first.get("denominator"))}


def engagement_trend(all_rows: pd.DataFrame) -> List[Dict[str, Any]]:
    out = []
    if all_rows.empty:
        return out
    for quarter, part in all_rows.groupby("quarter", sort=False):
        summary = _summary_from(part) or {}
        out.append({"quarter": str(quarter), "label": format_quarter_label(quarter), **summary})
    return out


def compute_engagement(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    current: pd.DataFrame = ctx.get("engagement_current", pd.DataFrame())
    dashboard: Optional[DashboardData] = ctx.get("dashboard")

    summary = _summary_from(current)
    if summary is None and dashboard is not None:
        ce = dashboard.metric_summary.continued_engagement
        summary = {"rate": ce.rate, "numerator": ce.numerator, "denominator": ce.denominator}

    ideas: List[Dict[str, Any]] = []
    if not current.empty:
        has_idea = current["idea_id"].notna() | current["idea_name"].notna()
        ideas = [_idea(r) for r in current[has_idea].to_dict(orient="records")]
    elif dashboard is not None:
        for raw in dashboard.metric_summary.continued_engagement.ideas:
            ideas.append(_idea({"idea_id": raw.get("id"), "idea_name": raw.get("name"), **raw}))

    trend = engagement_trend(ctx.get("engagement_all", pd.DataFrame()))

    charts: Dict[str, Any] = {}
    if trend:
        df = pd.DataFrame(trend)
        chart = (
            alt.Chart(df)
            .mark_line(point={"filled": True, "size": 60}, color=THEME["success"])
            .encode(
                x=alt.X("label:N", title="Quarter", sort=df["label"].tolist(), axis=alt.Axis(labelAngle=0, grid=False)),
                y=alt.Y("rate:Q", scale=alt.Scale(domain=[0, 100]), axis=percent_axis("Engagement rate")),
                tooltip=["label", alt.Tooltip("rate:Q", title="Rate %"), "numerator", "denominator"],
            )
            .properties(height=240)
        )
        charts["engagement_trend"] = to_vega_spec(chart)

    return {
        "filters": asdict(filters),
        "summary": summary or {"rate": None, "numerator": None, "denominator": None},
        "included_ideas": [i for i in ideas if i["included"]],
        "excluded_ideas": [i for i in ideas if not i["included"]],
        "trend": trend,
        "window_days": FOLLOW_UP_WINDOW_DAYS,
        "charts": charts,
    }
