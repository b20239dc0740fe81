from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from insights.charts import percent_axis, to_vega_spec
from insights.config import THEME
from insights.data import format_quarter_label, round_half_up
from insights.filters import DashboardFilters
from insights.models import DashboardData

DIRECTION_THRESHOLD = 3
SIGNIFICANT_CHANGE = 8
TOP_IDEAS = 5


def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return None if pd.isna(value) else float(value)
    except (TypeError, ValueError):
        return None


def change_direction(change: float) -> str:
    if change > DIRECTION_THRESHOLD:
        return "up"
    if change < -DIRECTION_THRESHOLD:
        return "down"
    return "stable"


def collaboration_rate(stored: Optional[float], collaborative: Optional[float], total: Optional[float]) -> float:
    if stored is not None:
        return stored
    if total:
        return float(round_half_up((collaborative or 0) / total * 100))
    return 0.0


def _idea(row: Dict[str, Any]) -> Dict[str, Any]:
    contributors = row.get("contributors")
    return {
        "id": row.get("idea_id") if pd.notna(row.get("idea_id")) else None,
        "name": row.get("idea_name"),
        "original_submitter": row.get("original_submitter") if pd.notna(row.get("original_submitter")) else None,
        "contributors": list(contributors) if isinstance(contributors, (list, tuple)) else [],
        "submission_date": row.get("submission_date") if pd.notna(row.get("submission_date")) else None,
        "collaboration_score": _num(row.get("collaboration_score")),
        "status": row.get("status") if pd.notna(row.get("status")) else None,
        "comments": row.get("comments") if pd.notna(row.get("comments")) else None,
    }


def quarterly_collaboration(df: pd.DataFrame) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    if df.empty:
        return out
    prev_rate: Optional[float] = None
    for quarter, part in df.groupby("quarter", sort=False):
        first = part.iloc[0]
        collaborative = _num(first.get("collaborative_ideas_count"))
        total = _num(first.get("total_ideas_count"))
        rate = collaboration_rate(_num(first.get("collaboration_rate")), collaborative, total)
        change = rate - prev_rate if prev_rate is not None else 0.0
        prev_rate = rate

        ideas = [_idea(r) for r in part[part["idea_name"].notna()].to_dict(orient="records")]
        ideas.sort(key=lambda i: i["collaboration_score"] if i["collaboration_score"] is not None else -1, reverse=True)
        scores = [i["collaboration_score"] for i in ideas if i["collaboration_score"] is not None]
        out.append(
            {
                "quarter": str(quarter),
                "label": format_quarter_label(quarter),
                "year": first.get("year") if pd.notna(first.get("year")) else None,
                "collaborative_ideas": collaborative,
                "total_ideas": total,
                "collaboration_rate": rate,
                "change": change,
                "change_direction": change_direction(change),
                "significant_change": abs(change) >= SIGNIFICANT_CHANGE,
                "top_collaborative_ideas": ideas[:TOP_IDEAS],
                "average_collaboration_score": round(sum(scores) / len(scores), 1) if scores else None,
            }
        )
    return out


def compute_collaboration(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    rows = quarterly_collaboration(ctx.get("collaboration", pd.DataFrame()))
    dashboard: Optional[DashboardData] = ctx.get("dashboard")

    current = next((r for r in rows if r["quarter"] == filters.quarter), None)
    value = current["collaboration_rate"] if current else (dashboard.metric_summary.cross_client_collaboration if dashboard else None)
    average = round(sum(r["collaboration_rate"] for r in rows) / len(rows), 1) if rows else None

    charts: Dict[str, Any] = {}
    if rows:
        df = pd.DataFrame([{k: v for k, v in r.items() if k != "top_collaborative_ideas"} for r in rows])
        hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
        base = alt.Chart(df).encode(
            x=alt.X("label:N", title="Quarter", sort=df["label"].tolist(), axis=alt.Axis(labelAngle=0, grid=False)),
        )
        line = base.mark_line(color=THEME["accent_primary"]).encode(
            y=alt.Y("collaboration_rate:Q", scale=alt.Scale(domain=[0, 100]), axis=percent_axis("Collaboration rate")),
        )
        points = (
            base.mark_point(filled=True, size=90)
            .encode(
                y="collaboration_rate:Q",
                color=alt.Color(
                    "change_direction:N",
                    scale=alt.Scale(domain=["up", "stable", "down"], range=[THEME["success"], THEME["text_secondary"], THEME["danger"]]),
                    legend=alt.Legend(title="Change", orient="top"),
                ),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.4)),
                tooltip=[
                    alt.Tooltip("label:N", title="Quarter"),
                    alt.Tooltip("collaboration_rate:Q", title="Rate %"),
                    alt.Tooltip("change:Q", title="Change (pts)"),
                    alt.Tooltip("collaborative_ideas:Q", title="Collaborative ideas"),
                    alt.Tooltip("total_ideas:Q", title="Total ideas"),
                ],
            )
            .add_params(hover)
        )
        avg_rule = (
            alt.Chart(pd.DataFrame({"average": [average]}))
            .mark_rule(strokeDash=[6, 4], color=THEME["warning"])
            .encode(y="average:Q", tooltip=[alt.Tooltip("average:Q", title="Average %")])
        )
        charts["collaboration_trend"] = to_vega_spec((line + points + avg_rule).properties(height=260))

    return {
        "filters": asdict(filters),
        "value": value,
        "current": current,
        "average_rate": average,
        "quarters": rows,
        "charts": charts,
    }
