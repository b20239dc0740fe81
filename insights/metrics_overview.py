from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from insights.charts import to_vega_spec
from insights.config import THEME
from insights.data import format_quarter_label, quarter_sort_key, round_half_up
from insights.filters import DashboardFilters
from insights.metrics_commitment import commitment_status, yearly_commitments
from insights.models import DashboardData


def _change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None:
        return None
    return float(current) - float(previous)


def roadmap_progress(committed: float, total: float) -> int:
    return round_half_up(committed / total * 100) if total else 0


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    dashboard: Optional[DashboardData] = ctx.get("dashboard")
    previous: Optional[DashboardData] = ctx.get("previous_dashboard")
    has_data = dashboard is not None
    ms = (dashboard or DashboardData()).metric_summary
    prev_ms = previous.metric_summary if previous is not None else None

    years = yearly_commitments(ctx.get("commitment_trends", pd.DataFrame()))
    latest_rate = years[-1]["delivery_rate"] if years else None

    committed = float(ms.roadmap_alignment.committed or 0)
    total = float(ms.roadmap_alignment.total or 0)

    kpis = {
        "responsiveness": {
            "value": ms.responsiveness,
            "previous": prev_ms.responsiveness if prev_ms else None,
            "change": _change(ms.responsiveness, prev_ms.responsiveness if prev_ms else None),
        },
        "roadmap_alignment": {
            "committed": committed,
            "total": total,
            "progress_pct": roadmap_progress(committed, total),
            "commitment_status": commitment_status(latest_rate),
        },
        "continued_engagement": {
            "rate": ms.continued_engagement.rate,
            "numerator": ms.continued_engagement.numerator,
            "denominator": ms.continued_engagement.denominator,
        },
        "cross_client_collaboration": {
            "value": ms.cross_client_collaboration,
            "change": _change(ms.cross_client_collaboration, prev_ms.cross_client_collaboration if prev_ms else None),
        },
        "idea_volume": {"quarterly": ms.idea_volume.quarterly, "total": ms.idea_volume.total},
        "aging_ideas": {"count": ms.aging_ideas.count, "trend": list(ms.aging_ideas.trend)},
    }

    charts: Dict[str, Any] = {}
    if ms.aging_ideas.trend:
        trend = pd.DataFrame(ms.aging_ideas.trend)
        trend["label"] = trend["quarter"].map(format_quarter_label)
        aging = (
            alt.Chart(trend)
            .mark_bar(color=THEME["warning"], cornerRadiusTopLeft=3, cornerRadiusTopRight=3)
            .encode(
                x=alt.X("label:N", title=None, sort=trend["label"].tolist(), axis=alt.Axis(labelAngle=0)),
                y=alt.Y("count:Q", title="Aging ideas", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                tooltip=[alt.Tooltip("quarter:N"), alt.Tooltip("count:Q", format=",")],
            )
            .properties(height=200)
        )
        charts["aging_ideas_trend"] = to_vega_spec(aging)

    if ms.responsiveness_quarterly_data:
        resp = pd.DataFrame(ms.responsiveness_quarterly_data)
        if {"quarter", "percentage"}.issubset(resp.columns):
            resp = resp.assign(_k=resp["quarter"].map(quarter_sort_key)).sort_values("_k").drop(columns="_k")
            resp["label"] = resp["quarter"].map(format_quarter_label)
            spark = (
                alt.Chart(resp)
                .mark_line(point=True, color=THEME["accent_primary"])
                .encode(
                    x=alt.X("label:N", title=None, sort=resp["label"].tolist(), axis=alt.Axis(labelAngle=0)),
                    y=alt.Y("percentage:Q", title=None, scale=alt.Scale(domain=[0, 100])),
                    tooltip=["quarter", alt.Tooltip("percentage:Q", title="Responsiveness %")],
                )
                .properties(height=120)
            )
            charts["responsiveness_sparkline"] = to_vega_spec(spark)

    return {
        "filters": asdict(filters),
        "has_data": has_data,
        "source": ctx.get("source"),
        "warning": ctx.get("warning"),
        "kpis": kpis,
        "charts": charts,
    }
