from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from insights.charts import to_vega_spec
from insights.config import THEME
from insights.data import format_quarter_label, quarter_sort_key
from insights.filters import DashboardFilters
from insights.models import DashboardData


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    s = str(value).strip()
    return s or None


def submissions_by_quarter(table: pd.DataFrame, dashboard: Optional[DashboardData]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    if table is not None and not table.empty:
        for quarter, part in table.groupby("quarter", sort=False):
            clients: List[str] = []
            for names in part["client_names"]:
                if isinstance(names, (list, tuple)):
                    clients.extend(n for n in names if n not in clients)
            count = part["clients_representing"].max()
            ideas = [
                {"id": _text(r.get("idea_id")), "summary": _text(r.get("idea_summary")), "client_name": _text(r.get("idea_client_name"))}
                for r in part.to_dict(orient="records")
                if _text(r.get("idea_id")) or _text(r.get("idea_summary"))
            ]
            out.append(
                {
                    "quarter": str(quarter),
                    "label": format_quarter_label(quarter),
                    "clients_representing": float(count) if pd.notna(count) else float(len(clients)),
                    "clients": clients,
                    "ideas": ideas,
                }
            )
    elif dashboard is not None:
        for point in dashboard.line_chart_data:
            out.append(
                {
                    "quarter": point.quarter,
                    "label": format_quarter_label(point.quarter),
                    "clients_representing": float(point.clients_representing or 0),
                    "clients": list(point.clients),
                    "ideas": [],
                }
            )
    out.sort(key=lambda r: quarter_sort_key(r["quarter"]))
    return out


def compute_client_submissions(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    rows = submissions_by_quarter(ctx.get("client_submissions", pd.DataFrame()), ctx.get("dashboard"))
    current = next((r for r in rows if r["quarter"] == filters.quarter), None)
    detail = next((r for r in rows if r["quarter"] == filters.detail_quarter), None)

    charts: Dict[str, Any] = {}
    if rows:
        df = pd.DataFrame([{k: r[k] for k in ("quarter", "label", "clients_representing")} for r in rows])
        hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
        chart = (
            alt.Chart(df)
            .mark_line(point={"filled": True, "size": 70}, color=THEME["accent_primary"])
            .encode(
                x=alt.X("label:N", title="Quarter", sort=df["label"].tolist(), axis=alt.Axis(labelAngle=0, grid=False)),
                y=alt.Y("clients_representing:Q", title="Clients representing", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.5)),
                tooltip=[alt.Tooltip("label:N", title="Quarter"), alt.Tooltip("clients_representing:Q", title="Clients", format=",")],
            )
            .add_params(hover)
            .properties(height=260)
        )
        charts["clients_representing"] = to_vega_spec(chart)

    return {
        "filters": asdict(filters),
        "current": current,
        "quarters": rows,
        "selected_quarter": detail,
        "charts": charts,
    }
