from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from insights.charts import percent_axis, to_vega_spec
from insights.config import STATUS_COLORS
from insights.data import round_half_up
from insights.filters import DashboardFilters


def commitment_status(delivery_rate: Optional[float]) -> str:
    """Latest-year delivery rate -> On Track (>= 90), At Risk (>= 75), Off Track."""
    if delivery_rate is None:
        return "On Track"
    if delivery_rate >= 90:
        return "On Track"
    if delivery_rate >= 75:
        return "At Risk"
    return "Off Track"


def _ideas(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    rows = df.dropna(subset=["idea_id"]) if "idea_id" in df.columns else df.iloc[0:0]
    return [
        {"id": str(r["idea_id"]), "summary": (str(r["idea_summary"]) if pd.notna(r.get("idea_summary")) else None)}
        for r in rows.to_dict(orient="records")
    ]


def _year_key(year: object) -> int:
    digits = "".join(ch for ch in str(year) if ch.isdigit())
    return int(digits) if digits else 0


def yearly_commitments(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty or "year" not in df.columns:
        return []
    yearly = df[df["quarter"].isna()] if "quarter" in df.columns else df
    out = []
    for year in sorted(yearly["year"].dropna().unique(), key=_year_key):
        part = yearly[yearly["year"] == year]
        committed = part["committed"].max()
        delivered = part["delivered"].max()
        committed = None if pd.isna(committed) else float(committed)
        delivered = None if pd.isna(delivered) else float(delivered)
        rate = round_half_up(delivered / committed * 100) if committed and delivered is not None else None
        out.append(
            {
                "year": str(year),
                "committed": committed,
                "delivered": delivered,
                "delivery_rate": rate,
                "ideas": _ideas(part),
            }
        )
    return out


def quarterly_deliveries(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty or "quarter" not in df.columns:
        return []
    quarterly = df[df["quarter"].notna()]
    if quarterly.empty:
        return []
    out = []
    for (year, quarter), part in quarterly.groupby(["year", "quarter"], sort=False):
        delivered = part["quarterly_delivered"].sum(min_count=1)
        out.append(
            {
                "year": str(year),
                "quarter": str(quarter),
                "delivered": None if pd.isna(delivered) else float(delivered),
                "ideas": _ideas(part),
            }
        )
    out.sort(key=lambda r: (_year_key(r["year"]), r["quarter"]))
    return out


def compute_commitment(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("commitment_trends", pd.DataFrame())
    years = yearly_commitments(df)
    quarters = quarterly_deliveries(df)

    latest_rate = years[-1]["delivery_rate"] if years else None
    totals = {
        "committed": float(sum(y["committed"] or 0 for y in years)),
        "delivered": float(sum(y["delivered"] or 0 for y in years)),
    }
    totals["delivery_rate"] = round_half_up(totals["delivered"] / totals["committed"] * 100) if totals["committed"] else None

    charts: Dict[str, Any] = {}
    if years:
        year_df = pd.DataFrame(years).drop(columns=["ideas"])
        long = year_df.melt(id_vars=["year"], value_vars=["committed", "delivered"], var_name="series", value_name="ideas")
        hover = alt.selection_point(fields=["series"], on="mouseover", empty="all")
        bars = (
            alt.Chart(long)
            .mark_bar(cornerRadiusTopLeft=3, cornerRadiusTopRight=3)
            .encode(
                x=alt.X("year:N", title="Year", axis=alt.Axis(labelAngle=0, grid=False)),
                xOffset="series:N",
                y=alt.Y("ideas:Q", title="Ideas", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                color=alt.Color(
                    "series:N",
                    scale=alt.Scale(domain=["committed", "delivered"], range=[STATUS_COLORS["Committed"], STATUS_COLORS["Delivered"]]),
                    legend=alt.Legend(title=None, orient="top"),
                ),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.3)),
                tooltip=["year", "series", alt.Tooltip("ideas:Q", format=",")],
            )
            .add_params(hover)
            .properties(height=260)
        )
        rate_line = (
            alt.Chart(year_df.dropna(subset=["delivery_rate"]))
            .mark_line(point={"filled": True, "size": 60})
            .encode(
                x=alt.X("year:N", title="Year", axis=alt.Axis(labelAngle=0, grid=False)),
                y=alt.Y("delivery_rate:Q", scale=alt.Scale(domain=[0, 100]), axis=percent_axis("Delivery rate")),
                tooltip=["year", alt.Tooltip("delivery_rate:Q", title="Delivery rate %")],
            )
            .properties(height=200)
        )
        charts["committed_vs_delivered"] = to_vega_spec(bars)
        charts["delivery_rate"] = to_vega_spec(rate_line)

    if quarters:
        q_df = pd.DataFrame(quarters).drop(columns=["ideas"])
        q_df["label"] = q_df["quarter"] + " " + q_df["year"]
        q_bars = (
            alt.Chart(q_df)
            .mark_bar(color=STATUS_COLORS["Delivered"])
            .encode(
                x=alt.X("label:N", title=None, sort=q_df["label"].tolist(), axis=alt.Axis(labelAngle=0)),
                y=alt.Y("delivered:Q", title="Delivered"),
                tooltip=["label", alt.Tooltip("delivered:Q", format=",")],
            )
            .properties(height=200)
        )
        charts["quarterly_deliveries"] = to_vega_spec(q_bars)

    return {
        "filters": asdict(filters),
        "status": commitment_status(latest_rate),
        "latest_delivery_rate": latest_rate,
        "totals": totals,
        "years": years,
        "quarterly_deliveries": quarters,
        "charts": charts,
    }
