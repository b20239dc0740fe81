from __future__ import annotations

import re
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from insights.charts import status_scale, to_vega_spec
from insights.config import THEME
from insights.filters import DashboardFilters
from insights.models import FEATURE_STATUSES, DashboardData, StackedBarRow

STACK_CATEGORIES = {
    "candidate_ideas": "Candidate ideas",
    "in_development": "In development",
    "archived_ideas": "Archived ideas",
    "flagged_for_future": "Flagged for future",
}

_YEAR_RE = re.compile(r"(\d{2,4})")


def _num(value: Any) -> float:
    try:
        return 0.0 if value is None or pd.isna(value) else float(value)
    except (TypeError, ValueError):
        return 0.0


def _voters(value: Any) -> List[str]:
    return [str(v) for v in value] if isinstance(value, (list, tuple)) else []


def feature_records(table: pd.DataFrame, dashboard: Optional[DashboardData]) -> List[Dict[str, Any]]:
    """Features ordered by votes (descending, stable). Table rows win over the dashboard blob."""
    if table is not None and not table.empty:
        raw = [
            {
                "feature_name": str(r["feature_name"]),
                "vote_count": int(_num(r.get("vote_count"))),
                "status": r.get("status") if pd.notna(r.get("status")) else None,
                "status_updated_at": r.get("status_updated_at") if pd.notna(r.get("status_updated_at")) else None,
                "client_voters": _voters(r.get("client_voters")),
            }
            for r in table.to_dict(orient="records")
            if pd.notna(r.get("feature_name"))
        ]
    elif dashboard is not None:
        raw = [asdict(f) for f in dashboard.top_features]
    else:
        raw = []
    return sorted(raw, key=lambda f: f["vote_count"], reverse=True)


def status_distribution(features: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for f in features:
        status = f.get("status") or "Unknown"
        counts[status] = counts.get(status, 0) + 1
    ordered = [s for s in FEATURE_STATUSES if s in counts] + sorted(s for s in counts if s not in FEATURE_STATUSES)
    total = sum(counts.values())
    return [
        {"status": s, "count": counts[s], "share": round(counts[s] / total * 100, 1) if total else 0.0}
        for s in ordered
    ]


def quarterly_comparison(current: List[Dict[str, Any]], previous: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    prev_rank = {f["feature_name"]: i + 1 for i, f in enumerate(previous)}
    prev_votes = {f["feature_name"]: f["vote_count"] for f in previous}
    out = []
    for i, f in enumerate(current):
        name = f["feature_name"]
        rank = i + 1
        before = prev_votes.get(name)
        if before is None:
            direction, pct, rank_change = "new", None, None
        else:
            delta = f["vote_count"] - before
            direction = "up" if delta > 0 else "down" if delta < 0 else "stable"
            pct = round(delta / before * 100, 1) if before else None
            rank_change = prev_rank[name] - rank
        out.append(
            {
                "feature_name": name,
                "status": f.get("status"),
                "current_votes": f["vote_count"],
                "previous_votes": before,
                "current_rank": rank,
                "previous_rank": prev_rank.get(name),
                "rank_change": rank_change,
                "percent_change": pct,
                "trend_direction": direction,
            }
        )
    return out


def fiscal_year_label(year: object) -> str:
    """'2025', '25', 'FY25', 'FYFY25' -> 'FY25'."""
    s = str(year).strip()
    m = _YEAR_RE.search(s)
    if not m:
        return s
    digits = m.group(1)
    return f"FY{digits[-2:]}"


def _year_sort_key(label: str) -> int:
    m = _YEAR_RE.search(label)
    return int(m.group(1)[-2:]) if m else -1


def idea_distribution(rows: List[StackedBarRow]) -> List[Dict[str, Any]]:
    out = []
    for row in rows:
        values = {k: _num(getattr(row, k)) for k in STACK_CATEGORIES}
        total = sum(values.values())
        out.append(
            {
                "year": fiscal_year_label(row.year),
                **values,
                "total": total,
                "shares": {k: (round(v / total * 100, 1) if total else 0.0) for k, v in values.items()},
            }
        )
    out.sort(key=lambda r: _year_sort_key(r["year"]), reverse=True)
    return out


def forum_list(table: pd.DataFrame, dashboard: Optional[DashboardData]) -> List[Dict[str, Any]]:
    details = {f.name: f for f in (dashboard.data_socialization_forums if dashboard else [])}
    if table is not None and not table.empty:
        active = table[table["is_active"].fillna(True).astype(bool)] if "is_active" in table.columns else table
        names = [str(n) for n in active["forum_name"].dropna()]
    else:
        names = list(details)
    return [
        {
            "name": n,
            "audience": details[n].audience if n in details else None,
            "purpose": details[n].purpose if n in details else None,
        }
        for n in names
    ]


def compute_features(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    dashboard: Optional[DashboardData] = ctx.get("dashboard")
    previous_dashboard: Optional[DashboardData] = ctx.get("previous_dashboard")
    current = feature_records(ctx.get("features_current", pd.DataFrame()), dashboard)
    previous = feature_records(ctx.get("features_previous", pd.DataFrame()), previous_dashboard)

    top = current[: filters.top_n]
    distribution = status_distribution(current)
    comparison = quarterly_comparison(top, previous) if previous else []
    stacked = idea_distribution(dashboard.stacked_bar_data if dashboard else [])

    charts: Dict[str, Any] = {}
    if top:
        top_df = pd.DataFrame([{k: f[k] for k in ("feature_name", "vote_count", "status")} for f in top])
        hover = alt.selection_point(fields=["feature_name"], on="mouseover", empty="all")
        bars = (
            alt.Chart(top_df)
            .mark_bar(cornerRadiusTopRight=3, cornerRadiusBottomRight=3)
            .encode(
                y=alt.Y("feature_name:N", title=None, sort="-x"),
                x=alt.X("vote_count:Q", title="Votes", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                color=alt.Color("status:N", scale=status_scale(), legend=alt.Legend(title="Status", orient="top")),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.5)),
                tooltip=["feature_name", alt.Tooltip("vote_count:Q", title="Votes", format=","), "status"],
            )
            .add_params(hover)
            .properties(height=max(200, 28 * len(top_df)))
        )
        charts["top_features"] = to_vega_spec(bars)

    if distribution:
        dist_df = pd.DataFrame(distribution)
        pie = (
            alt.Chart(dist_df)
            .mark_arc(innerRadius=50)
            .encode(
                theta=alt.Theta("count:Q"),
                color=alt.Color("status:N", scale=status_scale(dist_df["status"].tolist()), legend=alt.Legend(title="Status")),
                tooltip=["status", "count", alt.Tooltip("share:Q", title="Share %")],
            )
            .properties(height=240)
        )
        charts["status_distribution"] = to_vega_spec(pie)

    if stacked:
        long = pd.DataFrame(
            [
                {"year": r["year"], "category": label, "ideas": r[key], "share": r["shares"][key]}
                for r in stacked
                for key, label in STACK_CATEGORIES.items()
            ]
        )
        stack = (
            alt.Chart(long)
            .mark_bar()
            .encode(
                y=alt.Y("year:N", title=None, sort=[r["year"] for r in stacked]),
                x=alt.X("ideas:Q", title="Ideas", stack="zero"),
                color=alt.Color(
                    "category:N",
                    scale=alt.Scale(
                        domain=list(STACK_CATEGORIES.values()),
                        range=[THEME["accent_primary"], THEME["success"], THEME["text_secondary"], THEME["warning"]],
                    ),
                    legend=alt.Legend(title=None, orient="top"),
                ),
                tooltip=["year", "category", alt.Tooltip("ideas:Q", format=","), alt.Tooltip("share:Q", title="Share %")],
            )
            .properties(height=40 * len(stacked) + 60)
        )
        charts["idea_distribution"] = to_vega_spec(stack)

    return {
        "filters": asdict(filters),
        "top_features": top,
        "feature_count": len(current),
        "status_distribution": distribution,
        "quarterly_comparison": comparison,
        "idea_distribution": stacked,
        "forums": forum_list(ctx.get("forums", pd.DataFrame()), dashboard),
        "charts": charts,
    }
