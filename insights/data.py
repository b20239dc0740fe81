from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from insights.backend import InMemoryBackend
from insights.filters import DashboardFilters, normalize_filters
from insights.models import DashboardData
from insights.quarters import (  # noqa: F401  (re-exported)
    format_quarter_label,
    parse_fiscal_quarter,
    previous_quarter,
    quarter_sort_key,
    sort_quarters,
)


logger = logging.getLogger(__name__)

FALLBACK_WARNING = "Could not load data from Supabase; showing sample data instead."

TABLE_COLUMNS: Dict[str, List[str]] = {
    "features": [
        "product", "quarter", "feature_name", "vote_count", "status", "status_updated_at",
        "client_voters", "estimated_impact", "resource_requirement", "strategic_alignment", "risks",
    ],
    "responsiveness_trends": ["product", "quarter", "percentage", "total_ideas", "ideas_moved_out_of_review", "ideas_list"],
    "commitment_trends": [
        "product", "year", "committed", "delivered", "quarter", "quarterly_delivered", "idea_id", "idea_summary",
    ],
    "continued_engagement": [
        "product", "quarter", "rate", "numerator", "denominator", "idea_id", "idea_name",
        "initial_status_change", "subsequent_changes", "days_between", "included",
    ],
    "client_submissions": [
        "product", "quarter", "clients_representing", "client_names", "idea_id", "idea_summary", "idea_client_name",
    ],
    "cross_client_collaboration": [
        "product", "quarter", "year", "collaborative_ideas_count", "total_ideas_count", "collaboration_rate",
        "idea_id", "idea_name", "original_submitter", "contributors", "submission_date", "collaboration_score",
        "status", "comments",
    ],
    "data_socialization_forums": ["product", "forum_name", "is_active"],
}

NUMERIC_COLUMNS: Dict[str, List[str]] = {
    "features": ["vote_count", "strategic_alignment"],
    "responsiveness_trends": ["percentage", "total_ideas", "ideas_moved_out_of_review"],
    "commitment_trends": ["committed", "delivered", "quarterly_delivered"],
    "continued_engagement": ["rate", "numerator", "denominator", "days_between"],
    "client_submissions": ["clients_representing"],
    "cross_client_collaboration": [
        "collaborative_ideas_count", "total_ideas_count", "collaboration_rate", "collaboration_score",
    ],
}


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


def rows_to_frame(table: str, rows: List[Dict[str, Any]]) -> pd.DataFrame:
    columns = TABLE_COLUMNS.get(table, [])
    df = pd.DataFrame(rows)
    for col in columns:
        if col not in df.columns:
            df[col] = pd.NA
    if columns:
        extra = [c for c in df.columns if c not in columns]
        df = df[columns + extra]
    df = numericize(df, NUMERIC_COLUMNS.get(table, []))
    df = coerce_str_safe(df, [c for c in ("product", "quarter", "year") if c in df.columns])
    return df


def round_half_up(value: object) -> Optional[int]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return None
    v = float(value)
    return int(v + 0.5) if v >= 0 else -int(-v + 0.5)


def _load_from(backend: Any, product: str) -> Dict[str, Any]:
    dashboards: Dict[str, DashboardData] = {}
    for row in backend.select("dashboards", {"product": product}):
        quarter = row.get("quarter")
        if quarter:
            dashboards[str(quarter)] = DashboardData.from_dict(row.get("data"))

    frames = {table: rows_to_frame(table, backend.select(table, {"product": product})) for table in TABLE_COLUMNS}

    quarters = set(dashboards)
    for table, df in frames.items():
        if "quarter" in df.columns and table != "commitment_trends":
            quarters.update(q for q in df["quarter"].dropna().astype(str) if parse_fiscal_quarter(q)[0] is not None)

    return {
        "product": product,
        "dashboards": dashboards,
        "quarters": sort_quarters(quarters),
        **frames,
    }


def load_dashboard_data(backend: Any, product: str) -> Dict[str, Any]:
    """Fetch everything stored for one product. Read failures fall back to the sample data."""
    source = "sample" if isinstance(backend, InMemoryBackend) else "supabase"
    try:
        ctx = _load_from(backend, product)
        ctx.update({"source": source, "warning": None})
        return ctx
    except Exception:
        if isinstance(backend, InMemoryBackend):
            raise
        logger.exception("Loading %s from Supabase failed; using sample data", product)
    ctx = _load_from(InMemoryBackend.seeded(), product)
    ctx.update({"source": "sample", "warning": FALLBACK_WARNING})
    return ctx


def _by_quarter(df: pd.DataFrame, quarter: Optional[str]) -> pd.DataFrame:
    if df.empty or quarter is None or "quarter" not in df.columns:
        return df.iloc[0:0] if quarter is None else df
    return df[df["quarter"] == quarter]


def chronological(df: pd.DataFrame, col: str = "quarter") -> pd.DataFrame:
    if df.empty or col not in df.columns:
        return df
    return df.assign(_k=df[col].map(quarter_sort_key)).sort_values("_k", kind="stable").drop(columns="_k")


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, Any]) -> Dict[str, Any]:
    available = data_ctx.get("quarters") or []
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters, available_quarters=available)

    dashboards: Dict[str, DashboardData] = data_ctx.get("dashboards") or {}
    features: pd.DataFrame = data_ctx.get("features", pd.DataFrame())
    engagement: pd.DataFrame = data_ctx.get("continued_engagement", pd.DataFrame())
    submissions: pd.DataFrame = data_ctx.get("client_submissions", pd.DataFrame())
    collaboration: pd.DataFrame = data_ctx.get("cross_client_collaboration", pd.DataFrame())

    return {
        "filters": filt,
        "source": data_ctx.get("source"),
        "warning": data_ctx.get("warning"),
        "quarters": available,
        "dashboard": dashboards.get(filt.quarter),
        "previous_dashboard": dashboards.get(filt.previous_quarter) if filt.previous_quarter else None,
        "dashboards": dashboards,
        "features_current": _by_quarter(features, filt.quarter),
        "features_previous": _by_quarter(features, filt.previous_quarter),
        "responsiveness_trends": chronological(data_ctx.get("responsiveness_trends", pd.DataFrame())),
        "commitment_trends": data_ctx.get("commitment_trends", pd.DataFrame()),
        "engagement_all": chronological(engagement),
        "engagement_current": _by_quarter(engagement, filt.quarter),
        "client_submissions": chronological(submissions),
        "collaboration": chronological(collaboration),
        "forums": data_ctx.get("data_socialization_forums", pd.DataFrame()),
    }
