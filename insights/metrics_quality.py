"""Dashboard data quality checks.

Validation checks look at the stored dashboard blob for the selected
product/quarter (completeness, types, ranges, expected fiscal years).
Calculation checks recompute the headline numbers and compare them with
what is stored, within a tolerance.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from insights.data import round_half_up
from insights.filters import DashboardFilters
from insights.metrics_features import fiscal_year_label
from insights.models import DashboardData

EXPECTED_FISCAL_YEARS = ["FY22", "FY23", "FY24", "FY25"]


def _result(field: str, expected: Any, actual: Any, status: str, message: str) -> Dict[str, Any]:
    return {"field": field, "expected": expected, "actual": actual, "status": status, "message": message}


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool) and not math.isnan(float(value))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return isinstance(value, float) and math.isnan(value)


def validation_checks(data: DashboardData) -> List[Dict[str, Any]]:
    ms = data.metric_summary
    results: List[Dict[str, Any]] = []

    completeness = [
        ("responsiveness", ms.responsiveness),
        ("roadmap_alignment.committed", ms.roadmap_alignment.committed),
        ("roadmap_alignment.total", ms.roadmap_alignment.total),
        ("stacked_bar_data", data.stacked_bar_data),
        ("line_chart_data", data.line_chart_data),
        ("top_features", data.top_features),
    ]
    for field, value in completeness:
        empty = _is_empty(value)
        results.append(
            _result(
                field,
                "Non-empty value",
                "Empty/Missing" if empty else "Present",
                "fail" if empty else "pass",
                f"{field} is missing or empty" if empty else f"{field} is properly populated",
            )
        )

    for field, value in [
        ("responsiveness", ms.responsiveness),
        ("committed ideas", ms.roadmap_alignment.committed),
        ("total ideas target", ms.roadmap_alignment.total),
    ]:
        ok = _is_number(value)
        actual = type(value).__name__
        results.append(
            _result(
                field,
                "number",
                actual,
                "pass" if ok else "fail",
                f"{field} has correct type (number)" if ok else f"{field} should be number, got {actual}",
            )
        )

    in_range = _is_number(ms.responsiveness) and 0 <= ms.responsiveness <= 100
    results.append(
        _result(
            "responsiveness",
            "0-100",
            ms.responsiveness,
            "pass" if in_range else "warning",
            "responsiveness is within valid range" if in_range else "Responsiveness should be between 0-100%",
        )
    )

    years = {fiscal_year_label(r.year) for r in data.stacked_bar_data}
    has_all = all(y in years for y in EXPECTED_FISCAL_YEARS)
    results.append(
        _result(
            "stacked_bar_data.years",
            ", ".join(EXPECTED_FISCAL_YEARS),
            ", ".join(sorted(years)),
            "pass" if has_all else "warning",
            "All expected fiscal years are present" if has_all else "Some expected fiscal years are missing",
        )
    )
    return results


def _current_responsiveness_row(data: DashboardData, quarter: str) -> Optional[Dict[str, Any]]:
    return next((r for r in data.metric_summary.responsiveness_quarterly_data if r.get("quarter") == quarter), None)


def calculation_checks(data: DashboardData, quarter: str) -> List[Dict[str, Any]]:
    ms = data.metric_summary

    def responsiveness() -> Dict[str, Any]:
        row = _current_responsiveness_row(data, quarter)
        if not row or not row.get("total_ideas"):
            return {"result": ms.responsiveness, "status": "pass", "detail": "No quarterly breakdown to compare"}
        expected = float(row.get("ideas_moved_out_of_review") or 0) / float(row["total_ideas"]) * 100
        ok = abs(expected - float(ms.responsiveness)) <= 1
        return {"result": ms.responsiveness, "status": "pass" if ok else "warning", "detail": f"Recomputed {expected:.1f}"}

    def roadmap() -> Dict[str, Any]:
        committed, total = ms.roadmap_alignment.committed, ms.roadmap_alignment.total
        return {"result": round_half_up(committed / total * 100) if total else 0, "status": "pass"}

    def engagement() -> Dict[str, Any]:
        ce = ms.continued_engagement
        if not ce.denominator:
            return {"result": ce.rate, "status": "pass", "detail": "No denominator to compare"}
        expected = ce.numerator / ce.denominator * 100
        ok = abs(expected - float(ce.rate)) <= 1
        return {"result": ce.rate, "status": "pass" if ok else "warning", "detail": f"Recomputed {expected:.1f}"}

    def stacked_total() -> Dict[str, Any]:
        total = sum(r.candidate_ideas + r.in_development + r.archived_ideas + r.flagged_for_future for r in data.stacked_bar_data)
        return {"result": total, "status": "pass"}

    def features_sorted() -> Dict[str, Any]:
        votes = [f.vote_count for f in data.top_features]
        ok = all(a >= b for a, b in zip(votes, votes[1:]))
        return {"result": 1 if ok else 0, "status": "pass" if ok else "fail"}

    checks: List[tuple] = [
        ("Responsiveness Percentage", "Validates responsiveness calculation", "(Ideas moved out of review / Total ideas) × 100", responsiveness),
        ("Roadmap Alignment Progress", "Validates commitment progress calculation", "(Committed ideas / Total target) × 100", roadmap),
        ("Continued Engagement Rate", "Validates continued engagement calculation", "(Ideas with follow-up / Total reviewed) × 100", engagement),
        ("Total Stacked Bar Ideas", "Validates sum of all idea statuses per year", "Sum of all idea statuses across all years", stacked_total),
        ("Top Features Vote Count", "Validates top features are sorted by vote count", "Features should be sorted by vote count (descending)", features_sorted),
    ]

    out = []
    for name, description, formula, fn in checks:
        try:
            outcome = fn()
        except (TypeError, ValueError, ZeroDivisionError) as exc:
            outcome = {"result": "Error", "status": "fail", "detail": str(exc)}
        message = (
            f"Calculation completed successfully: {outcome['result']}"
            if outcome["status"] == "pass"
            else f"Calculation check {outcome['status']}: {outcome.get('detail') or outcome['result']}"
        )
        out.append({"name": name, "description": description, "formula": formula, "message": message, **outcome})
    return out


def compute_data_quality(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    dashboard: Optional[DashboardData] = ctx.get("dashboard")
    if dashboard is None:
        return {
            "filters": asdict(filters),
            "has_data": False,
            "validation": [],
            "calculations": [],
            "summary": {"pass": 0, "warning": 0, "fail": 0},
        }

    validation = validation_checks(dashboard)
    calculations = calculation_checks(dashboard, filters.quarter)
    summary = {"pass": 0, "warning": 0, "fail": 0}
    for r in validation + calculations:
        summary[r["status"]] = summary.get(r["status"], 0) + 1
    return {
        "filters": asdict(filters),
        "has_data": True,
        "validation": validation,
        "calculations": calculations,
        "summary": summary,
    }


def quality_report(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    payload = compute_data_quality(filters, ctx)
    dashboard: Optional[DashboardData] = ctx.get("dashboard")
    return {
        "product": filters.product,
        "quarter": filters.quarter,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "validation": payload["validation"],
        "calculations": payload["calculations"],
        "raw_data": dashboard.to_dict() if dashboard else None,
    }
