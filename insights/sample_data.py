"""Deterministic sample rows for offline mode, one set per product."""

from __future__ import annotations

from typing import Any, Dict, List

from insights.models import (
    AgingIdeas,
    ContinuedEngagement,
    DashboardData,
    Feature,
    Forum,
    IdeaVolume,
    LineChartPoint,
    MetricSummary,
    PRODUCTS,
    RoadmapAlignment,
    StackedBarRow,
)


SAMPLE_QUARTERS = ["FY26 Q2", "FY26 Q1", "FY25 Q4", "FY25 Q3"]
SAMPLE_USER_ID = "00000000-0000-0000-0000-000000000001"

_FEATURES = [
    ("AI Integration", 35, "Committed", "2025-01-15", ["Client A", "Client B", "Client C"], "High", "High", 9, ["Technical complexity", "Resource allocation conflicts"]),
    ("Mobile App", 25, "Under Review", "2025-02-01", ["Client D", "Client E"], "Medium", "Medium", 8, ["Client expectation management"]),
    ("Reporting Tools", 20, "Delivered", "2025-01-30", ["Client F", "Client G"], "High", "Medium", 9, ["Resource allocation conflicts"]),
    ("API Enhancements", 18, "Under Review", "2025-02-15", ["Client H", "Client I"], "Medium", "High", 7, ["Technical complexity"]),
    ("Custom Workflows", 16, "Under Review", "2025-02-16", ["Client J", "Client K"], "High", "High", 8, ["Technical complexity"]),
    ("Document Management", 15, "Committed", "2025-02-17", ["Client L", "Client M"], "Medium", "Medium", 7, ["Client expectation management"]),
    ("Search Improvements", 14, "Under Review", "2025-02-18", ["Client N", "Client O"], "Medium", "Low", 6, ["Technical complexity"]),
    ("Bulk Actions", 13, "Delivered", "2025-02-19", ["Client P", "Client Q"], "Low", "Low", 6, ["Resource allocation conflicts"]),
    ("Dashboard Customization", 12, "Under Review", "2025-02-20", ["Client R", "Client S"], "Medium", "Medium", 7, ["Technical complexity"]),
    ("Email Integration", 11, "Committed", "2025-02-21", ["Client T", "Client U"], "Low", "Low", 5, ["Technical complexity"]),
]

_RESPONSIVENESS = {
    "FY26 Q2": (95, 41, ["Email Integration", "Advanced Analytics", "Performance Optimization"]),
    "FY26 Q1": (85, 38, ["Search Improvements", "Bulk Actions", "Dashboard Customization"]),
    "FY25 Q4": (78, 52, ["API Enhancements", "Custom Workflows", "Document Management"]),
    "FY25 Q3": (82, 45, ["AI Integration", "Mobile App", "Reporting Tools"]),
}

_ENGAGEMENT = {
    "FY26 Q2": (80, 24, 30),
    "FY26 Q1": (75, 21, 28),
    "FY25 Q4": (68, 17, 25),
    "FY25 Q3": (72, 18, 25),
}

_COLLABORATION = {
    "FY26 Q2": ("2025", 15, 40, 38, "Advanced Analytics Platform", "2025-07-01", 93, "Active"),
    "FY26 Q1": ("2025", 12, 35, 34, "Advanced Search Capabilities", "2025-04-01", 90, "Delivered"),
    "FY25 Q4": ("2025", 8, 30, 27, "Collaborative Review Dashboard", "2025-01-01", 88, "Delivered"),
    "FY25 Q3": ("2025", 5, 25, 20, "AI-Powered Document Analysis", "2024-10-01", 85, "Active"),
}

_CLIENTS_REPRESENTING = {"FY26 Q2": 15, "FY26 Q1": 12, "FY25 Q4": 10, "FY25 Q3": 8}

_SUBMISSION_IDEAS = {
    "FY26 Q2": ["Collaboration Tools", "Version Control System", "Automated Backup Solutions"],
    "FY26 Q1": ["Integration with Third-party Tools", "Mobile Responsive Design", "Advanced Search Filters"],
    "FY25 Q4": ["Dashboard Customization", "Email Integration", "Advanced Analytics Dashboard"],
    "FY25 Q3": ["AI-Powered Document Analysis", "Mobile App Enhancement", "Reporting Dashboard Improvements"],
}

_COMMITMENT_YEARS = [
    ("2020", 45, 42, "AI Integration Enhancement"),
    ("2021", 52, 48, "Mobile App Development"),
    ("2022", 48, 45, "Reporting Tools Upgrade"),
    ("2023", 55, 52, "API Enhancement Project"),
    ("2024", 60, 57, "Custom Workflow Builder"),
]

_QUARTERLY_DELIVERIES = [
    ("Q1", 14, "Real-time Notifications"),
    ("Q2", 16, "Data Export Enhancements"),
    ("Q3", 15, "User Permission Management"),
    ("Q4", 17, "Automated Workflow Templates"),
]

_FORUMS = [
    ("CSC", "Client Steering Committee", "Quarterly roadmap review"),
    ("Sprint Reviews", "Product and engineering", "Demo delivered ideas"),
    ("Customer Advisory Board (CAB)", "Executive sponsors", "Strategic direction"),
    ("CWG", "Client working group", "Idea triage and prioritisation"),
]

_ACTION_ITEMS = [
    ("Review client feedback for AI Integration feature", False),
    ("Schedule stakeholder meeting for Mobile App requirements", True),
    ("Update roadmap with Q4 deliverables", False),
]


def _clients(n: int) -> List[str]:
    return [f"Client {chr(ord('A') + i)}" for i in range(n)]


def sample_dashboard(product: str, quarter: str) -> DashboardData:
    q_idx = SAMPLE_QUARTERS.index(quarter) if quarter in SAMPLE_QUARTERS else 0
    p_idx = PRODUCTS.index(product) if product in PRODUCTS else 0
    pct, total_ideas, _ = _RESPONSIVENESS.get(quarter, _RESPONSIVENESS["FY26 Q2"])
    rate, num, den = _ENGAGEMENT.get(quarter, _ENGAGEMENT["FY26 Q2"])
    _, _, _, collab_rate, *_ = _COLLABORATION.get(quarter, _COLLABORATION["FY26 Q2"])

    summary = MetricSummary(
        responsiveness=pct,
        roadmap_alignment=RoadmapAlignment(committed=12 + q_idx * 2 + p_idx, total=45 + q_idx * 5),
        cross_client_collaboration=collab_rate,
        continued_engagement=ContinuedEngagement(rate=rate, numerator=num, denominator=den),
        idea_volume=IdeaVolume(quarterly=25 + q_idx * 5, total=450 + q_idx * 50 + p_idx * 10),
        aging_ideas=AgingIdeas(
            count=18 + p_idx,
            trend=[
                {"quarter": "FY25 Q1", "count": 24 + p_idx},
                {"quarter": "FY25 Q2", "count": 22 + p_idx},
                {"quarter": "FY25 Q3", "count": 20 + p_idx},
                {"quarter": "FY25 Q4", "count": 18 + p_idx},
            ],
        ),
        responsiveness_quarterly_data=[
            {
                "quarter": q,
                "percentage": p,
                "total_ideas": t,
                "ideas_moved_out_of_review": round(t * p / 100),
                "ideas_list": list(ideas),
            }
            for q, (p, t, ideas) in _RESPONSIVENESS.items()
        ],
    )
    stacked = [
        StackedBarRow(year=f"FY{yy}", candidate_ideas=40 + i * 6, in_development=12 + i * 3, archived_ideas=30 - i * 4, flagged_for_future=8 + i)
        for i, yy in enumerate(["22", "23", "24", "25"])
    ]
    line = [
        LineChartPoint(quarter=q, clients_representing=_CLIENTS_REPRESENTING[q], clients=_clients(_CLIENTS_REPRESENTING[q]))
        for q in reversed(SAMPLE_QUARTERS)
    ]
    features = [
        Feature(feature_name=name, vote_count=votes, status=status, status_updated_at=updated, client_voters=list(voters))
        for name, votes, status, updated, voters, *_ in _FEATURES
    ]
    forums = [Forum(name=n, audience=a, purpose=p) for n, a, p in _FORUMS]
    return DashboardData(
        metric_summary=summary,
        stacked_bar_data=stacked,
        line_chart_data=line,
        top_features=features,
        data_socialization_forums=forums,
    )


def _feature_rows(product: str, quarter: str, shift: int) -> List[Dict[str, Any]]:
    rows = []
    for idx, (name, votes, status, updated, voters, impact, resource, alignment, risks) in enumerate(_FEATURES):
        # Older quarters carry fewer votes, top-ranked features lose the most.
        adjusted = max(1, votes - shift * (len(_FEATURES) - idx) // 2)
        rows.append(
            {
                "product": product,
                "quarter": quarter,
                "feature_name": name,
                "vote_count": adjusted,
                "status": status,
                "status_updated_at": updated,
                "client_voters": list(voters),
                "estimated_impact": impact,
                "resource_requirement": resource,
                "strategic_alignment": alignment,
                "risks": list(risks),
            }
        )
    return rows


def sample_tables() -> Dict[str, List[Dict[str, Any]]]:
    tables: Dict[str, List[Dict[str, Any]]] = {
        "dashboards": [],
        "features": [],
        "responsiveness_trends": [],
        "commitment_trends": [],
        "continued_engagement": [],
        "client_submissions": [],
        "cross_client_collaboration": [],
        "data_socialization_forums": [],
        "action_items": [],
        "dashboard_configs": [],
    }
    for product in PRODUCTS:
        for q_idx, quarter in enumerate(SAMPLE_QUARTERS):
            tables["dashboards"].append(
                {"product": product, "quarter": quarter, "data": sample_dashboard(product, quarter).to_dict()}
            )
            tables["features"].extend(_feature_rows(product, quarter, q_idx))

            pct, total, ideas = _RESPONSIVENESS[quarter]
            tables["responsiveness_trends"].append(
                {
                    "product": product,
                    "quarter": quarter,
                    "percentage": pct,
                    "total_ideas": total,
                    "ideas_moved_out_of_review": round(total * pct / 100),
                    "ideas_list": list(ideas),
                }
            )

            rate, num, den = _ENGAGEMENT[quarter]
            for i, days in enumerate([17, 45, 120]):
                tables["continued_engagement"].append(
                    {
                        "product": product,
                        "quarter": quarter,
                        "rate": rate,
                        "numerator": num,
                        "denominator": den,
                        "idea_id": f"ENG-{quarter.replace(' ', '')}-{i + 1:03d}",
                        "idea_name": _FEATURES[i][0],
                        "initial_status_change": "2025-01-15",
                        "subsequent_changes": [{"date": "2025-02-01", "status": "Under Review"}],
                        "days_between": days,
                        "included": None if i == 2 else True,
                    }
                )

            clients = _clients(_CLIENTS_REPRESENTING[quarter])
            for i, summary in enumerate(_SUBMISSION_IDEAS[quarter]):
                tables["client_submissions"].append(
                    {
                        "product": product,
                        "quarter": quarter,
                        "clients_representing": _CLIENTS_REPRESENTING[quarter],
                        "client_names": clients,
                        "idea_id": f"{quarter.replace(' ', '')}-{i + 1:03d}",
                        "idea_summary": summary,
                        "idea_client_name": clients[i],
                    }
                )

            year, collab, total_ideas, collab_rate, idea_name, submitted, score, status = _COLLABORATION[quarter]
            tables["cross_client_collaboration"].append(
                {
                    "product": product,
                    "quarter": quarter,
                    "year": year,
                    "collaborative_ideas_count": collab,
                    "total_ideas_count": total_ideas,
                    "collaboration_rate": collab_rate,
                    "idea_id": f"COLLAB-{quarter.replace(' ', '')}-001",
                    "idea_name": idea_name,
                    "original_submitter": "Client A",
                    "contributors": ["Client A", "Client B", "Client C"],
                    "submission_date": submitted,
                    "collaboration_score": score,
                    "status": status,
                    "comments": None,
                }
            )

        for year, committed, delivered, summary in _COMMITMENT_YEARS:
            tables["commitment_trends"].append(
                {
                    "product": product,
                    "year": year,
                    "committed": committed,
                    "delivered": delivered,
                    "quarter": None,
                    "quarterly_delivered": None,
                    "idea_id": f"COMM-{year}-001",
                    "idea_summary": summary,
                }
            )
        for quarter_label, delivered, summary in _QUARTERLY_DELIVERIES:
            tables["commitment_trends"].append(
                {
                    "product": product,
                    "year": "2024",
                    "committed": None,
                    "delivered": None,
                    "quarter": quarter_label,
                    "quarterly_delivered": delivered,
                    "idea_id": f"{quarter_label}-2024-001",
                    "idea_summary": summary,
                }
            )

        for name, _, _ in _FORUMS:
            tables["data_socialization_forums"].append({"product": product, "forum_name": name, "is_active": True})

        for text, completed in _ACTION_ITEMS:
            tables["action_items"].append(
                {"user_id": SAMPLE_USER_ID, "product": product, "quarter": SAMPLE_QUARTERS[0], "text": text, "completed": completed}
            )
    return tables
