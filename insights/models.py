from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


PRODUCTS = [
    "TeamConnect",
    "Collaborati",
    "LegalHold",
    "TAP Workflow Automation",
    "HotDocs",
    "eCounsel",
    "CaseCloud",
]

QUARTERS = ["FY26 Q2", "FY26 Q1", "FY25 Q4", "FY25 Q3", "FY25 Q2", "FY25 Q1"]

FEATURE_STATUSES = ["Delivered", "Under Review", "Committed"]

AGING_TREND_QUARTERS = ["FY25 Q1", "FY25 Q2", "FY25 Q3", "FY25 Q4"]


@dataclass
class RoadmapAlignment:
    committed: float = 0
    total: float = 0


@dataclass
class ContinuedEngagement:
    rate: float = 0
    numerator: float = 0
    denominator: float = 0
    ideas: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class IdeaVolume:
    quarterly: float = 0
    total: float = 0


@dataclass
class AgingIdeas:
    count: float = 0
    trend: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class MetricSummary:
    responsiveness: float = 0
    roadmap_alignment: RoadmapAlignment = field(default_factory=RoadmapAlignment)
    cross_client_collaboration: float = 0
    continued_engagement: ContinuedEngagement = field(default_factory=ContinuedEngagement)
    idea_volume: IdeaVolume = field(default_factory=IdeaVolume)
    aging_ideas: AgingIdeas = field(default_factory=AgingIdeas)
    responsiveness_quarterly_data: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class StackedBarRow:
    year: str
    candidate_ideas: float = 0
    in_development: float = 0
    archived_ideas: float = 0
    flagged_for_future: float = 0


@dataclass
class LineChartPoint:
    quarter: str
    clients_representing: float = 0
    clients: List[str] = field(default_factory=list)


@dataclass
class Feature:
    feature_name: str
    vote_count: int
    status: str
    status_updated_at: Optional[str] = None
    client_voters: List[str] = field(default_factory=list)


@dataclass
class Forum:
    name: str
    audience: Optional[str] = None
    purpose: Optional[str] = None


@dataclass
class DashboardData:
    metric_summary: MetricSummary = field(default_factory=MetricSummary)
    stacked_bar_data: List[StackedBarRow] = field(default_factory=list)
    line_chart_data: List[LineChartPoint] = field(default_factory=list)
    top_features: List[Feature] = field(default_factory=list)
    data_socialization_forums: List[Forum] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "DashboardData":
        raw = raw or {}
        ms = raw.get("metric_summary") or {}
        ra = ms.get("roadmap_alignment") or {}
        ce = ms.get("continued_engagement") or {}
        iv = ms.get("idea_volume") or {}
        ai = ms.get("aging_ideas") or {}
        summary = MetricSummary(
            responsiveness=ms.get("responsiveness", 0) or 0,
            roadmap_alignment=RoadmapAlignment(committed=ra.get("committed", 0) or 0, total=ra.get("total", 0) or 0),
            cross_client_collaboration=ms.get("cross_client_collaboration", 0) or 0,
            continued_engagement=ContinuedEngagement(
                rate=ce.get("rate", 0) or 0,
                numerator=ce.get("numerator", 0) or 0,
                denominator=ce.get("denominator", 0) or 0,
                ideas=list(ce.get("ideas") or []),
            ),
            idea_volume=IdeaVolume(quarterly=iv.get("quarterly", 0) or 0, total=iv.get("total", 0) or 0),
            aging_ideas=AgingIdeas(count=ai.get("count", 0) or 0, trend=list(ai.get("trend") or [])),
            responsiveness_quarterly_data=list(ms.get("responsiveness_quarterly_data") or []),
        )
        return cls(
            metric_summary=summary,
            stacked_bar_data=[StackedBarRow(**row) for row in raw.get("stacked_bar_data") or []],
            line_chart_data=[LineChartPoint(**row) for row in raw.get("line_chart_data") or []],
            top_features=[Feature(**row) for row in raw.get("top_features") or []],
            data_socialization_forums=[Forum(**row) for row in raw.get("data_socialization_forums") or []],
        )
