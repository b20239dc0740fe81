"""Map arbitrary CSV headers (idea-portal exports etc.) onto dashboard fields."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardField:
    key: str
    label: str
    required: bool
    description: str


DASHBOARD_FIELDS: List[DashboardField] = [
    DashboardField("feature_name", "Feature Name", True, "Name of the feature or idea"),
    DashboardField("idea_id", "Idea ID", False, "Unique identifier for the idea"),
    DashboardField("idea_summary", "Idea Summary", False, "Brief summary or description of the idea"),
    DashboardField("idea_description", "Idea Description", False, "Detailed description of the idea"),
    DashboardField("idea_title", "Idea Title", False, "Title of the idea"),
    DashboardField("idea_name", "Idea Name", False, "Name of the idea"),
    DashboardField("vote_count", "Vote Count", True, "Number of votes for this feature"),
    DashboardField("idea_votes", "Idea Votes", False, "Number of votes for this idea"),
    DashboardField("votes", "Votes", False, "Vote count"),
    DashboardField("status", "Status", True, "Current status (Delivered, Under Review, Committed)"),
    DashboardField("idea_status", "Idea Status", False, "Status of the idea"),
    DashboardField("current_status", "Current Status", False, "Current status of the item"),
    DashboardField("client_voters", "Client Voters", False, "List of clients who voted (comma-separated)"),
    DashboardField("submitter", "Submitter", False, "Person or client who submitted the idea"),
    DashboardField("submitted_by", "Submitted By", False, "Who submitted this idea"),
    DashboardField("assignee", "Assignee", False, "Person assigned to work on this idea"),
    DashboardField("owner", "Owner", False, "Owner of the idea"),
    DashboardField("status_updated_at", "Status Updated Date", False, "Date when status was last updated"),
    DashboardField("created_at", "Created Date", False, "Date when the idea was created"),
    DashboardField("updated_at", "Updated Date", False, "Date when the idea was last updated"),
    DashboardField("due_date", "Due Date", False, "Due date for the idea"),
    DashboardField("priority", "Priority", False, "Priority level of the idea"),
    DashboardField("category", "Category", False, "Category or type of the idea"),
    DashboardField("tags", "Tags", False, "Tags associated with the idea"),
    DashboardField("comments", "Comments", False, "Comments or notes about the idea"),
    DashboardField("score", "Score", False, "Score or rating of the idea"),
    DashboardField("effort", "Effort", False, "Effort estimate for implementing the idea"),
    DashboardField("business_value", "Business Value", False, "Business value of the idea"),
    DashboardField("product", "Product", False, "Product name (will default to current product if not mapped)"),
    DashboardField("product_line", "Product Line", False, "Product line or family"),
    DashboardField("release", "Release", False, "Target release for the idea"),
    DashboardField("epic", "Epic", False, "Epic that contains this idea"),
    DashboardField("quarter", "Quarter", False, "Quarter information (will default to current quarter if not mapped)"),
    DashboardField("responsiveness", "Responsiveness", False, "Responsiveness percentage"),
    DashboardField("roadmap_alignment_committed", "Committed Ideas", False, "Number of committed ideas"),
    DashboardField("roadmap_alignment_total", "Total Ideas Target", False, "Total ideas target"),
    DashboardField("year", "Year", False, "Year for idea distribution data"),
    DashboardField("candidate_ideas", "Candidate Ideas", False, "Number of candidate ideas"),
    DashboardField("in_development", "In Development", False, "Number of ideas in development"),
    DashboardField("archived_ideas", "Archived Ideas", False, "Number of archived ideas"),
    DashboardField("flagged_for_future", "Flagged for Future", False, "Number of ideas flagged for future"),
    DashboardField("active_quarter", "Active Quarter", False, "Active quarter for client submissions"),
    DashboardField("active_clients_representing", "Active Clients Count", False, "Number of active clients"),
    DashboardField("forum_name", "Forum Name", False, "Name of the discussion forum"),
    DashboardField("forum_audience", "Forum Audience", False, "Target audience for the forum"),
    DashboardField("forum_purpose", "Forum Purpose", False, "Purpose of the forum"),
]

FIELD_KEYS = {f.key for f in DASHBOARD_FIELDS}

_ID_WORD = re.compile(r"\bid\b")


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda h: any(n in h for n in needles)


# Ordered: first match wins.
_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (_has("idea name", "feature"), "feature_name"),
    (lambda h: "idea id" in h or bool(_ID_WORD.search(h)), "idea_id"),
    (_has("idea summary", "summary"), "idea_summary"),
    (_has("idea title", "title"), "idea_title"),
    (_has("description"), "idea_description"),
    (_has("vote", "count"), "vote_count"),
    (lambda h: "status" in h and "date" not in h, "status"),
    (_has("submitter", "submitted by"), "submitter"),
    (_has("assignee"), "assignee"),
    (_has("owner"), "owner"),
    (_has("priority"), "priority"),
    (_has("category"), "category"),
    (_has("tags"), "tags"),
    (_has("score"), "score"),
    (_has("effort"), "effort"),
    (_has("business value"), "business_value"),
    (_has("release"), "release"),
    (_has("epic"), "epic"),
    (lambda h: "created" in h and "date" in h, "created_at"),
    (_has("due date"), "due_date"),
    (lambda h: "client" in h and ("voter" in h or "firm" in h), "client_voters"),
    (_has("date", "updated"), "status_updated_at"),
    (_has("product"), "product"),
    (_has("quarter"), "quarter"),
    (_has("forum name"), "forum_name"),
    (_has("forum audience"), "forum_audience"),
    (_has("forum purpose"), "forum_purpose"),
]


def suggest_field(header: str) -> Optional[str]:
    lowered = str(header).strip().lower()
    if lowered in FIELD_KEYS:
        return lowered
    for matches, key in _RULES:
        if matches(lowered):
            return key
    return None


def suggest_mapping(headers: Iterable[str]) -> Dict[str, str]:
    """Header -> dashboard field key. Unrecognized headers are left out."""
    mapping: Dict[str, str] = {}
    for header in headers:
        key = suggest_field(header)
        if key:
            mapping[str(header)] = key
    return mapping


def validate_mapping(mapping: Mapping[str, Optional[str]]) -> List[DashboardField]:
    mapped = {v for v in mapping.values() if v}
    return [f for f in DASHBOARD_FIELDS if f.required and f.key not in mapped]


def missing_fields_message(missing: List[DashboardField]) -> str:
    return f"Please map the following required fields: {', '.join(f.label for f in missing)}"


def apply_mapping(df: pd.DataFrame, mapping: Mapping[str, Optional[str]], product: str, quarter: str) -> pd.DataFrame:
    out = pd.DataFrame(index=df.index)
    for header, key in mapping.items():
        if not key or header not in df.columns:
            continue
        if key in out.columns:
            logger.warning("Field %s mapped more than once; keeping first column", key)
            continue
        out[key] = df[header]

    if "product" not in out.columns:
        out["product"] = product
    if "quarter" not in out.columns:
        out["quarter"] = quarter
    return out.reset_index(drop=True)
