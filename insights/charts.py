from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt

from insights.config import STATUS_COLORS, THEME

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def status_scale(statuses: Optional[List[str]] = None) -> alt.Scale:
    domain = statuses or list(STATUS_COLORS)
    return alt.Scale(domain=domain, range=[STATUS_COLORS.get(s, THEME["text_secondary"]) for s in domain])


def percent_axis(title: str = "") -> alt.Axis:
    return alt.Axis(title=title, labelExpr="datum.value + '%'", gridDash=[4, 4], domain=False, ticks=False)
