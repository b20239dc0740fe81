from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from insights.csv_ingest import CSVError, CSVValidation, validate_csv
from insights.transform import split_list


logger = logging.getLogger(__name__)

_TRUE = {"true", "yes", "y", "1", "t"}
_FALSE = {"false", "no", "n", "0", "f"}


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    label: str
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    numeric: Tuple[str, ...] = ()
    integer: Tuple[str, ...] = ()
    lists: Tuple[str, ...] = ()
    booleans: Tuple[str, ...] = ()
    json_columns: Tuple[str, ...] = ()
    defaults: Dict[str, Any] = field(default_factory=dict)
    quarter_scoped: bool = True
    # Existing rows matching these keys are replaced on upload.
    replace_keys: Tuple[str, ...] = ("product", "quarter")

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.required + self.optional

    @property
    def table(self) -> str:
        return self.name


DATASETS: Dict[str, DatasetSpec] = {
    spec.name: spec
    for spec in [
        DatasetSpec(
            name="features",
            label="Top Features",
            required=("feature_name", "vote_count", "status"),
            optional=(
                "status_updated_at",
                "client_voters",
                "estimated_impact",
                "resource_requirement",
                "strategic_alignment",
                "risks",
            ),
            numeric=("strategic_alignment",),
            integer=("vote_count",),
            lists=("client_voters", "risks"),
            defaults={"client_voters": []},
        ),
        DatasetSpec(
            name="responsiveness_trends",
            label="Responsiveness Trend",
            required=("percentage", "total_ideas"),
            optional=("ideas_moved_out_of_review", "ideas_list"),
            numeric=("percentage",),
            integer=("total_ideas", "ideas_moved_out_of_review"),
            lists=("ideas_list",),
        ),
        DatasetSpec(
            name="commitment_trends",
            label="Commitment Trends",
            required=("year",),
            optional=("committed", "delivered", "quarter", "quarterly_delivered", "idea_id", "idea_summary"),
            integer=("committed", "delivered", "quarterly_delivered"),
            quarter_scoped=False,
            replace_keys=("product", "year"),
        ),
        DatasetSpec(
            name="continued_engagement",
            label="Continued Engagement",
            required=("rate", "numerator", "denominator"),
            optional=(
                "idea_id",
                "idea_name",
                "initial_status_change",
                "subsequent_changes",
                "days_between",
                "included",
            ),
            numeric=("rate",),
            integer=("numerator", "denominator", "days_between"),
            booleans=("included",),
            json_columns=("subsequent_changes",),
        ),
        DatasetSpec(
            name="client_submissions",
            label="Client Submissions",
            required=("clients_representing",),
            optional=("client_names", "idea_id", "idea_summary", "idea_client_name"),
            integer=("clients_representing",),
            lists=("client_names",),
        ),
        DatasetSpec(
            name="cross_client_collaboration",
            label="Cross-Client Collaboration",
            required=(),
            optional=(
                "year",
                "collaborative_ideas_count",
                "total_ideas_count",
                "collaboration_rate",
                "idea_id",
                "idea_name",
                "original_submitter",
                "contributors",
                "submission_date",
                "collaboration_score",
                "status",
                "comments",
            ),
            numeric=("collaboration_rate", "collaboration_score"),
            integer=("collaborative_ideas_count", "total_ideas_count"),
            lists=("contributors",),
        ),
        DatasetSpec(
            name="data_socialization_forums",
            label="Data Socialization Forums",
            required=("forum_name",),
            optional=("is_active",),
            booleans=("is_active",),
            defaults={"is_active": True},
            quarter_scoped=False,
            replace_keys=("product",),
        ),
    ]
}


@dataclass
class RecordBatch:
    records: List[Dict[str, Any]]
    skipped_rows: int
    validation: CSVValidation


def get_dataset(name: str) -> DatasetSpec:
    spec = DATASETS.get(name)
    if spec is None:
        raise CSVError(f"Unknown dataset: {name}", "application", [f"Known datasets: {', '.join(DATASETS)}"])
    return spec


def _blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return not str(value).strip()


def coerce_number(value: object) -> Optional[float]:
    if _blank(value):
        return None
    try:
        num = float(str(value).strip())
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def coerce_int(value: object) -> Optional[int]:
    num = coerce_number(value)
    return int(round(num)) if num is not None else None


def coerce_bool(value: object) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if _blank(value):
        return None
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return None


def coerce_json(value: object) -> Any:
    if _blank(value):
        return None
    try:
        return json.loads(str(value))
    except ValueError:
        logger.warning("Ignoring invalid JSON value: %.40s", value)
        return None


def coerce_value(spec: DatasetSpec, column: str, value: object) -> Any:
    if column in spec.integer:
        return coerce_int(value)
    if column in spec.numeric:
        return coerce_number(value)
    if column in spec.lists:
        return None if _blank(value) else split_list(value)
    if column in spec.booleans:
        return coerce_bool(value)
    if column in spec.json_columns:
        return coerce_json(value)
    return None if _blank(value) else str(value).strip()


def build_records(dataset: str, df: pd.DataFrame, product: str, quarter: Optional[str]) -> RecordBatch:
    spec = get_dataset(dataset)
    missing = [c for c in spec.required if c not in df.columns]
    if missing:
        raise CSVError(
            "Invalid CSV structure",
            "data",
            ["The following required columns are missing:", *[f"- {c}" for c in missing]],
        )

    validation = validate_csv(df, spec.required, spec.numeric + spec.integer)

    records: List[Dict[str, Any]] = []
    skipped = 0
    for row in df.to_dict(orient="records"):
        if any(_blank(row.get(c)) for c in spec.required):
            skipped += 1
            continue

        row_product = "" if _blank(row.get("product")) else str(row["product"]).strip()
        if row_product and row_product.lower() != product.lower():
            skipped += 1
            continue

        record: Dict[str, Any] = {"product": product}
        if spec.quarter_scoped:
            row_quarter = None if _blank(row.get("quarter")) else str(row["quarter"]).strip()
            record["quarter"] = row_quarter or quarter

        for column in spec.columns:
            if column not in df.columns:
                if column in spec.defaults:
                    record[column] = spec.defaults[column]
                continue
            value = coerce_value(spec, column, row.get(column))
            if value is None and column in spec.defaults:
                value = spec.defaults[column]
            record[column] = value

        if any(record.get(c) is None for c in spec.required) or (spec.quarter_scoped and not record.get("quarter")):
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.info("%s: skipped %d of %d rows", spec.name, skipped, len(df))
    return RecordBatch(records=records, skipped_rows=skipped, validation=validation)


def replacement_scopes(spec: DatasetSpec, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Distinct replace-key filters covered by a batch, in first-seen order."""
    seen = []
    for record in records:
        scope = {k: record.get(k) for k in spec.replace_keys}
        if scope not in seen:
            seen.append(scope)
    return seen
