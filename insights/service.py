from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pandas as pd

from insights.csv_ingest import CSVError, CSVValidation, read_csv_text, validate_csv, validate_csv_product
from insights.data import load_dashboard_data, prepare_context
from insights.filters import DashboardFilters, normalize_filters
from insights.mapping import apply_mapping, missing_fields_message, validate_mapping
from insights.models import DashboardData
from insights.records import build_records, get_dataset, replacement_scopes
from insights.transform import parse_dashboard_csv


logger = logging.getLogger(__name__)

CONFIG_TABLE = "dashboard_configs"


@dataclass
class DataResult:
    data: Any
    source: str
    warning: Optional[str] = None


@dataclass
class UploadSummary:
    dataset: str
    product: str
    quarter: Optional[str]
    inserted: int
    skipped_rows: int
    replaced: int
    warnings: List[str] = field(default_factory=list)


def build_context(backend: Any, raw_filters: Mapping[str, Any]) -> Tuple[DashboardFilters, Dict[str, Any]]:
    """Load one product and slice it for the requested quarter."""
    provisional = normalize_filters(dict(raw_filters))
    data_ctx = load_dashboard_data(backend, provisional.product)
    ctx = prepare_context(dict(raw_filters), data_ctx)
    return ctx["filters"], ctx


def upload_dashboard_csv(backend: Any, content: Union[str, bytes], product: str, quarter: str) -> DataResult:
    validate_csv_product(content, product)
    data: DashboardData = parse_dashboard_csv(content, product)
    backend.upsert(
        "dashboards",
        [{"product": product, "quarter": quarter, "data": data.to_dict()}],
        on_conflict="product,quarter",
    )
    logger.info("Stored dashboard for %s %s (%d features)", product, quarter, len(data.top_features))
    return DataResult(data=data, source=backend.name)


def validate_mapped_csv(
    content: Union[str, bytes],
    mapping: Mapping[str, Optional[str]],
    product: str,
    quarter: Optional[str],
    dataset: str = "features",
) -> CSVValidation:
    """Validate an upload as it will look once the field mapping is applied."""
    spec = get_dataset(dataset)
    raw = read_csv_text(content)
    df = apply_mapping(raw, mapping, product, quarter or "")
    df.attrs["skipped_lines"] = raw.attrs.get("skipped_lines", [])
    return validate_csv(df, spec.required, spec.numeric + spec.integer)


def upload_dataset_csv(
    backend: Any,
    dataset: str,
    content: Union[str, bytes],
    product: str,
    quarter: Optional[str],
    mapping: Optional[Mapping[str, Optional[str]]] = None,
) -> UploadSummary:
    spec = get_dataset(dataset)
    df = read_csv_text(content)

    if mapping:
        missing = validate_mapping(mapping) if dataset == "features" else []
        if missing:
            raise CSVError("Incomplete field mapping", "data", [missing_fields_message(missing)])
        df = apply_mapping(df, mapping, product, quarter or "")

    batch = build_records(dataset, df, product, quarter)
    if not batch.validation.is_valid:
        raise CSVError("Invalid CSV data", "data", list(batch.validation.errors))
    if not batch.records:
        raise CSVError(
            "No valid rows",
            "data",
            [
                f"All {batch.skipped_rows} rows were skipped: required values were missing"
                f" or the rows belong to a product other than {product}"
            ],
        )

    replaced = 0
    for scope in replacement_scopes(spec, batch.records):
        replaced += len(backend.delete(spec.table, scope))
    inserted = backend.insert(spec.table, batch.records)

    logger.info(
        "Uploaded %s for %s: %d inserted, %d replaced, %d skipped",
        dataset,
        product,
        len(inserted),
        replaced,
        batch.skipped_rows,
    )
    return UploadSummary(
        dataset=dataset,
        product=product,
        quarter=quarter if spec.quarter_scoped else None,
        inserted=len(inserted),
        skipped_rows=batch.skipped_rows,
        replaced=replaced,
        warnings=list(batch.validation.warnings),
    )


def _config_filters(product: str, quarter: str, user_id: Optional[str]) -> Dict[str, Any]:
    return {"product": product, "quarter": quarter, "user_id": user_id}


def get_dashboard_config(backend: Any, product: str, quarter: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    rows = backend.select(CONFIG_TABLE, _config_filters(product, quarter, user_id), limit=1)
    if not rows:
        return {}
    return dict(rows[0].get("widget_settings") or {})


def save_dashboard_config(
    backend: Any,
    product: str,
    quarter: str,
    widget_settings: Dict[str, Any],
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    filters = _config_filters(product, quarter, user_id)
    if backend.select(CONFIG_TABLE, filters, limit=1):
        rows = backend.update(CONFIG_TABLE, {"widget_settings": widget_settings}, filters)
    else:
        rows = backend.insert(CONFIG_TABLE, [{**filters, "widget_settings": widget_settings}])
    return rows[0] if rows else {**filters, "widget_settings": widget_settings}


def export_dataset_csv(backend: Any, dataset: str, product: str, quarter: Optional[str] = None) -> str:
    spec = get_dataset(dataset)
    filters: Dict[str, Any] = {"product": product}
    if quarter and spec.quarter_scoped:
        filters["quarter"] = quarter
    rows = backend.select(spec.table, filters)

    columns = ["product"] + (["quarter"] if spec.quarter_scoped else []) + list(spec.columns)
    df = pd.DataFrame(rows, columns=None if rows else columns)
    for col in columns:
        if col not in df.columns:
            df[col] = None
    df = df[columns]
    for col in spec.lists:
        df[col] = df[col].map(lambda v: ", ".join(str(x) for x in v) if isinstance(v, (list, tuple)) else v)
    for col in spec.json_columns:
        df[col] = df[col].map(lambda v: json.dumps(v) if isinstance(v, (list, dict)) else v)

    buf = io.StringIO()
    df.to_csv(buf, index=False)
    return buf.getvalue()
