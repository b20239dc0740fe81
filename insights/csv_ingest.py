"""CSV ingestion: parse an uploaded file, check it against the expected
column set and report problems before anything is written to the backend.

Validation is a single pass over the in-memory table. Problems that make the
file unusable (missing required columns, no data rows) are *errors*; data
quality findings (duplicates, blank required values, non-numeric values in
numeric columns) are *warnings* and do not invalidate the file.
"""

from __future__ import annotations

import io
import logging
import warnings
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Union

import pandas as pd


logger = logging.getLogger(__name__)

ErrorType = Literal["file", "data", "application"]

REQUIRED_FIELDS = ["product", "quarter", "responsiveness", "feature_name", "vote_count", "status"]
NUMERIC_FIELDS = ["responsiveness", "vote_count", "roadmap_alignment_committed", "roadmap_alignment_total"]
PREVIEW_ROWS = 10
REPORT_SAMPLE_ROWS = 5


class CSVError(Exception):
    def __init__(self, message: str, error_type: ErrorType = "data", details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = list(details or [])

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "type": self.error_type, "details": self.details}


@dataclass(frozen=True)
class CSVValidation:
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    row_count: int
    column_count: int
    missing_fields: List[str]
    duplicate_rows: int
    missing_value_count: int = 0
    invalid_numeric_count: int = 0


@dataclass(frozen=True)
class CSVPreview:
    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)
    validation: Optional[CSVValidation] = None


def _empty_file_error() -> CSVError:
    return CSVError("Empty CSV file", "file", ["The uploaded file contains no data"])


def read_csv_text(content: Union[str, bytes]) -> pd.DataFrame:
    """Parse CSV text into a DataFrame of strings (header row required, blank lines skipped)."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CSVError("Failed to parse CSV file", "file", [str(exc)]) from exc
    else:
        content = content.lstrip("\ufeff")

    if not content.strip():
        raise _empty_file_error()

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(content),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                on_bad_lines="warn",
            )
    except pd.errors.EmptyDataError as exc:
        raise _empty_file_error() from exc
    except pd.errors.ParserError as exc:
        logger.warning("CSV parse failed: %s", exc)
        raise CSVError("Failed to parse CSV file", "file", [str(exc)]) from exc

    skipped = _skipped_lines(caught)
    if skipped:
        logger.warning("Skipped %d malformed CSV rows", len(skipped))

    df.columns = [str(c) for c in df.columns]
    df = df.fillna("")
    df.attrs["skipped_lines"] = skipped
    return df


def _skipped_lines(caught: List[warnings.WarningMessage]) -> List[str]:
    """Bad-line notices from the parser; other warnings are re-emitted."""
    skipped: List[str] = []
    for w in caught:
        if issubclass(w.category, pd.errors.ParserWarning):
            skipped.extend(line.strip() for line in str(w.message).splitlines() if line.startswith("Skipping line"))
        else:
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
    return skipped


def _blank_mask(frame: pd.DataFrame) -> pd.DataFrame:
    return frame.fillna("").astype(str).apply(lambda s: s.str.strip().eq(""))


def count_missing_values(df: pd.DataFrame, fields: Iterable[str]) -> int:
    cols = [c for c in fields if c in df.columns]
    if not cols or df.empty:
        return 0
    return int(_blank_mask(df[cols]).to_numpy().sum())


def count_invalid_numeric(df: pd.DataFrame, fields: Iterable[str]) -> int:
    invalid = 0
    for col in [c for c in fields if c in df.columns]:
        values = df[col].fillna("").astype(str).str.strip()
        non_blank = values[values != ""]
        if non_blank.empty:
            continue
        parsed = pd.to_numeric(non_blank, errors="coerce")
        invalid += int(parsed.isna().sum())
    return invalid


def validate_csv(
    df: pd.DataFrame,
    required_fields: Optional[Sequence[str]] = None,
    numeric_fields: Optional[Sequence[str]] = None,
) -> CSVValidation:
    required = list(REQUIRED_FIELDS if required_fields is None else required_fields)
    numeric = list(NUMERIC_FIELDS if numeric_fields is None else numeric_fields)
    headers = list(df.columns)
    errors: List[str] = []
    warnings: List[str] = []

    missing_fields = [f for f in required if f not in headers]
    if missing_fields:
        errors.append(f"Missing required columns: {', '.join(missing_fields)}")

    if len(df) == 0:
        errors.append("CSV file contains no data rows")

    duplicate_rows = int(df.duplicated().sum()) if len(df) else 0
    if duplicate_rows > 0:
        warnings.append(f"Found {duplicate_rows} duplicate rows")

    missing_value_count = count_missing_values(df, required)
    if missing_value_count > 0:
        warnings.append(f"Found {missing_value_count} missing values in required fields")

    invalid_numeric_count = count_invalid_numeric(df, numeric)
    if invalid_numeric_count > 0:
        warnings.append(f"Found {invalid_numeric_count} non-numeric values in numeric fields")

    skipped_lines = len(df.attrs.get("skipped_lines") or [])
    if skipped_lines > 0:
        warnings.append(f"Skipped {skipped_lines} malformed rows with more fields than the header")

    return CSVValidation(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        row_count=int(len(df)),
        column_count=len(headers),
        missing_fields=missing_fields,
        duplicate_rows=duplicate_rows,
        missing_value_count=missing_value_count,
        invalid_numeric_count=invalid_numeric_count,
    )


def preview_csv(
    content: Union[str, bytes],
    required_fields: Optional[Sequence[str]] = None,
    numeric_fields: Optional[Sequence[str]] = None,
    *,
    preview_rows: int = PREVIEW_ROWS,
) -> CSVPreview:
    df = read_csv_text(content)
    validation = validate_csv(df, required_fields, numeric_fields)
    if not validation.is_valid:
        logger.info("CSV validation failed: %s", "; ".join(validation.errors))
    return CSVPreview(
        headers=list(df.columns),
        rows=df.head(preview_rows).to_dict(orient="records"),
        validation=validation,
    )


def validation_report(preview: CSVPreview, file_name: str, file_size: Optional[int] = None) -> Dict[str, Any]:
    return {
        "file_name": file_name,
        "file_size": file_size,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "validation": asdict(preview.validation) if preview.validation is not None else None,
        "headers": list(preview.headers),
        "sample_data": list(preview.rows[:REPORT_SAMPLE_ROWS]),
    }


def validate_csv_headers(content: Union[str, bytes], required_headers: Sequence[str]) -> bool:
    df = read_csv_text(content)
    if df.empty:
        raise _empty_file_error()
    missing = [h for h in required_headers if h not in df.columns]
    if missing:
        raise CSVError(
            "Invalid CSV structure",
            "data",
            ["The following required columns are missing:", *[f"- {h}" for h in missing]],
        )
    return True


def rows_for_product(df: pd.DataFrame, product: str) -> pd.DataFrame:
    if df.empty or "product" not in df.columns:
        return df.iloc[0:0]
    mask = df["product"].fillna("").astype(str).str.strip().str.lower() == product.lower()
    return df[mask]


def validate_csv_product(content: Union[str, bytes], product: str) -> None:
    df = read_csv_text(content)
    if df.empty:
        raise _empty_file_error()
    if rows_for_product(df, product).empty:
        raise CSVError(
            "Invalid product data",
            "data",
            [
                f"The CSV file does not contain data for {product}",
                "Please upload a CSV file with data for the selected product",
            ],
        )
