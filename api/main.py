from __future__ import annotations

from dataclasses import asdict
from functools import lru_cache
import logging
import math
from typing import Any, Callable, Dict, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import (
    ActionItemCreate,
    ActionItemUpdate,
    CSVPreviewRequest,
    DashboardConfigModel,
    DashboardFiltersModel,
    DashboardUploadRequest,
    DatasetUploadRequest,
    HeaderCheckRequest,
    MappingSuggestRequest,
    PasswordResetRequest,
    PasswordStrengthRequest,
)
from insights.accounts import DEFAULT_CLIENT_IP, RATE_LIMIT_MESSAGE, request_password_reset, validate_password_strength
from insights.action_items import (
    ActionItemError,
    add_action_item,
    delete_action_item,
    edit_action_item,
    list_action_items,
    toggle_action_item,
)
from insights.backend import get_backend
from insights.config import AppConfig, configure_logging, get_config
from insights.csv_ingest import CSVError, preview_csv, validate_csv_headers, validation_report
from insights.data import load_dashboard_data
from insights.filters import match_product
from insights.mapping import DASHBOARD_FIELDS, suggest_mapping
from insights.metrics_collaboration import compute_collaboration
from insights.metrics_commitment import compute_commitment
from insights.metrics_engagement import compute_engagement
from insights.metrics_features import compute_features
from insights.metrics_overview import compute_overview
from insights.metrics_quality import compute_data_quality, quality_report
from insights.metrics_responsiveness import compute_responsiveness
from insights.metrics_submissions import compute_client_submissions
from insights.models import PRODUCTS
from insights.records import DATASETS, get_dataset
from insights.service import (
    build_context,
    export_dataset_csv,
    get_dashboard_config,
    save_dashboard_config,
    upload_dashboard_csv,
    upload_dataset_csv,
)


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return get_config()


@lru_cache(maxsize=1)
def get_app_backend() -> Any:
    return get_backend(get_app_config())


configure_logging(get_app_config().log_level)

app = FastAPI(title="Client Insights API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_app_config().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _csv_error(exc: CSVError) -> JSONResponse:
    return JSONResponse(status_code=400, content=exc.to_dict())


def _server_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _page(name: str, compute: Callable[..., Dict[str, Any]], filters: DashboardFiltersModel, backend: Any) -> JSONResponse:
    try:
        f, ctx = build_context(backend, filters.model_dump())
        return _json(compute(f, ctx))
    except Exception as exc:
        logger.exception("%s failed", name)
        return _server_error(exc)


@app.get("/health")
def health(backend: Any = Depends(get_app_backend)):
    try:
        return _json({"status": "ok", "backend": backend.name, "connected": backend.check_connection()})
    except Exception as exc:
        logger.exception("health failed")
        return _server_error(exc)


@app.get("/meta/products")
def meta_products():
    return _json({"values": list(PRODUCTS)})


@app.get("/meta/quarters")
def meta_quarters(product: str = Query(default=PRODUCTS[0]), backend: Any = Depends(get_app_backend)):
    try:
        data_ctx = load_dashboard_data(backend, match_product(product))
        return _json({"values": data_ctx.get("quarters", []), "source": data_ctx.get("source")})
    except Exception as exc:
        logger.exception("meta_quarters failed")
        return _server_error(exc)


@app.get("/meta/datasets")
def meta_datasets():
    return _json(
        {
            "datasets": [
                {
                    "name": spec.name,
                    "label": spec.label,
                    "required": list(spec.required),
                    "optional": list(spec.optional),
                    "quarter_scoped": spec.quarter_scoped,
                }
                for spec in DATASETS.values()
            ]
        }
    )


@app.get("/meta/fields")
def meta_fields():
    return _json({"fields": [asdict(f) for f in DASHBOARD_FIELDS]})


@app.post("/csv/preview")
def csv_preview(body: CSVPreviewRequest):
    try:
        if body.dataset:
            spec = get_dataset(body.dataset)
            preview = preview_csv(body.csv_text, spec.required, spec.numeric + spec.integer)
        else:
            preview = preview_csv(body.csv_text)
        return _json(
            {
                "preview": asdict(preview),
                "report": validation_report(preview, body.file_name, len(body.csv_text.encode("utf-8"))),
            }
        )
    except CSVError as exc:
        return _csv_error(exc)
    except Exception as exc:
        logger.exception("csv_preview failed")
        return _server_error(exc)


@app.post("/csv/validate-headers")
def csv_validate_headers(body: HeaderCheckRequest):
    try:
        return _json({"valid": validate_csv_headers(body.csv_text, body.required_headers)})
    except CSVError as exc:
        return _csv_error(exc)
    except Exception as exc:
        logger.exception("csv_validate_headers failed")
        return _server_error(exc)


@app.post("/csv/mapping/suggest")
def csv_mapping_suggest(body: MappingSuggestRequest):
    return _json({"mapping": suggest_mapping(body.headers)})


@app.post("/upload/dashboard")
def upload_dashboard(body: DashboardUploadRequest, backend: Any = Depends(get_app_backend)):
    try:
        result = upload_dashboard_csv(backend, body.csv_text, body.product, body.quarter)
        return _json({"data": result.data.to_dict(), "source": result.source})
    except CSVError as exc:
        return _csv_error(exc)
    except Exception as exc:
        logger.exception("upload_dashboard failed")
        return _server_error(exc)


@app.post("/upload/{dataset}")
def upload_dataset(dataset: str, body: DatasetUploadRequest, backend: Any = Depends(get_app_backend)):
    try:
        summary = upload_dataset_csv(backend, dataset, body.csv_text, body.product, body.quarter, body.mapping)
        return _json(asdict(summary))
    except CSVError as exc:
        return _csv_error(exc)
    except Exception as exc:
        logger.exception("upload_dataset failed")
        return _server_error(exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("overview", compute_overview, filters, backend)


@app.post("/responsiveness")
def responsiveness(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("responsiveness", compute_responsiveness, filters, backend)


@app.post("/commitment")
def commitment(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("commitment", compute_commitment, filters, backend)


@app.post("/engagement")
def engagement(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("engagement", compute_engagement, filters, backend)


@app.post("/client-submissions")
def client_submissions(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("client_submissions", compute_client_submissions, filters, backend)


@app.post("/collaboration")
def collaboration(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("collaboration", compute_collaboration, filters, backend)


@app.post("/features")
def features(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("features", compute_features, filters, backend)


@app.post("/data-quality")
def data_quality(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("data_quality", compute_data_quality, filters, backend)


@app.post("/data-quality/report")
def data_quality_report(filters: DashboardFiltersModel, backend: Any = Depends(get_app_backend)):
    return _page("data_quality_report", quality_report, filters, backend)


@app.get("/action-items")
def action_items(
    product: str = Query(...),
    quarter: Optional[str] = Query(default=None),
    backend: Any = Depends(get_app_backend),
):
    try:
        return _json({"items": list_action_items(backend, product, quarter)})
    except Exception as exc:
        logger.exception("action_items failed")
        return _server_error(exc)


@app.post("/action-items")
def create_action_item(body: ActionItemCreate, backend: Any = Depends(get_app_backend)):
    try:
        item = add_action_item(backend, body.product, body.quarter, body.text, body.user_id)
        return _json(item, status_code=201)
    except ActionItemError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc), "type": "data"})
    except Exception as exc:
        logger.exception("create_action_item failed")
        return _server_error(exc)


def _not_found(item_id: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Action item {item_id} not found", "type": "not_found"})


@app.post("/action-items/{item_id}/toggle")
def toggle_item(item_id: str, backend: Any = Depends(get_app_backend)):
    try:
        return _json(toggle_action_item(backend, item_id))
    except KeyError:
        return _not_found(item_id)
    except Exception as exc:
        logger.exception("toggle_item failed")
        return _server_error(exc)


@app.patch("/action-items/{item_id}")
def edit_item(item_id: str, body: ActionItemUpdate, backend: Any = Depends(get_app_backend)):
    try:
        return _json(edit_action_item(backend, item_id, body.text))
    except ActionItemError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc), "type": "data"})
    except KeyError:
        return _not_found(item_id)
    except Exception as exc:
        logger.exception("edit_item failed")
        return _server_error(exc)


@app.delete("/action-items/{item_id}")
def delete_item(item_id: str, backend: Any = Depends(get_app_backend)):
    try:
        delete_action_item(backend, item_id)
        return Response(status_code=204)
    except KeyError:
        return _not_found(item_id)
    except Exception as exc:
        logger.exception("delete_item failed")
        return _server_error(exc)


@app.get("/dashboard-config")
def dashboard_config(
    product: str = Query(...),
    quarter: str = Query(...),
    user_id: Optional[str] = Query(default=None),
    backend: Any = Depends(get_app_backend),
):
    try:
        return _json({"widget_settings": get_dashboard_config(backend, product, quarter, user_id)})
    except Exception as exc:
        logger.exception("dashboard_config failed")
        return _server_error(exc)


@app.put("/dashboard-config")
def put_dashboard_config(body: DashboardConfigModel, backend: Any = Depends(get_app_backend)):
    try:
        row = save_dashboard_config(backend, body.product, body.quarter, body.widget_settings, body.user_id)
        return _json(row)
    except Exception as exc:
        logger.exception("put_dashboard_config failed")
        return _server_error(exc)


@app.get("/export/{dataset}")
def export_dataset(
    dataset: str,
    product: str = Query(...),
    quarter: Optional[str] = Query(default=None),
    backend: Any = Depends(get_app_backend),
):
    try:
        csv_text = export_dataset_csv(backend, dataset, product, quarter)
    except CSVError as exc:
        return _csv_error(exc)
    except Exception as exc:
        logger.exception("export_dataset failed")
        return _server_error(exc)
    filename = f"{dataset}.csv"
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.post("/auth/password-strength")
def password_strength(body: PasswordStrengthRequest):
    return _json(validate_password_strength(body.password))


@app.post("/auth/password-reset")
def password_reset(
    body: PasswordResetRequest,
    request: Request,
    backend: Any = Depends(get_app_backend),
    config: AppConfig = Depends(get_app_config),
):
    ip = request.client.host if request.client else DEFAULT_CLIENT_IP
    try:
        result = request_password_reset(
            backend,
            body.email,
            redirect_to=config.password_reset_redirect_url,
            ip_address=ip,
        )
    except Exception as exc:
        logger.exception("password_reset failed")
        return _server_error(exc)
    if result["sent"]:
        return _json(result)
    status = 429 if result["message"] == RATE_LIMIT_MESSAGE else 400
    return _json(result, status_code=status)
