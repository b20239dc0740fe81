from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    product: Optional[str] = None
    quarter: Optional[str] = None
    detail_quarter: Optional[str] = None
    top_n: int = 10


class CSVTextModel(BaseModel):
    csv_text: str
    file_name: str = "upload.csv"


class CSVPreviewRequest(CSVTextModel):
    dataset: Optional[str] = None


class HeaderCheckRequest(CSVTextModel):
    required_headers: List[str] = Field(default_factory=list)


class MappingSuggestRequest(BaseModel):
    headers: List[str]


class DashboardUploadRequest(CSVTextModel):
    product: str
    quarter: str


class DatasetUploadRequest(CSVTextModel):
    product: str
    quarter: Optional[str] = None
    mapping: Optional[Dict[str, Optional[str]]] = None


class ActionItemCreate(BaseModel):
    product: str
    quarter: str
    text: str
    user_id: Optional[str] = None


class ActionItemUpdate(BaseModel):
    text: str


class DashboardConfigModel(BaseModel):
    product: str
    quarter: str
    user_id: Optional[str] = None
    widget_settings: Dict[str, Any] = Field(default_factory=dict)


class PasswordStrengthRequest(BaseModel):
    password: str


class PasswordResetRequest(BaseModel):
    email: str
