from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


#
# Dashboard theme tokens shared by the Streamlit UI and the chart helpers.
#
THEME = {
    "bg_primary": "#F9FAFB",
    "bg_card": "#FFFFFF",
    "text_primary": "#111827",
    "text_secondary": "#6B7280",
    "border_color": "#E5E7EB",
    "accent_primary": "#2563EB",
    "success": "#22C55E",
    "warning": "#F59E0B",
    "danger": "#EF4444",
}

STATUS_COLORS = {
    "Committed": "#3b82f6",
    "Under Review": "#8b5cf6",
    "Delivered": "#22c55e",
}

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"]


@dataclass(frozen=True)
class AppConfig:
    # Required for live mode (Supabase REST/RPC)
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]

    # Offline mode serves the bundled sample data from an in-memory backend.
    use_sample_data: bool

    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    retry_attempts: int = 3
    retry_base_delay: float = 1.0
    password_reset_redirect_url: Optional[str] = None

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name, default)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def validate_supabase_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    trimmed = url.strip().rstrip("/")
    return trimmed or None


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def get_config() -> AppConfig:
    """
    Centralized config: this is the ONLY place env vars are read.
    - Loads `.env` if present (local dev)
    - Without SUPABASE_URL / SUPABASE_ANON_KEY the app runs in offline mode
    """
    load_dotenv(override=False)

    supabase_url = validate_supabase_url(_getenv("SUPABASE_URL"))
    supabase_anon_key = _getenv("SUPABASE_ANON_KEY")
    configured = bool(supabase_url and supabase_anon_key)

    origins_raw = _getenv("CORS_ORIGINS")
    cors_origins = [o.strip() for o in origins_raw.split(",") if o.strip()] if origins_raw else list(DEFAULT_CORS_ORIGINS)

    return AppConfig(
        supabase_url=supabase_url,
        supabase_anon_key=supabase_anon_key,
        use_sample_data=_as_bool(_getenv("USE_SAMPLE_DATA"), default=not configured),
        cors_origins=cors_origins,
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        retry_attempts=max(1, _as_int(_getenv("BACKEND_RETRY_ATTEMPTS"), 3)),
        retry_base_delay=max(0.0, _as_float(_getenv("BACKEND_RETRY_BASE_DELAY"), 1.0)),
        password_reset_redirect_url=_getenv("PASSWORD_RESET_REDIRECT_URL"),
    )


_logging_configured = False


def configure_logging(level: str = "INFO") -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
