"""Backend access: Supabase (live) or an in-memory table store (offline/tests).

Both backends expose the same small surface over flat rows:
select / insert / upsert / update / delete / rpc. Filters are equality
filters ({column: value}); a None value matches NULL.
"""

from __future__ import annotations

import copy
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from supabase import Client, create_client

from insights.config import AppConfig


logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Dict[str, Any]
Filters = Dict[str, Any]

RESET_ATTEMPTS_TABLE = "password_reset_attempts"
RESET_ATTEMPTS_PER_HOUR = 3
RESET_ATTEMPT_RETENTION = timedelta(hours=24)


class BackendUnavailableError(RuntimeError):
    pass


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run `operation`, retrying with delays base, 2*base, 4*base... Re-raises the last error."""
    max_attempts = max(1, int(max_attempts))
    attempt = 1
    while True:
        try:
            return operation()
        except Exception as exc:
            if attempt >= max_attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("Attempt %d/%d failed (%s); retrying in %.2fs", attempt, max_attempts, exc, delay)
            sleep(delay)
        attempt += 1


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseBackend:
    name = "supabase"

    def __init__(self, config: AppConfig, client: Optional[Client] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.config.supabase_configured:
                raise BackendUnavailableError(
                    "Supabase is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY or enable USE_SAMPLE_DATA."
                )
            self._client = create_client(self.config.supabase_url, self.config.supabase_anon_key)
        return self._client

    def _run(self, operation: Callable[[], T]) -> T:
        return retry_with_backoff(operation, self.config.retry_attempts, self.config.retry_base_delay)

    @staticmethod
    def _apply_filters(query: Any, filters: Optional[Filters]) -> Any:
        for key, value in (filters or {}).items():
            query = query.is_(key, "null") if value is None else query.eq(key, value)
        return query

    def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        def op() -> List[Row]:
            query = self._apply_filters(self.client.table(table).select("*"), filters)
            if order_by:
                query = query.order(order_by, desc=desc)
            if limit is not None:
                query = query.limit(limit)
            return list(query.execute().data or [])

        return self._run(op)

    def insert(self, table: str, rows: Sequence[Row]) -> List[Row]:
        if not rows:
            return []
        return self._run(lambda: list(self.client.table(table).insert(list(rows)).execute().data or []))

    def upsert(self, table: str, rows: Sequence[Row], on_conflict: str) -> List[Row]:
        if not rows:
            return []
        return self._run(
            lambda: list(self.client.table(table).upsert(list(rows), on_conflict=on_conflict).execute().data or [])
        )

    def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        payload = {**values, "updated_at": _now_iso()}
        return self._run(
            lambda: list(self._apply_filters(self.client.table(table).update(payload), filters).execute().data or [])
        )

    def delete(self, table: str, filters: Filters) -> List[Row]:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        return self._run(lambda: list(self._apply_filters(self.client.table(table).delete(), filters).execute().data or []))

    def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._run(lambda: self.client.rpc(fn, params or {}).execute().data)

    def check_connection(self) -> bool:
        try:
            self.client.table("dashboards").select("id").limit(1).execute()
        except Exception:
            logger.exception("Supabase connection check failed")
            return False
        return True

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        self._run(lambda: self.client.auth.reset_password_for_email(email, options))


def _matches(row: Row, filters: Optional[Filters]) -> bool:
    return all(row.get(k) == v for k, v in (filters or {}).items())


class InMemoryBackend:
    """Dict-of-lists table store with the SupabaseBackend surface."""

    name = "memory"

    def __init__(self, tables: Optional[Dict[str, Iterable[Row]]] = None):
        self.tables: Dict[str, List[Row]] = {}
        self.password_reset_requests: List[Dict[str, Any]] = []
        self._rpcs: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "check_password_reset_rate_limit": self._rpc_check_rate_limit,
            "log_password_reset_attempt": self._rpc_log_attempt,
            "cleanup_old_password_reset_attempts": self._rpc_cleanup_attempts,
        }
        for table, rows in (tables or {}).items():
            self.insert(table, list(rows))

    @classmethod
    def seeded(cls) -> "InMemoryBackend":
        from insights.sample_data import sample_tables

        return cls(sample_tables())

    def _stamp(self, row: Row) -> Row:
        now = _now_iso()
        out = copy.deepcopy(row)
        out.setdefault("id", str(uuid.uuid4()))
        out.setdefault("created_at", now)
        out.setdefault("updated_at", now)
        return out

    def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        rows = [copy.deepcopy(r) for r in self.tables.get(table, []) if _matches(r, filters)]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            rows = sorted(present, key=lambda r: r[order_by], reverse=desc) + missing
        return rows[:limit] if limit is not None else rows

    def insert(self, table: str, rows: Sequence[Row]) -> List[Row]:
        stamped = [self._stamp(r) for r in rows]
        self.tables.setdefault(table, []).extend(stamped)
        return [copy.deepcopy(r) for r in stamped]

    def upsert(self, table: str, rows: Sequence[Row], on_conflict: str) -> List[Row]:
        keys = [k.strip() for k in on_conflict.split(",") if k.strip()]
        existing = self.tables.setdefault(table, [])
        out: List[Row] = []
        for row in rows:
            match = next((r for r in existing if all(r.get(k) == row.get(k) for k in keys)), None)
            if match is None:
                stamped = self._stamp(row)
                existing.append(stamped)
                out.append(copy.deepcopy(stamped))
            else:
                match.update(copy.deepcopy(row))
                match["updated_at"] = _now_iso()
                out.append(copy.deepcopy(match))
        return out

    def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        out: List[Row] = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                row["updated_at"] = _now_iso()
                out.append(copy.deepcopy(row))
        return out

    def delete(self, table: str, filters: Filters) -> List[Row]:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        rows = self.tables.get(table, [])
        removed = [r for r in rows if _matches(r, filters)]
        self.tables[table] = [r for r in rows if not _matches(r, filters)]
        return removed

    def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None) -> Any:
        handler = self._rpcs.get(fn)
        if handler is None:
            raise BackendUnavailableError(f"Unknown RPC function: {fn}")
        return handler(params or {})

    def check_connection(self) -> bool:
        return True

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        self.password_reset_requests.append({"email": email, "redirect_to": redirect_to, "requested_at": _now_iso()})
        logger.info("Offline mode: password reset email for %s not sent", email)

    def _rpc_check_rate_limit(self, params: Dict[str, Any]) -> bool:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=1)
        recent = [
            r
            for r in self.tables.get(RESET_ATTEMPTS_TABLE, [])
            if r.get("email") == params.get("user_email") and datetime.fromisoformat(r["created_at"]) >= cutoff
        ]
        return len(recent) < RESET_ATTEMPTS_PER_HOUR

    def _rpc_log_attempt(self, params: Dict[str, Any]) -> None:
        self.insert(
            RESET_ATTEMPTS_TABLE,
            [
                {
                    "email": params.get("user_email"),
                    "ip_address": params.get("user_ip"),
                    "success": bool(params.get("attempt_success", False)),
                }
            ],
        )

    def _rpc_cleanup_attempts(self, params: Dict[str, Any]) -> None:
        cutoff = datetime.now(timezone.utc) - RESET_ATTEMPT_RETENTION
        rows = self.tables.get(RESET_ATTEMPTS_TABLE, [])
        self.tables[RESET_ATTEMPTS_TABLE] = [r for r in rows if datetime.fromisoformat(r["created_at"]) >= cutoff]


Backend = Any  # SupabaseBackend | InMemoryBackend


def get_backend(config: AppConfig) -> Backend:
    if config.supabase_configured and not config.use_sample_data:
        logger.info("Using Supabase backend at %s", config.supabase_url)
        return SupabaseBackend(config)
    if not config.use_sample_data:
        raise BackendUnavailableError(
            "USE_SAMPLE_DATA is off but SUPABASE_URL / SUPABASE_ANON_KEY are not set."
        )
    logger.info("Using in-memory backend seeded with sample data")
    return InMemoryBackend.seeded()
