from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TABLE = "action_items"


class ActionItemError(ValueError):
    pass


def list_action_items(backend: Any, product: str, quarter: Optional[str] = None) -> List[Dict[str, Any]]:
    filters: Dict[str, Any] = {"product": product}
    if quarter:
        filters["quarter"] = quarter
    return backend.select(TABLE, filters, order_by="created_at")


def _clean_text(text: Optional[str]) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ActionItemError("Action item text cannot be empty")
    return cleaned


def add_action_item(backend: Any, product: str, quarter: str, text: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    row = {"user_id": user_id, "product": product, "quarter": quarter, "text": _clean_text(text), "completed": False}
    created = backend.insert(TABLE, [row])
    logger.info("Added action item for %s %s", product, quarter)
    return created[0] if created else row


def _get(backend: Any, item_id: str) -> Dict[str, Any]:
    rows = backend.select(TABLE, {"id": item_id}, limit=1)
    if not rows:
        raise KeyError(item_id)
    return rows[0]


def toggle_action_item(backend: Any, item_id: str) -> Dict[str, Any]:
    item = _get(backend, item_id)
    updated = backend.update(TABLE, {"completed": not bool(item.get("completed"))}, {"id": item_id})
    return updated[0] if updated else item


def edit_action_item(backend: Any, item_id: str, text: str) -> Dict[str, Any]:
    cleaned = _clean_text(text)
    _get(backend, item_id)
    updated = backend.update(TABLE, {"text": cleaned}, {"id": item_id})
    return updated[0]


def delete_action_item(backend: Any, item_id: str) -> None:
    _get(backend, item_id)
    backend.delete(TABLE, {"id": item_id})
    logger.info("Deleted action item %s", item_id)
