from __future__ import annotations

from typing import Any, Mapping


def normalize_status(status: Any) -> str:
    return str(status or "").lower()


def is_ready_for_invoicing(data: Mapping[str, Any], ready_status: str) -> bool:
    return normalize_status(data.get("status")) == normalize_status(ready_status)


def has_invoice(data: Mapping[str, Any]) -> bool:
    return bool(data.get("invoiceID"))
