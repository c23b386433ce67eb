from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class InvoiceStatus(str, Enum):
    PENDING = "pending"


class TrackingInvoiceStatus(str, Enum):
    GENERATED = "generated"


class MaterializationOutcome(str, Enum):
    DELETED = "deleted"
    NOT_READY = "not_ready"
    ALREADY_INVOICED = "already_invoiced"
    MISSING_FIELDS = "missing_fields"
    RECORD_GONE = "record_gone"
    CREATED = "created"


class InvoiceFields(BaseModel):
    """Values copied from a tracking document onto its invoice."""

    owner_id: str
    booking_id: str
    plate_number: str


class InvoiceRecord(BaseModel):
    invoice_id: str
    user_id: str
    booking_id: str
    plate_number: str
    amount: float
    status: InvoiceStatus = InvoiceStatus.PENDING

    # Server timestamp sentinel on write; a datetime once read back.
    date: Any = None

    # Only populated when INVOICE_INCLUDE_TRACKING_REF is on.
    tracking_id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "invoiceID": self.invoice_id,
            "userId": self.user_id,
            "bookingID": self.booking_id,
            "plateNumber": self.plate_number,
            "amount": float(self.amount),
            "status": self.status.value,
            "date": self.date,
        }
        if self.tracking_id:
            doc["trackingID"] = self.tracking_id
        return doc


class MaterializationResult(BaseModel):
    track_id: str
    outcome: MaterializationOutcome
    invoice_id: Optional[str] = None


class TrackingWriteEvent(BaseModel):
    # Document-shaped values; None on the side that does not exist (create/delete).
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None


class TriggerResponse(BaseModel):
    ok: bool = True
    track_id: str
    outcome: MaterializationOutcome
    invoice_id: Optional[str] = None
