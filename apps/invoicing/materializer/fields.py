from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import InvoiceFields


# Accepted tracking field names per invoice attribute, highest priority first.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "owner_id": ("uid", "UserID"),
    "booking_id": ("BookingID", "bookingID"),
    "plate_number": ("plateNumber",),
}


class MissingFieldsError(ValueError):
    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required tracking fields: {', '.join(self.missing)}")


def resolve_field(data: Mapping[str, Any], names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = data.get(name)
        # Plain truthiness: None, "", 0 and False fall through to the next name; "  " does not.
        if value:
            return value if isinstance(value, str) else str(value)
    return None


def extract_invoice_fields(data: Mapping[str, Any]) -> InvoiceFields:
    """Resolve owner, booking and plate from a tracking document.

    Raises MissingFieldsError naming every accepted field name of each
    attribute that could not be resolved, e.g. ``plate_number (plateNumber)``.
    """
    resolved: Dict[str, str] = {}
    missing: List[str] = []
    for attr, names in FIELD_ALIASES.items():
        value = resolve_field(data, names)
        if value is None:
            missing.append(f"{attr} ({'/'.join(names)})")
            continue
        resolved[attr] = value

    if missing:
        raise MissingFieldsError(missing)
    return InvoiceFields(**resolved)
