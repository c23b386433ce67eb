from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as gexc

from ..settings import Settings, settings as default_settings
from .fields import MissingFieldsError, extract_invoice_fields
from .models import (
    InvoiceFields,
    InvoiceRecord,
    InvoiceStatus,
    MaterializationOutcome,
    MaterializationResult,
    TrackingInvoiceStatus,
)
from .state import has_invoice, is_ready_for_invoicing

logger = logging.getLogger(__name__)


class InvoiceMaterializer:
    """Create exactly one invoice per tracking document once it is ready for collection.

    Deliveries may be duplicated, reordered or concurrent. The snapshot check
    on ``invoiceID`` only saves a transaction on the common redelivery case;
    the check that gates creation is repeated inside a Firestore transaction
    on the tracking document, so only one writer can observe it unset.

    Store errors propagate to the caller, which owns retry policy.
    """

    def __init__(self, db, *, config: Settings | None = None):
        self._db = db
        self._config = config or default_settings

    def _tracking_ref(self, record_id: str):
        return self._db.collection(self._config.TRACKING_COLLECTION).document(record_id)

    def on_tracking_write(
        self,
        before: Optional[Mapping[str, Any]],
        after: Optional[Mapping[str, Any]],
        record_id: str,
    ) -> MaterializationResult:
        """React to one write of ``Tracking/{record_id}``.

        ``before`` is accepted to match the trigger's before/after contract;
        only its status is read, for the creation log line.
        """
        if after is None:
            logger.debug("Tracking %s deleted; skipping", record_id)
            return MaterializationResult(track_id=record_id, outcome=MaterializationOutcome.DELETED)

        if not is_ready_for_invoicing(after, self._config.INVOICE_READY_STATUS):
            return MaterializationResult(track_id=record_id, outcome=MaterializationOutcome.NOT_READY)

        if has_invoice(after):
            return MaterializationResult(
                track_id=record_id,
                outcome=MaterializationOutcome.ALREADY_INVOICED,
                invoice_id=str(after.get("invoiceID")),
            )

        try:
            fields = extract_invoice_fields(after)
        except MissingFieldsError as e:
            logger.warning(
                "Missing required fields for tracking %s: %s",
                record_id,
                ", ".join(e.missing),
                extra={"track_id": record_id, "missing": e.missing},
            )
            return MaterializationResult(track_id=record_id, outcome=MaterializationOutcome.MISSING_FIELDS)

        previous_status = (before or {}).get("status")
        outcome, invoice_id = self._create_invoice(record_id, fields)

        if outcome == MaterializationOutcome.CREATED:
            logger.info(
                "Invoice %s created for tracking %s",
                invoice_id,
                record_id,
                extra={"track_id": record_id, "invoice_id": invoice_id, "previous_status": previous_status},
            )
        elif outcome == MaterializationOutcome.ALREADY_INVOICED:
            logger.info(
                "Tracking %s already linked to invoice %s; no writes",
                record_id,
                invoice_id,
                extra={"track_id": record_id, "invoice_id": invoice_id},
            )
        else:
            logger.info("Tracking %s no longer exists; no writes", record_id, extra={"track_id": record_id})

        return MaterializationResult(track_id=record_id, outcome=outcome, invoice_id=invoice_id)

    def _create_invoice(self, record_id: str, fields: InvoiceFields) -> Tuple[MaterializationOutcome, Optional[str]]:
        tracking_ref = self._tracking_ref(record_id)
        invoices_col = self._db.collection(self._config.INVOICES_COLLECTION)
        include_tracking_ref = bool(self._config.INVOICE_INCLUDE_TRACKING_REF)
        amount = float(self._config.INVOICE_FIXED_AMOUNT)

        @firestore.transactional
        def txn_create(txn: firestore.Transaction) -> Tuple[MaterializationOutcome, Optional[str]]:
            snap = tracking_ref.get(transaction=txn)
            if not snap.exists:
                return MaterializationOutcome.RECORD_GONE, None

            current = snap.to_dict() or {}
            # Authoritative re-check; the trigger snapshot may be stale.
            if has_invoice(current):
                return MaterializationOutcome.ALREADY_INVOICED, str(current.get("invoiceID"))

            invoice_ref = invoices_col.document()  # auto-id
            record = InvoiceRecord(
                invoice_id=invoice_ref.id,
                user_id=fields.owner_id,
                booking_id=fields.booking_id,
                plate_number=fields.plate_number,
                amount=amount,
                status=InvoiceStatus.PENDING,
                date=firestore.SERVER_TIMESTAMP,
                tracking_id=(record_id if include_tracking_ref else None),
            )
            txn.set(invoice_ref, record.to_document())
            txn.update(
                tracking_ref,
                {
                    "invoiceID": invoice_ref.id,
                    "invoiceStatus": TrackingInvoiceStatus.GENERATED.value,
                    "invoiceCreatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return MaterializationOutcome.CREATED, invoice_ref.id

        txn = self._db.transaction()
        try:
            return txn_create(txn)
        except ValueError as e:
            # Exhausted commit retries surface as ValueError chained from Aborted.
            if isinstance(e.__cause__, gexc.GoogleAPICallError):
                raise gexc.Aborted(str(e)) from e
            raise

    def reconcile(self, *, max_docs: int | None = None) -> int:
        """Re-run materialization for ready tracking documents that still lack an invoice.

        Covers deliveries the platform dropped after exhausting its retries.
        Status matching is case-insensitive, so candidates are filtered in
        Python rather than by query. At most ``RECONCILE_SCAN_LIMIT`` documents
        are read per sweep and at most ``max_docs`` of them are materialized.
        Records missing required fields are skipped without counting, since
        only a corrective write can fix them. Returns the number of invoices
        created.
        """
        limit = int(max_docs if max_docs is not None else self._config.RECONCILE_MAX_DOCS)
        col = self._db.collection(self._config.TRACKING_COLLECTION)

        processed = 0
        skipped = 0
        created = 0
        for snap in col.limit(int(self._config.RECONCILE_SCAN_LIMIT)).stream():
            if processed >= limit:
                break
            data: Dict[str, Any] = snap.to_dict() or {}
            if not is_ready_for_invoicing(data, self._config.INVOICE_READY_STATUS) or has_invoice(data):
                continue
            try:
                extract_invoice_fields(data)
            except MissingFieldsError:
                skipped += 1
                continue

            processed += 1
            try:
                result = self.on_tracking_write(None, data, snap.id)
            except gexc.GoogleAPICallError:
                # Next sweep picks it up again.
                logger.exception("Reconcile failed for tracking %s", snap.id, extra={"track_id": snap.id})
                continue
            if result.outcome == MaterializationOutcome.CREATED:
                created += 1

        if processed or skipped:
            logger.info(
                "Reconcile examined %d ready tracking records, created %d invoices, skipped %d with missing fields",
                processed,
                created,
                skipped,
            )
        return created
