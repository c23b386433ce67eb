from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Header
from google.api_core import exceptions as gexc

from ..database import get_db
from ..settings import settings
from .materializer import InvoiceMaterializer
from .models import TrackingWriteEvent, TriggerResponse

logger = logging.getLogger(__name__)


router = APIRouter(prefix="", tags=["Invoicing"])


@lru_cache(maxsize=1)
def get_materializer() -> InvoiceMaterializer:
    return InvoiceMaterializer(get_db())


@router.post("/triggers/tracking/{track_id}", response_model=TriggerResponse)
def tracking_written(
    track_id: str,
    event: TrackingWriteEvent,
    trigger_secret: str | None = Header(default=None, alias="X-Trigger-Secret"),
    materializer: InvoiceMaterializer = Depends(get_materializer),
):
    if settings.TRIGGER_WEBHOOK_SECRET:
        if (trigger_secret or "") != settings.TRIGGER_WEBHOOK_SECRET:
            raise HTTPException(status_code=401, detail="Invalid trigger secret")

    # Domain outcomes (including missing fields) answer 200 so the platform does not redeliver them.
    try:
        result = materializer.on_tracking_write(event.before, event.after, track_id)
    except gexc.GoogleAPICallError as e:
        logger.warning("Store error materializing invoice for tracking %s: %s", track_id, e, extra={"track_id": track_id})
        raise HTTPException(status_code=503, detail="Store unavailable; retry delivery")

    return TriggerResponse(track_id=track_id, outcome=result.outcome, invoice_id=result.invoice_id)
