from __future__ import annotations

from ..scheduler import SchedulerWrapper
from ..settings import settings
from .materializer import InvoiceMaterializer


def init_invoicing_scheduler(scheduler: SchedulerWrapper, materializer: InvoiceMaterializer) -> bool:
    minutes = int(settings.RECONCILE_INTERVAL_MINUTES)
    if minutes <= 0:
        return False
    scheduler.add_interval_job(materializer.reconcile, minutes=minutes, id="tracking_invoice_reconcile")
    return True
