from __future__ import annotations

# File: apps/invoicing/main.py
import logging

from fastapi import FastAPI

from .settings import settings
from .scheduler import SchedulerWrapper
from .materializer import get_materializer, init_invoicing_scheduler, router as invoicing_router

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(settings.LOG_LEVEL.upper())
        return
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()

app = FastAPI(title="Tracking Invoices")
scheduler = SchedulerWrapper()


@app.get("/health")
async def health():
    return {"ok": True}


app.include_router(invoicing_router)


@app.on_event("startup")
def startup_events():
    scheduler.start()
    enabled = init_invoicing_scheduler(scheduler, get_materializer())
    logger.info(
        "Invoice reconcile sweep enabled=%s interval_min=%s max_docs=%s",
        enabled,
        settings.RECONCILE_INTERVAL_MINUTES,
        settings.RECONCILE_MAX_DOCS,
    )


@app.on_event("shutdown")
def shutdown_events():
    scheduler.shutdown()
