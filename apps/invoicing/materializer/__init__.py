from .materializer import InvoiceMaterializer
from .router import get_materializer, router
from .scheduler import init_invoicing_scheduler

__all__ = ["InvoiceMaterializer", "get_materializer", "init_invoicing_scheduler", "router"]
