from pydantic_settings import BaseSettings
from pydantic import Field
import os
from pathlib import Path
import dotenv

# Always load apps/.env (relative to this file), regardless of where the process is started.
_APPS_DIR = Path(__file__).resolve().parents[1]
dotenv.load_dotenv(dotenv_path=_APPS_DIR / ".env", override=False)


class Settings(BaseSettings):
    APP_HOST: str = Field(default=os.getenv("APP_HOST", "0.0.0.0"))
    APP_PORT: int = Field(default=int(os.getenv("APP_PORT", "8000")))
    LOG_LEVEL: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    # Firebase
    # If the key file is missing, application-default credentials are used instead.
    FIREBASE_CREDENTIALS_PATH: str = Field(
        default=os.getenv("FIREBASE_CREDENTIALS_PATH", str(_APPS_DIR / "serviceAccountKey.json"))
    )
    FIREBASE_PROJECT_ID: str = Field(default=os.getenv("FIREBASE_PROJECT_ID", ""))

    # Collections
    TRACKING_COLLECTION: str = Field(default=os.getenv("TRACKING_COLLECTION", "Tracking"))
    INVOICES_COLLECTION: str = Field(default=os.getenv("INVOICES_COLLECTION", "invoices"))

    # Invoice materialization
    # Compared against the lower-cased tracking status.
    INVOICE_READY_STATUS: str = Field(default=os.getenv("INVOICE_READY_STATUS", "ready for collection"))
    INVOICE_FIXED_AMOUNT: float = Field(default=float(os.getenv("INVOICE_FIXED_AMOUNT", "120.0")))
    # If true, invoices also carry trackingID pointing back at the tracking document.
    INVOICE_INCLUDE_TRACKING_REF: bool = Field(
        default=(os.getenv("INVOICE_INCLUDE_TRACKING_REF", "false").strip().lower() == "true")
    )

    # Trigger delivery
    # If set, the trigger endpoint requires header: X-Trigger-Secret
    TRIGGER_WEBHOOK_SECRET: str = Field(default=os.getenv("TRIGGER_WEBHOOK_SECRET", ""))

    # Reconciliation sweep for deliveries the platform gave up on. 0 disables it.
    RECONCILE_INTERVAL_MINUTES: int = Field(default=int(os.getenv("RECONCILE_INTERVAL_MINUTES", "30")))
    RECONCILE_MAX_DOCS: int = Field(default=int(os.getenv("RECONCILE_MAX_DOCS", "250")))
    # Upper bound on tracking documents read per sweep.
    RECONCILE_SCAN_LIMIT: int = Field(default=int(os.getenv("RECONCILE_SCAN_LIMIT", "5000")))

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
