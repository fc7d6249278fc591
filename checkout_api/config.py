import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

REQUIRED = ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "DATABASE_URL", "CLIENT_URL")


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str
    stripe_webhook_secret: str
    database_url: str
    client_url: str
    database_password: Optional[str] = None
    default_currency: str = "usd"
    webhook_tolerance: int = 300
    log_level: str = "INFO"
    service_name: str = "checkout-api"

    @classmethod
    def from_env(cls) -> "Settings":
        missing = [name for name in REQUIRED if not os.getenv(name)]
        if missing:
            raise RuntimeError(f"{', '.join(missing)} not set. Check your .env file.")

        return cls(
            stripe_secret_key=os.environ["STRIPE_SECRET_KEY"],
            stripe_webhook_secret=os.environ["STRIPE_WEBHOOK_SECRET"],
            database_url=os.environ["DATABASE_URL"],
            client_url=os.environ["CLIENT_URL"].rstrip("/"),
            database_password=os.getenv("DATABASE_PASSWORD") or None,
            default_currency=os.getenv("DEFAULT_CURRENCY", "usd").lower(),
            webhook_tolerance=int(os.getenv("STRIPE_WEBHOOK_TOLERANCE", "300")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
