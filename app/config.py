import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseModel):
    port: int = 3003
    kafka_servers: List[str] = ["localhost:9092"]
    stripe_secret: str
    stripe_endpoint_secret: str
    stripe_success_url: str
    stripe_cancel_url: str
    log_level: str = "INFO"

    def redacted(self) -> dict:
        """Settings as a dict with the Stripe secrets masked, for startup logs."""
        values = self.model_dump()
        for key in ("stripe_secret", "stripe_endpoint_secret"):
            values[key] = "<redacted>"
        return values


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} is not set. Check your .env file.")
    return value


def load_settings() -> Settings:
    port = int(os.getenv("PORT", "3003"))
    servers = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")

    return Settings(
        port=port,
        kafka_servers=[s.strip() for s in servers.split(",") if s.strip()],
        stripe_secret=_require("STRIPE_SECRET_KEY"),
        stripe_endpoint_secret=_require("STRIPE_WEBHOOK_SECRET"),
        stripe_success_url=os.getenv(
            "STRIPE_SUCCESS_URL", f"http://localhost:{port}/payments/success"
        ),
        stripe_cancel_url=os.getenv(
            "STRIPE_CANCEL_URL", f"http://localhost:{port}/payments/cancel"
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
