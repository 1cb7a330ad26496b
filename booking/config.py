"""Application settings loaded from the environment."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///booking.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # Default lease length for a slot hold; tenants may override it.
    HOLD_TTL_SECONDS = int(os.getenv("HOLD_TTL_SECONDS", "600"))
    # Active expiry runs well inside the TTL so abandoned holds come back quickly.
    SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "30"))
    SWEEPER_ENABLED = _flag("SWEEPER_ENABLED", "1")

    MAX_ALTERNATIVES = int(os.getenv("MAX_ALTERNATIVES", "6"))
    # Grid used when a tenant has not configured its own slot interval.
    DEFAULT_SLOT_MINUTES = int(os.getenv("DEFAULT_SLOT_MINUTES", "30"))

    # Callable returning monotonic seconds; None means time.monotonic.
    BOOKING_CLOCK = None


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SWEEPER_ENABLED = False
