# backend/stockpile/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockpile.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Key accepted on the public endpoints (/seed, /health) in place of a user session
    PUBLIC_API_KEY = os.environ.get("STOCKPILE_PUBLIC_KEY", "stockpile-public-anon-key")

    # Password given to the demo identities provisioned by the seed
    SEED_DEFAULT_PASSWORD = os.environ.get("SEED_DEFAULT_PASSWORD", "12345678")

    # Batches under this quantity count as low stock on the dashboard
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    # Comma separated list, "*" allows any origin
    CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "*")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
