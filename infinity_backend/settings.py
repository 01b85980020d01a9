"""
settings.py — Runtime settings for the Dota Infinity backend.

Everything here comes from environment variables (optionally from a .env file
in the project root), so it can differ per deployment:

    DATABASE_URL              — SQLAlchemy URL (default: local SQLite file)
    API_KEY                   — shared secret expected in the x-api-key header
    HOST / PORT               — where uvicorn listens (default: 0.0.0.0:3000)
    REQUEST_TIMEOUT_SECONDS   — upper bound for one request's store work
    LOG_LEVEL                 — root logging level (default: INFO)

Gameplay constants that don't vary between environments live in config.py.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).parent.parent

# Values already present in the environment win over the .env file
load_dotenv(_PROJECT_ROOT / ".env")


DATABASE_URL: str = os.environ.get(
    "DATABASE_URL",
    "sqlite:///./infinity_backend.db",
)

API_KEY: str | None = os.environ.get("API_KEY")

HOST: str = os.environ.get("HOST", "0.0.0.0")
PORT: int = int(os.environ.get("PORT", "3000"))

REQUEST_TIMEOUT_SECONDS: float = float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "10"))

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()
