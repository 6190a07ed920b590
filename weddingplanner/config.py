# weddingplanner/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List

from pydantic import BaseModel

# Load .env locally (safe in prod too)
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    pass

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() not in {"", "0", "false", "no"}


def _split_csv(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'weddingplanner.db'}")
    api_prefix: str = os.getenv("API_PREFIX", "/api").rstrip("/")

    upload_dir: Path = Path(os.getenv("UPLOAD_DIR", str(PROJECT_ROOT / "uploads")))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    cors_origins: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))
    allow_admin_signup: bool = _flag("ALLOW_ADMIN_SIGNUP")

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
