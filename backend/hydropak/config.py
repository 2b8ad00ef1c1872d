# backend/hydropak/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


IS_PRODUCTION = os.environ.get("FLASK_ENV", os.environ.get("NODE_ENV", "development")) == "production"


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/hydropak.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///hydropak.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Bearer tokens
    JWT_SECRET = os.environ.get("JWT_SECRET", "change_me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", "7"))

    # Dev bypass: on by default outside production, or forced with ALLOW_DEV_AUTH=true
    ALLOW_DEV_AUTH = (not IS_PRODUCTION) or _env_flag("ALLOW_DEV_AUTH")
    IS_PRODUCTION = IS_PRODUCTION

    SEED_ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "admin@hydropak.pk").strip().lower()
    SEED_ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "Admin@123")

    # Invoice PDF storage: S3 when all four are set, local disk otherwise
    S3_ACCESS_KEY_ID = os.environ.get("S3_ACCESS_KEY_ID", "")
    S3_SECRET_ACCESS_KEY = os.environ.get("S3_SECRET_ACCESS_KEY", "")
    S3_REGION = os.environ.get("S3_REGION", "ap-south-1")
    S3_BUCKET = os.environ.get("S3_BUCKET", "")
    S3_SIGNED_URL_TTL = int(os.environ.get("S3_SIGNED_URL_TTL", "600"))
    INVOICE_STORAGE_DIR = os.environ.get(
        "INVOICE_STORAGE_DIR",
        os.path.join(os.getcwd(), "storage", "invoices"),
    )

    # Optional system Chromium for Playwright (e.g. slim containers)
    CHROMIUM_EXECUTABLE_PATH = os.environ.get("CHROMIUM_EXECUTABLE_PATH") or None

    COMPANY_NAME = os.environ.get("COMPANY_NAME", "HydroPak Pvt. Ltd.")
    COMPANY_ADDRESS = os.environ.get("COMPANY_ADDRESS", "Lahore, Pakistan")
    COMPANY_PHONE = os.environ.get("COMPANY_PHONE", "+92 300 0000000")

    FRONTEND_ORIGINS = _env_list(
        "FRONTEND_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    )
