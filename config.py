# ================================
# config.py - Environment-driven settings
# ================================
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ---------------- Load environment variables ----------------
_dotenv_path = os.path.join(BASE_DIR, ".env")
if os.path.exists(_dotenv_path):
    load_dotenv(_dotenv_path, override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def load_users(environ: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Staff accounts from USERX=username:hashed_password entries."""
    environ = os.environ if environ is None else environ
    users: Dict[str, str] = {}
    for key, value in environ.items():
        if not key.startswith("USER") or key in ("USERNAME", "USERDOMAIN", "USERDOMAIN_ROAMINGPROFILE", "USERPROFILE"):
            continue
        try:
            uname, hashed_pwd = value.split(":", 1)
        except ValueError:
            logging.getLogger(__name__).warning(
                "Invalid user format in %s (expected USERX=username:hashed_password)", key
            )
            continue
        if uname.strip():
            users[uname.strip()] = hashed_pwd.strip()
    return users


def configure_logging() -> None:
    if getattr(configure_logging, "_configured", False):
        return

    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    log_file = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "app.log"))
    max_bytes = _env_int("LOG_MAX_BYTES", 5000000)
    backup_count = _env_int("LOG_BACKUP_COUNT", 3)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    # Avoid duplicate handlers under WSGI reloads.
    logger.handlers = []
    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)

    configure_logging._configured = True


class Config:
    APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
    SECRET_KEY = os.getenv("SECRET_KEY")
    TESTING = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", default=APP_ENV in {"production", "prod"})
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = _env_int("PERMANENT_SESSION_LIFETIME", 7800)

    JWT_SECRET = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY")
    JWT_EXPIRES_SECONDS = _env_int("JWT_EXPIRES_SECONDS", 8 * 60 * 60)

    SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").strip()
    # SUPABASE_KEY kept for existing deployments; the service role key is the explicit alternative.
    SUPABASE_KEY = (os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()

    DATABASE_FILE = os.getenv("DATABASE_FILE", os.path.join(BASE_DIR, "after_sales.db"))

    REALTIME_ENABLED = _env_bool("REALTIME_ENABLED", default=True)
    REALTIME_CHANNEL = os.getenv("REALTIME_CHANNEL", "orders-completed-changes")
    REALTIME_SUBSCRIBE_TIMEOUT = _env_int("REALTIME_SUBSCRIBE_TIMEOUT", 15)
    POLL_INTERVAL_SECONDS = _env_int("POLL_INTERVAL_SECONDS", 5)
    AFTER_SALES_AUTOSTART = _env_bool("AFTER_SALES_AUTOSTART", default=True)

    CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "")

    CURRENCY_CODE = os.getenv("CURRENCY_CODE", "KES")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET = "test-jwt-secret"
    SESSION_COOKIE_SECURE = False
    SUPABASE_URL = ""
    SUPABASE_KEY = ""
    REALTIME_ENABLED = False
    AFTER_SALES_AUTOSTART = False
