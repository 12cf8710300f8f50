import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

# Override=True so changes in backend/.env take effect on process reload.
#
# For automated tests (SQLite), we need to prevent backend/.env from overriding the
# test DATABASE_URL. Set DISABLE_DOTENV=1 to skip loading .env.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)

_BACKEND_DIR = Path(__file__).resolve().parent.parent

DEV_SECRET = "dev_secret_change_me"


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


def _env_list(name: str) -> list[str]:
    return [item.strip() for item in (os.getenv(name) or "").split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str | None
    app_env: str = "development"
    allowed_origins: list[str] = field(default_factory=list)
    port: int = 4000
    upload_dir: str = (_BACKEND_DIR / "uploads").as_posix()
    # Empty means "relay in-process to the same app".
    upload_relay_base_url: str = ""
    internal_upload_token: str | None = None
    admin_email: str = "admin@demo.com"
    admin_password: str = "admin123"
    session_ttl_hours: int = 8
    max_photo_bytes: int = 5 * 1024 * 1024  # 5MB
    max_cv_bytes: int = 5 * 1024 * 1024  # 5MB
    relay_timeout_s: float = 10.0
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def load_settings() -> Settings:
    app_env = (os.getenv("APP_ENV") or "development").strip().lower()

    # Default to a local SQLite DB for dev so the backend can start out-of-the-box.
    raw_database_url = (os.getenv("DATABASE_URL") or "").strip()
    database_url = raw_database_url or f"sqlite:///{(_BACKEND_DIR / 'dev.db').as_posix()}"

    # NOTE: keep a default for local dev so the server can boot even if JWT_SECRET isn't set.
    # Production without a secret boots, but every authenticated call fails with 500.
    jwt_secret = (os.getenv("JWT_SECRET") or "").strip() or None
    if jwt_secret is None and app_env != "production":
        jwt_secret = DEV_SECRET

    return Settings(
        database_url=database_url,
        jwt_secret=jwt_secret,
        app_env=app_env,
        allowed_origins=_env_list("ALLOWED_ORIGINS"),
        port=_env_int("PORT", 4000),
        upload_dir=os.getenv("UPLOAD_DIR") or (_BACKEND_DIR / "uploads").as_posix(),
        upload_relay_base_url=(os.getenv("UPLOAD_RELAY_BASE_URL") or "").strip().rstrip("/"),
        internal_upload_token=(os.getenv("INTERNAL_UPLOAD_TOKEN") or "").strip() or None,
        admin_email=(os.getenv("ADMIN_EMAIL") or "admin@demo.com").strip().lower(),
        admin_password=os.getenv("ADMIN_PASSWORD") or "admin123",
        session_ttl_hours=_env_int("SESSION_TTL_HOURS", 8),
        max_photo_bytes=_env_int("MAX_PHOTO_BYTES", 5 * 1024 * 1024),
        max_cv_bytes=_env_int("MAX_CV_BYTES", 5 * 1024 * 1024),
        relay_timeout_s=float(os.getenv("RELAY_TIMEOUT_S", "10") or "10"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )
