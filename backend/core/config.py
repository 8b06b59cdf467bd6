import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "production")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "")
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(24 * 60)))

FRONTEND_URL = os.getenv("FRONTEND_URL", "").rstrip("/")
CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), default=["*"])
ALLOW_ADMIN_REGISTRATION = _get_bool(os.getenv("ALLOW_ADMIN_REGISTRATION"), default=False)

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))

SERVICE_NAME = "Smart Attendance Backend"
SERVICE_VERSION = "1.0.0"


def is_development() -> bool:
    return DEBUG or APP_ENV.lower() == "development"


def build_qr_url(lecture_id: int) -> str:
    return f"{FRONTEND_URL}/attend?lectureId={lecture_id}"


def validate_runtime_config() -> None:
    missing = [
        name
        for name, value in (("DATABASE_URL", DATABASE_URL), ("JWT_SECRET_KEY", JWT_SECRET_KEY))
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}.")
