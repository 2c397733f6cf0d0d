import os
from decimal import Decimal

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./braider_bookings.db")
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

BOOKING_RATE_LIMIT_ACTION = "create_booking"
BOOKING_RATE_LIMIT_MAX = int(os.getenv("BOOKING_RATE_LIMIT_MAX", "5"))
BOOKING_RATE_LIMIT_WINDOW_MINUTES = int(os.getenv("BOOKING_RATE_LIMIT_WINDOW_MINUTES", "60"))

# Added to the service price when the braider travels to the client.
HOME_SERVICE_FEE = Decimal(os.getenv("HOME_SERVICE_FEE", "0"))

REALTIME_NOTIFY_URL = os.getenv("REALTIME_NOTIFY_URL", "")
REALTIME_NOTIFY_TOKEN = os.getenv("REALTIME_NOTIFY_TOKEN", "")
REALTIME_NOTIFY_TIMEOUT_SECONDS = float(os.getenv("REALTIME_NOTIFY_TIMEOUT_SECONDS", "3"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if BOOKING_RATE_LIMIT_MAX <= 0 or BOOKING_RATE_LIMIT_WINDOW_MINUTES <= 0:
        raise RuntimeError("Booking rate limit settings must be positive integers.")
