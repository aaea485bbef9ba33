import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Slot grid used when a caller does not pass its own granularity.
SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "30"))
REQUIRE_FULL_SLOT = _get_bool(os.getenv("REQUIRE_FULL_SLOT"), default=False)

DEFAULT_SHIFT_START = os.getenv("DEFAULT_SHIFT_START", "09:00")
DEFAULT_SHIFT_END = os.getenv("DEFAULT_SHIFT_END", "17:00")
DEFAULT_WORKING_DAYS = _get_list(
    os.getenv("DEFAULT_WORKING_DAYS"),
    ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_GRANULARITY_MINUTES <= 0:
        raise RuntimeError("SLOT_GRANULARITY_MINUTES must be a positive number of minutes.")
