import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

MIN_HISTORY_COUNT = 1
MAX_HISTORY_COUNT = 50


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str
    log_path: str
    max_attempts: int = 1000
    max_history_count: int = 5
    allow_history_assignment_view: bool = False


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} should be a whole number, got {raw!r}.") from None


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} should be true or false, got {raw!r}.")


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_path = os.getenv("LOG_PATH", "logs/secret_santa.log")
    max_attempts = _int_env("MAX_ATTEMPTS", 1000)
    max_history_count = _int_env("MAX_HISTORY_COUNT", 5)
    allow_history_assignment_view = _bool_env("ALLOW_HISTORY_ASSIGNMENT_VIEW", False)

    if not database_url:
        raise ValueError("DATABASE_URL is required. Set it in the environment or .env file.")
    if max_attempts < 1:
        raise ValueError("MAX_ATTEMPTS must be at least 1.")
    if not MIN_HISTORY_COUNT <= max_history_count <= MAX_HISTORY_COUNT:
        raise ValueError(
            f"MAX_HISTORY_COUNT must be between {MIN_HISTORY_COUNT} and {MAX_HISTORY_COUNT}."
        )

    return Settings(
        database_url=database_url,
        log_level=log_level,
        log_path=log_path,
        max_attempts=max_attempts,
        max_history_count=max_history_count,
        allow_history_assignment_view=allow_history_assignment_view,
    )
