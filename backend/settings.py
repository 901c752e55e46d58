import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BACKEND_ROOT = Path(__file__).resolve().parent


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


class Settings:
    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL", f"sqlite:///{BACKEND_ROOT / 'app.db'}"
        )
        self.SQL_ECHO: bool = _as_bool(os.getenv("SQL_ECHO"), False)
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self.SEARCH_MIN_QUERY_LENGTH: int = _as_int(os.getenv("SEARCH_MIN_QUERY_LENGTH"), 2)
        self.SEARCH_DEFAULT_LIMIT: int = _as_int(os.getenv("SEARCH_DEFAULT_LIMIT"), 10)
        self.SEARCH_MAX_LIMIT: int = _as_int(os.getenv("SEARCH_MAX_LIMIT"), 100)
        # Seconds; 0 disables the Cache-Control header on search responses
        self.SEARCH_CACHE_MAX_AGE: int = _as_int(os.getenv("SEARCH_CACHE_MAX_AGE"), 300)

        self.SCRAPE_CACHE_SIZE: int = _as_int(os.getenv("SCRAPE_CACHE_SIZE"), 100)
        self.SCRAPE_CACHE_POLICY: str = os.getenv("SCRAPE_CACHE_POLICY", "fifo").lower()


settings = Settings()
