"""
Ledger configuration, read from the environment.

A .env file in the working directory is loaded first, so
local overrides never need to live in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Settings for the ledger service and its database."""

    APP_NAME: str = "Ledger Core"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = _flag("DEBUG")

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Any SQLAlchemy URL; amounts are stored exactly on each backend
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./ledger.db")
    DATABASE_ECHO: bool = _flag("DATABASE_ECHO")

    LOG_LEVEL: str = os.getenv(
        "LOG_LEVEL", "DEBUG" if DEBUG else "INFO"
    ).upper()

    # Upper bound on GET /entries page size
    MAX_PAGE_SIZE: int = int(os.getenv("LEDGER_MAX_PAGE_SIZE", "500"))


@lru_cache()
def get_settings() -> Settings:
    return Settings()
