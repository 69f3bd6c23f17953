import os
from functools import lru_cache

from pydantic import BaseModel


class Settings(BaseModel):
    app_title: str = "Loan Calculator"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Read settings from LOAN_APP_* environment variables once per process."""
    return Settings(
        app_title=os.environ.get("LOAN_APP_TITLE", "Loan Calculator"),
        log_level=os.environ.get("LOAN_APP_LOG_LEVEL", "INFO").upper(),
    )
