from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


DEFAULT_EXPERT_SHEET_ID = "1v-As-SdoND3CYUm59o_LCMICpHOvRv98bYGh8JAHvG0"


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
    top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))
    max_output_tokens: int = int(os.getenv("MODEL_MAX_TOKENS", "2000"))

    expert_sheet_id: str = os.getenv("EXPERT_SHEET_ID", DEFAULT_EXPERT_SHEET_ID)
    expert_cache_seconds: float = float(os.getenv("EXPERT_CACHE_SECONDS", "300"))
    expert_fetch_timeout: float = float(os.getenv("EXPERT_FETCH_TIMEOUT", "10"))

    @property
    def expert_csv_url(self) -> str:
        return (
            f"https://docs.google.com/spreadsheets/d/{self.expert_sheet_id}"
            "/export?format=csv"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
