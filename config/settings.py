from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    port: int = int(os.getenv("PORT", "3001"))

    database_url: Optional[str] = os.getenv("DATABASE_URL") or None
    database_ssl: bool = _as_bool(
        os.getenv("DATABASE_SSL"), default=os.getenv("APP_ENV", "") == "production"
    )

    admin_username: Optional[str] = os.getenv("ADMIN_USERNAME") or None
    admin_password: Optional[str] = os.getenv("ADMIN_PASSWORD") or None

    # "openrouter" or "gemini"
    llm_provider: str = os.getenv("LLM_PROVIDER", "openrouter")
    openrouter_api_key: Optional[str] = os.getenv("OPENROUTER_API_KEY")
    openrouter_base_url: str = os.getenv(
        "OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"
    )
    openrouter_model: str = os.getenv("OPENROUTER_MODEL_NAME", "google/gemini-pro")
    google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
    top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))

    elevenlabs_api_key: Optional[str] = os.getenv("ELEVENLABS_API_KEY")
    elevenlabs_voice_id: Optional[str] = os.getenv("ELEVENLABS_VOICE_ID")
    elevenlabs_model_id: str = os.getenv("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2")
    elevenlabs_stability: float = float(os.getenv("ELEVENLABS_STABILITY", "0.5"))
    elevenlabs_similarity_boost: float = float(
        os.getenv("ELEVENLABS_SIMILARITY_BOOST", "0.75")
    )
    elevenlabs_base_url: str = os.getenv(
        "ELEVENLABS_BASE_URL", "https://api.elevenlabs.io"
    )

    upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT", "60"))

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_username and self.admin_password)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
