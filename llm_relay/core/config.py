from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # LLM (OpenAI 相容 API，預設走 Groq)
    OPENAI_API_KEY: str
    OPENAI_BASE_URL: str = "https://api.groq.com/openai/v1"
    OPENAI_MODEL: str = "gemma-7b-it"
    OPENAI_TIMEOUT_SECONDS: float | None = None  # None = 用 SDK 預設

    # Cache
    CACHE_TTL: int = 7 * 24 * 60 * 60  # 一週
    CACHE_SWEEP_INTERVAL: int = 10 * 60  # 每 10 分鐘清一次過期資料

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("OPENAI_API_KEY")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("OPENAI_API_KEY must not be empty")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
