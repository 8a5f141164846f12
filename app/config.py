"""
Application configuration using Pydantic settings.
Loads from environment variables and .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra fields from .env
    )

    # Application
    APP_NAME: str = "Enrichment Setup"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # API Keys
    OPENAI_API_KEY: str = ""
    FIRECRAWL_API_KEY: str = ""

    # LLM Service Configuration
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_MAX_RETRIES: int = 3
    LLM_TIMEOUT_SECONDS: int = 30
    LLM_TEMPERATURE: float = 0.3
    LLM_MAX_TOKENS: int = 800

    # Field generation (consumed by setup sessions)
    FIELD_GENERATION_URL: str = "http://localhost:8001/api/v1/generate-fields"
    FIELD_GENERATION_TIMEOUT_SECONDS: float = 30.0

    # Limits
    MAX_FILE_SIZE_MB: int = 10
    MAX_SESSIONS: int = 1000

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()
