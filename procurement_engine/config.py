"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Central configuration for the Procurement Risk Engine."""

    # Storage snapshot
    DATA_PATH: str = "./data/snapshot.json"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = True
    API_CORS_ORIGINS: str = "http://localhost:4200,http://localhost:3000"

    # External risk provider (local | openai | gemini)
    RISK_PROVIDER: str = "local"
    OPENAI_API_KEY: str = ""
    OPENAI_ENDPOINT: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_MAX_TOKENS: int = 2000
    OPENAI_TEMPERATURE: float = 0.3
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemma-3-1b-it"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    PROVIDER_TIMEOUT_SECONDS: float = 30.0
    PROVIDER_MAX_RETRIES: int = 2
    MAX_CONCURRENT_ASSESSMENTS: int = 5

    # Scoring
    AI_SCORE_TOLERANCE: float = 30.0      # max |external - expected| accepted
    PEER_BASELINE_RISK_SCORE: float = 45.0

    # Forecasting
    OBSERVATION_WINDOW_DAYS: int = 180
    SAVINGS_LOT_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.API_CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
