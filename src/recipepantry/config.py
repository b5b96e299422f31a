"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost/recipepantry"

    # Gemini feasibility scorer
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    ai_timeout: float = 60.0  # seconds per scoring request
    ai_max_retries: int = 2

    # OCR
    ocr_timeout: float = 45.0
    tesseract_cmd: str = ""  # Empty means use tesseract from PATH

    # Recipe analysis
    analysis_max_concurrency: int = 4
    upload_path: str = "./uploads/temp"
    max_upload_size: int = 10 * 1024 * 1024  # 10MB

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:8081,http://localhost:3000"

    @property
    def gemini_url(self) -> str:
        """Get the full generateContent URL for the configured model."""
        return f"{self.gemini_base_url}/models/{self.gemini_model}:generateContent"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
