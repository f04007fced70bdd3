"""Application configuration."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./data/ai_gateway.db"

    # Credential vault (validated at startup by CredentialVault)
    encryption_key: Optional[str] = None
    encryption_salt: str = "salt"

    # Vendor calls
    ai_request_timeout: float = 60.0
    ai_default_provider: str = "openrouter"
    # Overrides the default provider's own default model when set
    ai_default_model: Optional[str] = None
    ai_default_temperature: float = 0.7
    ai_default_max_tokens: int = 1000

    # Sent to OpenRouter for attribution
    app_public_url: str = "http://localhost:8000"
    app_title: str = "Accounting AI Assistant"

    # Application
    app_host: str = "0.0.0.0"
    app_port: int = 8000


settings = Settings()
