"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Merchant backend
    backend_api_base: str = "http://localhost:3000"

    # Service
    service_name: str = "merchant-pos"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0

    # PIN authorization
    max_pin_attempts: int = 7
    pin_length: int = 4

    # Transaction history
    history_page_size: int = 20


settings = Settings()
