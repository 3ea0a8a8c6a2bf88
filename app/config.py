"""
Configuration management using Pydantic settings.
Loads environment variables for the bot signing secret, the iiko POS API and local storage.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Chat platform bot token, used to verify mini-app initData
    bot_token: str = ""

    # iiko API Configuration (all optional; missing values mean offline mode)
    iiko_api_base: str = ""
    iiko_api_login: str = ""
    iiko_org_id: str = ""
    iiko_token_ttl_seconds: int = 540  # iiko tokens live 10 minutes server-side
    iiko_request_timeout_seconds: float = 30.0

    # Price list selection (first price list when both are empty)
    iiko_price_list_id: Optional[str] = None
    iiko_price_list_name: Optional[str] = None

    # Storage
    db_path: str = ".db.json"

    # Application Configuration
    app_environment: str = "development"
    log_level: str = "INFO"
    port: int = 3000
    orders_page_size: int = 20

    # Order relay worker
    relay_queue_size: int = 100
    relay_worker_count: int = 2

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def iiko_configured(self) -> bool:
        return bool(self.iiko_api_base and self.iiko_api_login)


# Global settings instance
settings = Settings()
