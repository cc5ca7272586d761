"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Remote API
    ZENDESK_URL_TEMPLATE: str = "https://{subdomain}.zendesk.com"
    REQUEST_TIMEOUT: float = 30.0

    # Throttling (HTTP 503). None means retry forever.
    THROTTLE_WAIT_SECONDS: float = 30.0
    MAX_THROTTLE_RETRIES: Optional[int] = None

    # Archive
    OUTPUT_DIR: str = "."
    BUFFER_ENTITIES: bool = False

    # Body text extraction
    TEXT_EXTRACTOR: str = "markdownify"
    HTML2TEXT_COMMAND: str = "html2text"

    # Environment
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
