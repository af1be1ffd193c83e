"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"

    # Image uploads
    upload_base_url: str = "https://api.cloudinary.com/v1_1/catalog-dev"
    upload_preset: str = "catalog-products"
    upload_folder: str = "products"
    upload_timeout_seconds: float = 30.0

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
