"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings

PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    site_name: str = "StudyHub"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Database (async SQLAlchemy URL)
    database_url: str = ""
    database_echo: bool = False
    database_auto_create: bool = True

    # Auth provider (Supabase Auth REST API)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    auth_cookie_name: str = "sb-access-token"

    # Azure Blob Storage for uploaded images
    azure_storage_account: str = ""
    azure_images_container: str = "images"
    managed_identity_client_id: str = ""
    images_public_base_url: str = ""

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("database_url")
    @classmethod
    def _use_async_driver(cls, value: str) -> str:
        """Point bare Postgres URLs at the asyncpg driver."""
        for prefix in ("postgres://", "postgresql://"):
            if value.startswith(prefix):
                return "postgresql+asyncpg://" + value[len(prefix) :]
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == PRODUCTION

    @property
    def auth_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def storage_configured(self) -> bool:
        return bool(self.azure_storage_account and self.azure_images_container)

    def missing_required(self) -> list[str]:
        """Names of settings the service cannot do real work without."""
        missing = []
        if not self.database_url:
            missing.append("DATABASE_URL")
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_anon_key:
            missing.append("SUPABASE_ANON_KEY")
        if not self.azure_storage_account:
            missing.append("AZURE_STORAGE_ACCOUNT")
        return missing


@lru_cache
def get_settings() -> Settings:
    return Settings()
