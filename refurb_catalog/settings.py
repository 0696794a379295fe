"""Application settings via Pydantic Settings."""

from functools import lru_cache
import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Refurb Catalog API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("CORS_ORIGINS", "ALLOWED_ORIGINS"),
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v: object) -> list[str]:
        """
        Accept either:
        - JSON array string: '["https://a.com","http://localhost:3000"]'
        - Comma-separated string: "https://a.com,http://localhost:3000"
        - Already-parsed list[str]
        """
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except json.JSONDecodeError:
                    parsed = s.split(",")
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
                return [str(parsed).strip()]
            return [part.strip() for part in s.split(",") if part.strip()]
        return [str(v).strip()] if str(v).strip() else []

    # Uploads
    max_upload_mb: int = Field(
        default=10,
        validation_alias=AliasChoices("MAX_UPLOAD_MB"),
        ge=1,
        le=100,
    )

    # Shopify (request body values take precedence)
    shopify_store_url: str = Field(
        default="",
        validation_alias=AliasChoices("SHOPIFY_STORE_URL", "SHOPIFY_STORE"),
    )
    shopify_access_token: str = Field(
        default="",
        validation_alias=AliasChoices("SHOPIFY_ACCESS_TOKEN", "SHOPIFY_API_TOKEN"),
    )
    shopify_api_version: str = Field(
        default="2023-10",
        validation_alias=AliasChoices("SHOPIFY_API_VERSION"),
    )
    shopify_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("SHOPIFY_TIMEOUT_SECONDS"),
        gt=0,
    )
    shopify_products_limit: int = Field(
        default=250,
        validation_alias=AliasChoices("SHOPIFY_PRODUCTS_LIMIT"),
        ge=1,
        le=250,
        description="Page size when loading existing products (Shopify max is 250)",
    )
    sync_delay_seconds: float = Field(
        default=0.2,
        validation_alias=AliasChoices("SYNC_DELAY_SECONDS"),
        ge=0.0,
        le=10.0,
        description="Fixed pause between product groups to stay under the API rate limit",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
