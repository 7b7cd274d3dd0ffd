"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ESTATE_LISTINGS_",
        extra="ignore",
    )

    # Database
    database_path: str = Field(default="data/listings.db")

    # Sessions (signed cookie, admin login)
    session_secret: SecretStr = Field(
        default=SecretStr("change-me"),
        description="Secret used to sign the session cookie",
    )
    session_max_age_seconds: int = Field(
        default=60 * 60 * 24 * 7,
        ge=60,
        description="Lifetime of an admin session cookie",
    )
    session_https_only: bool = Field(
        default=False,
        description="Only send the session cookie over HTTPS",
    )

    # Cloudinary (remote image hosting)
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_api_key: str = Field(default="", description="Cloudinary API key")
    cloudinary_api_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Cloudinary API secret used to sign requests",
    )
    cloudinary_folder: str = Field(
        default="listings",
        description="Folder that signed uploads are placed in",
    )
    cloudinary_timeout_seconds: float = Field(default=10.0, gt=0)

    # Listings
    slug_max_attempts: int = Field(
        default=1000,
        ge=1,
        description="Maximum slug collision probes before giving up",
    )
    listings_per_page: int = Field(default=20, ge=1, le=100)
    featured_limit: int = Field(default=6, ge=1, le=50)

    # Web server
    site_base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL, used for sitemap links",
    )
    web_port: int = Field(default=8000, description="Web server port")
    web_host: str = Field(default="0.0.0.0", description="Web server host")

    @property
    def data_dir(self) -> str:
        """Return the directory containing the database."""
        return str(Path(self.database_path).parent)

    @property
    def cloudinary_configured(self) -> bool:
        """Whether all Cloudinary credentials are present."""
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret.get_secret_value()
        )

    def get_base_url(self) -> str:
        """Site base URL without a trailing slash."""
        return self.site_base_url.rstrip("/")
