"""Configuration settings for the FastAPI application."""

from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings with Pydantic validation."""

    # Document store settings
    mongo_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string"
    )

    mongo_db_name: str = Field(
        default="tournest",
        description="MongoDB database name"
    )

    # Environment settings
    environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Application log level"
    )

    otlp_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP collector endpoint for traces and metrics"
    )

    # Security settings
    bearer_token_secret: str = Field(
        default="your-secret-key-here",
        description="Secret key for bearer token validation"
    )

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:8001"],
        description="Allowed CORS origins"
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")

    port: int = Field(default=8000, description="Server port")

    # Cloud image storage
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_api_key: str = Field(default="", description="Cloudinary API key")
    cloudinary_api_secret: str = Field(default="", description="Cloudinary API secret")
    cloudinary_folder: str = Field(
        default="tournest/tours",
        description="Cloudinary folder that receives tour images"
    )

    # Image pipeline settings
    tmp_dir: str = Field(
        default="tmp",
        description="Transient directory for resized images awaiting upload"
    )

    image_width: int = Field(default=2500, ge=1, description="Target image width in pixels")
    image_height: int = Field(default=1000, ge=1, description="Target image height in pixels")
    image_quality: int = Field(default=90, ge=1, le=100, description="JPEG quality")
    max_gallery_images: int = Field(default=3, ge=0, description="Maximum gallery images per tour")

    # Listing settings
    default_page_limit: int = Field(default=100, ge=1, description="Default page size")
    max_page_limit: int = Field(default=1000, ge=1, description="Largest accepted page size")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_environments = ["development", "staging", "production", "test"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def debug(self) -> bool:
        """Return True if in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Return True if in production mode."""
        return self.environment == "production"

    @property
    def cloudinary_configured(self) -> bool:
        """Return True when Cloudinary credentials are present."""
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Global settings instance
settings = Settings()
