from typing import List

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Feeds Discussion Engine")
    app_description: str = Field(
        default="Discussion-tree state engine for social feeds"
    )
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)

    # Feeds API (network collaborator)
    feeds_api_url: str = Field(default="http://localhost:8081/feeds/")
    feeds_api_timeout: float = Field(default=30.0)
    feeds_api_token: str = Field(default="")

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # Rate limiting
    rate_limit_storage_uri: str = Field(default="memory://")
    rate_limit_default: List[str] = Field(default=["120/minute"])

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # Locally generated ids ("comment-1a2b3c4d")
    local_id_bytes: int = Field(default=4, ge=2, le=16)

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @field_validator("rate_limit_default", mode="before")
    def validate_rate_limits(cls, v):
        return cls._parse_csv(v, ["120/minute"])

    @field_validator("feeds_api_url", mode="after")
    def validate_api_url(cls, v):
        # httpx joins relative paths onto the base URL only up to its last "/"
        return v if v.endswith("/") else f"{v}/"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
