from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from precast_erp.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Precast ERP API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a precast concrete ERP: contacts, estimating, projects, "
            "drafting, HR, purchasing, yard, quality control, shipping and sales."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, run minimal database seeding after migrations.",
    )

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")
    LOG_FILE: Optional[str] = Field(default=None, description="Also append logs to this file, e.g. logs/precast.log")

    # External AI prediction/recommendation API
    AI_SERVICE_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL of the AI service; requests go to <base>/api/ai/...",
    )
    AI_SERVICE_TIMEOUT: float = Field(default=30.0, description="AI request timeout in seconds")
    AI_SERVICE_API_KEY: Optional[str] = Field(
        default=None, description="Optional bearer token sent to the AI service"
    )

    # Business defaults
    DEFAULT_CURRENCY: str = Field(default="USD")
    STANDARD_WORKDAY_HOURS: float = Field(
        default=8.0, description="Hours per day before time counts as overtime"
    )

    # Shipping route origin
    PLANT_NAME: str = Field(default="Main plant")
    PLANT_LATITUDE: Optional[float] = Field(default=None)
    PLANT_LONGITUDE: Optional[float] = Field(default=None)
    TRUCK_SPEED_KMH: float = Field(default=60.0, description="Average speed used for route duration estimates")

    # Automatically load from .env at runtime.
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      For simplicity we construct a new instance each time. If caching is desired,
      we can add a module-level cache or lru_cache.
    """
    return AppSettings()
