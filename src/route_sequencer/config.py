"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="RSQ_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Route Sequencer API"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    osrm_base_url: Optional[str] = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service. Set empty to disable the OSRM tier.",
    )
    osrm_profile: Literal["driving"] = Field(
        default="driving",
        description="OSRM profile used for segment routing. The public server only serves 'driving'.",
    )
    ors_base_url: str = Field(
        default="https://api.openrouteservice.org",
        description="Base URL for OpenRouteService (heavy-vehicle routing).",
    )
    ors_api_key: Optional[str] = Field(
        default=None,
        description="OpenRouteService API key. When present, truck segments use the driving-hgv profile.",
    )
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL for Nominatim address search.",
    )
    nominatim_user_agent: str = Field(
        default="RouteSequencer/1.0",
        description="User-Agent sent to Nominatim (required by its usage policy).",
    )

    provider_timeout_seconds: float = Field(default=10.0, gt=0.0)
    provider_max_retries: int = Field(default=0, ge=0)
    provider_backoff_seconds: float = Field(default=0.5, ge=0.0)

    segment_cache_size: int = Field(default=100, ge=1)
    route_cache_ttl_minutes: float = Field(default=30.0, gt=0.0)
    route_cache_max_entries: int = Field(default=50, ge=1)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("osrm_base_url", "ors_api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text.rstrip("/") or None

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def route_cache_ttl_seconds(self) -> float:
        return self.route_cache_ttl_minutes * 60.0


settings = Settings()
