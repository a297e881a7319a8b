"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="PLAQUER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Plaquer Route Engine"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for exported route artifacts.")
    gpx_creator: str = Field(default="Plaquer App", description="Value of the GPX creator attribute.")

    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000). Unset means straight-line estimates only.",
    )
    osrm_profile: Literal["foot", "walking"] = Field(
        default="foot",
        description="OSRM profile to use when computing walking routes.",
    )
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)
    osrm_timeout_seconds: float = Field(default=15.0, gt=0.0)
    osrm_cache_size: int = Field(default=100, ge=0, description="Routes kept per OSRM client; 0 disables caching.")

    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim-compatible geocoding endpoint.",
    )
    geocoder_user_agent: str = Field(default="plaquer-route-engine/1.0")
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geolocation_timeout_seconds: float = Field(default=10.0, gt=0.0)

    notification_window_ms: int = Field(default=2000, ge=0)
    routing_correction_factor: float = Field(
        default=1.4,
        ge=1.0,
        description="Multiplier applied to straight-line distance to account for street layout.",
    )
    walking_minutes_per_km: float = Field(default=12.0, gt=0.0)
    session_ttl_seconds: float = Field(
        default=3600.0,
        gt=0.0,
        description="Idle time after which a map session is closed and forgotten.",
    )

    default_radius_km: float = Field(default=1.0, gt=0.0)
    default_zoom: int = Field(default=13, ge=0)
    default_center: tuple[float, float] = Field(default=(51.505, -0.09))

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

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
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("default_center", mode="before")
    @classmethod
    def _parse_center_from_env(cls, value: Any) -> tuple[float, float]:
        """Parse a "lat,lng" pair from environment variable (comma-separated or JSON array)."""
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except (json.JSONDecodeError, TypeError):
                parsed = [item.strip() for item in value.split(",") if item.strip()]
            value = parsed
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        raise ValueError("default_center must be a latitude,longitude pair")


settings = Settings()
