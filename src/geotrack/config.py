"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="GEOTRACK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery GeoTrack API"
    api_prefix: str = "/api"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Geocoding provider (Nominatim-compatible)
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL of the geocoding provider; /search and /reverse are appended.",
    )
    geocoder_user_agent: str = Field(
        default="DeliveryApp/1.0",
        description="Descriptive User-Agent required by the provider's usage policy.",
    )
    country_name: str = "India"
    country_aliases: tuple[str, ...] = Field(
        default=("India", "भारत"),
        description="Markers that indicate an address already names the target country.",
    )
    country_code: str = "in"
    geocoder_max_attempts: int = Field(default=3, ge=1)
    forward_timeout_seconds: float = Field(default=15.0, gt=0.0)
    reverse_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocoder_backoff_seconds: float = Field(default=2.0, ge=0.0)
    timeout_retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    suffix_retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    batch_size: int = Field(default=3, ge=1)
    batch_item_delay_seconds: float = Field(default=1.0, ge=0.0)

    # Map rendering provider
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key appended to static map URLs when present.",
    )
    static_map_zoom: int = Field(default=15, ge=0, le=21)
    static_map_size: str = "800x500"
    openstreetmap_zoom: int = Field(default=13, ge=0, le=19)

    # ETA heuristic: 3 minutes per km is a flat 20 km/h
    eta_minutes_per_km: float = Field(default=3.0, gt=0.0)

    # Client-side location cache
    location_cache_file: Path = Field(
        default=Path("data/customer_location.json"),
        description="Single storage slot for the last auto-detected location.",
    )
    location_cache_ttl_hours: float = Field(default=24.0, gt=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("location_cache_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser()

    @field_validator("frontend_allowed_origins", "country_aliases", mode="before")
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


settings = Settings()
