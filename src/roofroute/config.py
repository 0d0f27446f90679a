"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROOFROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "RoofRoute Planning API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Level applied to the roofroute logger.")
    data_root: Path = Field(default=Path("data"), description="Root directory for static data files.")
    zip_centroids_file: Optional[Path] = Field(
        default=None,
        description="Postal code centroid table (JSON mapping or CSV with zip,lat,lng); defaults to data_root/us_zip_centroids.json.",
    )
    min_buildings_per_day: int = Field(default=3, ge=1)
    max_buildings_per_day: int = Field(default=8, ge=1)
    default_buildings_per_day: int = Field(default=5, ge=1)
    road_factor: float = Field(
        default=1.3,
        ge=1.0,
        description="Multiplier applied to straight-line distance to approximate road travel.",
    )
    geocoder_base_url: Optional[str] = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL of the Nominatim-compatible geocoding service.",
    )
    geocoder_user_agent: str = Field(default="RoofRoute/1.0 (roof-inspection-app)")
    geocoder_country_codes: tuple[str, ...] = Field(default=("us",))
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocoder_max_retries: int = Field(default=2, ge=0)
    geocoder_backoff_seconds: float = Field(default=1.0, ge=0.0)
    geocoder_min_interval_seconds: float = Field(
        default=1.1,
        ge=0.0,
        description="Minimum spacing between geocoder requests (Nominatim allows one per second).",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", "zip_centroids_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None:
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "geocoder_country_codes", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
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

    @field_validator("max_buildings_per_day")
    @classmethod
    def _check_bounds(cls, value: int, info) -> int:
        minimum = info.data.get("min_buildings_per_day")
        if minimum is not None and value < minimum:
            raise ValueError("max_buildings_per_day must be >= min_buildings_per_day")
        return value

    @property
    def centroids_path(self) -> Path:
        return self.zip_centroids_file or self.data_root / "us_zip_centroids.json"


settings = Settings()
