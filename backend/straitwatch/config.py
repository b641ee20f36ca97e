"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from straitwatch.ais.models import BoundingBox


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Istanbul Strait AIS Relay"
    environment: Literal["development", "staging", "production"] = "development"
    railway_environment: Optional[str] = None
    debug: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    # CORS
    cors_origins: list[str] = [
        "https://kagantatlici.github.io",
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

    # Ingestion source: auto picks live feed, local bridge or emulator
    ais_source: Literal["auto", "live", "bridge", "synthetic"] = "auto"

    # aisstream.io
    aisstream_ws_url: str = ""
    aisstream_api_key: str = ""
    connect_timeout_seconds: float = 10.0
    reconnect_interval_seconds: float = 5.0
    reconnect_max_delay_seconds: float = 30.0
    max_reconnect_attempts: Optional[int] = 10
    failover_after_abnormal_closures: Optional[int] = 3

    # Istanbul Strait bounding box
    bbox_south_west_lat: float = 40.85
    bbox_south_west_lng: float = 28.75
    bbox_north_east_lat: float = 41.25
    bbox_north_east_lng: float = 29.30

    # Vessel table
    max_vessels: int = 500
    update_throttle_seconds: float = 30.0
    filter_mode: Literal["passthrough", "exclude"] = "passthrough"
    eviction_interval_seconds: float = 60.0
    stale_after_seconds: float = 60.0

    # Local AIS bridge
    local_ais_bridge_url: str = "http://localhost:3002"
    bridge_poll_interval_seconds: float = 120.0
    bridge_port: int = 3002
    bridge_max_vessels: int = 25
    bridge_eviction_seconds: float = 120.0

    # Emulator
    simulation_tick_seconds: float = 30.0
    simulation_seed: Optional[int] = None
    simulation_fleet_file: Optional[str] = None

    @property
    def bounding_box(self) -> BoundingBox:
        """Bounding box built from the south-west/north-east corners."""
        return BoundingBox(
            min_lat=self.bbox_south_west_lat,
            max_lat=self.bbox_north_east_lat,
            min_lon=self.bbox_south_west_lng,
            max_lon=self.bbox_north_east_lng,
        )

    @property
    def is_restricted_network(self) -> bool:
        """aisstream.io rejects traffic from cloud provider IP ranges."""
        return bool(self.railway_environment) or self.environment == "production"

    @property
    def has_live_feed_credentials(self) -> bool:
        return bool(self.aisstream_ws_url and self.aisstream_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
