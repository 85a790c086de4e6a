"""Service settings, read from the environment and ``backend/.env``."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_DIR = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BACKEND_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite+aiosqlite:///./fedmatch.db"

    # Bearer tokens are minted by the account service with this shared key
    jwt_secret_key: str = "dev-only-signing-key"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 60 * 24

    # GSA IOLP, republished on the HIFLD ArcGIS FeatureServer
    iolp_base_url: str = (
        "https://maps.nccs.nasa.gov/mapping/rest/services/hifld_open/government/FeatureServer"
    )
    iolp_timeout_seconds: float = 30.0
    iolp_page_size: int = 2000

    # Overrides applied by ScoringConfig.from_settings
    score_cache_ttl_hours: int = 24
    default_radius_miles: float = 10.0
    default_state: str = "DC"
    occupancy_buffer_days: int = 90
    competitive_threshold: float = 70.0
    space_shortfall_tolerance: float = 0.10
    timeline_grace_days: int = 0
    presence_fetch_timeout_seconds: float = 30.0
    max_presence_radius_miles: float = 100.0

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Comma-separated ``cors_origins``; debug mode allows any origin."""
        if self.debug:
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
