import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()

# Snapshot cadence and retention defaults
SNAPSHOT_INTERVAL_MINUTES = 15
SNAPSHOT_RETENTION_DAYS = 7


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./worldwatch.db", alias="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Ingestion
    ingest_dir: str = Field(default="./data", alias="INGEST_DIR")

    # Refresh cadences
    feeds_refresh_minutes: int = Field(default=5, alias="FEEDS_REFRESH_MINUTES")
    markets_refresh_minutes: int = Field(default=5, alias="MARKETS_REFRESH_MINUTES")
    predictions_refresh_minutes: int = Field(
        default=5, alias="PREDICTIONS_REFRESH_MINUTES"
    )
    seismic_refresh_minutes: int = Field(default=5, alias="SEISMIC_REFRESH_MINUTES")

    # Snapshots
    snapshot_interval_minutes: int = Field(
        default=SNAPSHOT_INTERVAL_MINUTES, alias="SNAPSHOT_INTERVAL_MINUTES"
    )
    snapshot_retention_days: int = Field(
        default=SNAPSHOT_RETENTION_DAYS, alias="SNAPSHOT_RETENTION_DAYS"
    )

    # Analysis
    cluster_similarity_threshold: float = Field(
        default=0.5, alias="CLUSTER_SIMILARITY_THRESHOLD"
    )

    # Source isolation
    source_failure_threshold: int = Field(default=3, alias="SOURCE_FAILURE_THRESHOLD")
    source_reset_minutes: int = Field(default=5, alias="SOURCE_RESET_MINUTES")

    # Notifications not yet consumed; the oldest is dropped when full
    outbox_max_size: int = Field(default=256, ge=1, alias="OUTBOX_MAX_SIZE")


def load_settings() -> Settings:
    """Build settings from the process environment (after .env is loaded)."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
