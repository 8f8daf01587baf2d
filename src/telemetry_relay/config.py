"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TELEMETRY_RELAY_
prefix. The listening port also honours a plain PORT variable so the relay
drops into platforms that only hand out PORT.

Learn: pydantic-settings auto-loads from environment, validates types,
provides defaults. Tests build their own Settings() and pass it to
create_app() instead of touching the environment.
"""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings

BUNDLED_STATIC_DIR = Path(__file__).parent / "static"

FEED_MODES = ("off", "synthetic", "replay")


class Settings(BaseSettings):
    """All relay configuration. Set via TELEMETRY_RELAY_* env vars."""

    # Server
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = Field(
        8080,
        validation_alias=AliasChoices("TELEMETRY_RELAY_PORT", "PORT"),
    )

    # Document root for the dashboard (any path that isn't an API route)
    static_dir: Path = BUNDLED_STATIC_DIR

    # Per-viewer outbound buffer; a viewer that falls this far behind is dropped
    send_queue_size: int = Field(64, ge=1)

    # Diagnostic feed that keeps viewers busy until the simulator posts
    feed_mode: str = "synthetic"
    feed_interval: Optional[float] = Field(None, gt=0)
    replay_file: Optional[Path] = None

    # CORS
    cors_origin: str = "*"

    model_config = {"env_prefix": "TELEMETRY_RELAY_", "populate_by_name": True}

    @model_validator(mode="after")
    def validate_feed_settings(self):
        """Reject feed configurations that can't start."""
        if self.feed_mode not in FEED_MODES:
            raise ValueError(
                f"TELEMETRY_RELAY_FEED_MODE must be one of {', '.join(FEED_MODES)}"
            )
        if self.feed_mode == "replay" and self.replay_file is None:
            raise ValueError(
                "TELEMETRY_RELAY_REPLAY_FILE must be set when feed_mode is 'replay'"
            )
        return self


# Singleton, used by the CLI and the default app instance
settings = Settings()
