"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings

APP_VERSION = "0.1.0"


class Settings(BaseSettings):
    """Voice Roulette configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Discord
    discord_bot_token: str = ""
    discord_enabled: bool = False
    discord_guild_id: str = ""  # Sync slash commands to one guild (instant) instead of globally

    # Links handed out by /roulette
    frontend_url: str = "http://127.0.0.1:5500"
    backend_url: str = "http://localhost:8000"
    cors_origins: str = "*"

    # Environment
    roulette_env: str = "development"
    dev_guild_id: str = "dev-guild"  # Guild served by the demo roster when Discord is off

    # Session tokens
    token_ttl_seconds: int = 3600  # 1 hour
    token_sweep_interval_seconds: int = 60

    # Wheel animation
    spin_duration_seconds: float = 4.0
    spin_min_turns: int = 3
    spin_max_turns: int = 5
    spin_frame_rate: int = 60

    # Result history
    history_max_size: int = 50

    # Logging
    roulette_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_spin_turns(self) -> Settings:
        """Extra turns must be a non-empty positive range."""
        if self.spin_min_turns < 1 or self.spin_max_turns < self.spin_min_turns:
            msg = (
                f"Invalid spin turn range {self.spin_min_turns}..{self.spin_max_turns}: "
                "SPIN_MIN_TURNS must be >= 1 and <= SPIN_MAX_TURNS"
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _require_token_in_production(self) -> Settings:
        """Reject an enabled bot without a token in production."""
        if (
            self.roulette_env == "production"
            and self.discord_enabled
            and not self.discord_bot_token
        ):
            raise ValueError("DISCORD_BOT_TOKEN must be set when DISCORD_ENABLED in production")
        return self

    @property
    def is_development(self) -> bool:
        return self.roulette_env == "development"

    def allowed_origins(self) -> list[str]:
        """Split ``cors_origins`` into a list, ignoring blanks."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
