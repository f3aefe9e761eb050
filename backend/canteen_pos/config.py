"""Environment-driven settings for the canteen POS sync service."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///canteen.db"
    storage_backend: str = "sqlite"  # sqlite / inmemory
    gateway_base_url: str = "https://server.welfarecanteen.in/api"
    gateway_timeout_seconds: float = 15.0
    walkin_push_batch_size: int = 10
    log_level: str = "INFO"
    timezone: str = "Asia/Kolkata"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            storage_backend=os.getenv("STORAGE_BACKEND", cls.storage_backend).lower(),
            gateway_base_url=os.getenv("GATEWAY_BASE_URL", cls.gateway_base_url),
            gateway_timeout_seconds=float(
                os.getenv("GATEWAY_TIMEOUT_SECONDS", str(cls.gateway_timeout_seconds))
            ),
            walkin_push_batch_size=int(
                os.getenv("WALKIN_PUSH_BATCH_SIZE", str(cls.walkin_push_batch_size))
            ),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            timezone=os.getenv("CANTEEN_TIMEZONE", cls.timezone),
        )


settings = Settings.from_env()
