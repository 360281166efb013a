from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fibseq.core.engine.state import RuntimeConfig


class AppSettings(BaseSettings):
    """
    Global application-level configuration.

    Single source of truth for:
    - environment selection
    - logging behavior
    - default runtime configuration (what `reset` restores)
    """

    model_config = SettingsConfigDict(
        env_prefix="FIBSEQ_",
        env_file=".env",
        extra="ignore",
    )

    # ---- Environment -------------------------------------------------

    env: Literal["local", "staging", "prod"] = "local"

    # ---- Logging -----------------------------------------------------

    log_level: str = "INFO"

    # JSON lines; false renders human-readable console output
    log_json: bool = True

    # ---- Runtime defaults --------------------------------------------

    default_period_ms: int = Field(
        default=1000,
        gt=0,
        description="Tick period a fresh runtime starts with",
    )

    # 5 blocks per second at most
    min_period_ms: int = Field(
        default=200,
        gt=0,
        description="Floor every period is clamped up to",
    )

    batch_size: int = Field(
        default=10,
        ge=2,
        description="Terms produced per tick",
    )

    ceiling: int | None = Field(
        default=None,
        gt=0,
        description="Initial upper bound on emitted terms (None = unbounded)",
    )

    # ---- Display / shutdown ------------------------------------------

    recent_blocks: int = Field(
        default=50,
        gt=0,
        description="Emitted blocks kept in memory for the HTTP surface",
    )

    shutdown_timeout_s: float = Field(
        default=2.0,
        gt=0,
        description="How long exit waits for the tick thread to quiesce",
    )

    @model_validator(mode="after")
    def _validate_period(self) -> "AppSettings":
        if self.default_period_ms < self.min_period_ms:
            raise ValueError("default_period_ms must be >= min_period_ms")
        return self

    def runtime_config(self) -> RuntimeConfig:
        return RuntimeConfig(
            period_ms=self.default_period_ms,
            min_period_ms=self.min_period_ms,
            ceiling=self.ceiling,
            batch_size=self.batch_size,
        )


# Singleton settings object
settings = AppSettings()
