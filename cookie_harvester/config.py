"""
Runtime configuration for the extraction service.

Uses ``pydantic_settings.BaseSettings`` so every tunable is bound
to an environment variable (or ``.env`` entry) with type coercion
and validation.
"""

from __future__ import annotations

import functools

import pydantic
import pydantic_settings

# Fixed identity presented to every site so results are
# comparable across runs.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class Settings(pydantic_settings.BaseSettings):
    """Service settings loaded from the environment.

    Attributes:
        navigation_timeout_ms: Ceiling for reaching network idle.
        settle_delay_ms: Extra wait after navigation for deferred
            cookie-setting scripts.
        cache_ttl_seconds: Lifetime of a cached extraction result.
        session_timeout_seconds: Outer safety net for one whole
            browser session, launch to cookie read.
        user_agent: User-agent string for every browsing context.
        headless: Launch the browser without a window.
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        environment: ``production`` disables auto-reload.
    """

    model_config = pydantic_settings.SettingsConfigDict(extra="ignore", populate_by_name=True)

    navigation_timeout_ms: int = pydantic.Field(
        default=30000, gt=0, validation_alias="NAVIGATION_TIMEOUT_MS"
    )
    settle_delay_ms: int = pydantic.Field(
        default=2000, ge=0, validation_alias="SETTLE_DELAY_MS"
    )
    cache_ttl_seconds: float = pydantic.Field(
        default=600, gt=0, validation_alias="CACHE_TTL_SECONDS"
    )
    session_timeout_seconds: float = pydantic.Field(
        default=120, gt=0, validation_alias="SESSION_TIMEOUT_SECONDS"
    )
    user_agent: str = pydantic.Field(
        default=DEFAULT_USER_AGENT, validation_alias="BROWSER_USER_AGENT"
    )
    headless: bool = pydantic.Field(default=True, validation_alias="BROWSER_HEADLESS")
    host: str = pydantic.Field(default="0.0.0.0", validation_alias="UVICORN_HOST")
    port: int = pydantic.Field(default=3001, validation_alias="UVICORN_PORT")
    environment: str = pydantic.Field(default="development", validation_alias="ENVIRONMENT")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, created once."""
    return Settings()
