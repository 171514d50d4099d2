from functools import lru_cache
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from ratewatch.models.constants import CurrencyCode


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variables are prefixed with RATEWATCH_ (e.g. RATEWATCH_DEBUG,
    RATEWATCH_RATE_PROVIDER, RATEWATCH_RATES_CACHE_TTL_SECONDS).
    """

    model_config = SettingsConfigDict(
        env_prefix="RATEWATCH_", env_file=".env", case_sensitive=False
    )

    # Basic app metadata
    app_name: str = "ratewatch"
    debug: bool = False
    version: str = "0.1.0"

    # Rate provider
    # Allowed: 'fxratesapi' (HTTP, no key required), 'static' (built-in fixed table)
    rate_provider: str = "fxratesapi"
    rate_provider_base_url: AnyHttpUrl = "https://api.fxratesapi.com"  # type: ignore[assignment]
    http_timeout_seconds: float = 10.0

    # Selection
    default_base_currency: CurrencyCode = CurrencyCode.EUR

    # Caching / pacing
    rates_cache_ttl_seconds: float = 300.0  # 5 minutes
    min_fetch_interval_seconds: float = 10.0
    refresh_interval_seconds: float = 300.0
    preload_delay_seconds: float = 6.0
    preload_on_startup: bool = True

    def init_post_load(self) -> None:
        """Validate cross-field constraints after loading."""
        allowed = {"fxratesapi", "static"}
        if self.rate_provider not in allowed:
            raise ValueError(
                f"Unsupported rate_provider '{self.rate_provider}'. Allowed: {allowed}"
            )
        for name in (
            "rates_cache_ttl_seconds",
            "refresh_interval_seconds",
            "http_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("min_fetch_interval_seconds", "preload_delay_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @property
    def provider_url(self) -> str:
        return str(self.rate_provider_base_url).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
