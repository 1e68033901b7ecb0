"""Engine configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Values are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cost_trimmer.core.constants import DEFAULT_COST_PER_READ
from cost_trimmer.domain.enums import OptimizerPreset


class Settings(BaseSettings):
    """Engine settings loaded from environment and .env.

    Preset-derived values (TTLs, guard strictness, capacity) are resolved
    from optimizer_preset; cache_max_entries overrides the preset capacity
    when set.
    """

    # App
    app_name: str = "cost-trimmer"
    app_version: str = "1.0.0"
    debug: bool = False

    # Engine
    optimizer_preset: str = OptimizerPreset.BALANCED.value
    cost_per_read: float = DEFAULT_COST_PER_READ
    cache_max_entries: int | None = None
    cache_max_bytes: int | None = None
    cache_sweep_interval_seconds: float = 0.0
    # Top-level collections whose second segment is an owner id (users/{uid}/...)
    owner_scoped_collections: list[str] = ["users"]

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None
    fetch_timeout_seconds: float = 30.0

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_engine(self) -> "Settings":
        """Validate preset name and numeric bounds."""
        if self.optimizer_preset not in OptimizerPreset.values():
            raise ValueError(
                f"optimizer_preset must be one of {OptimizerPreset.values()}, "
                f"got: {self.optimizer_preset!r}"
            )
        if self.cost_per_read < 0:
            raise ValueError("cost_per_read must not be negative")
        if self.cache_max_entries is not None and self.cache_max_entries <= 0:
            raise ValueError("cache_max_entries must be a positive integer")
        if self.cache_max_bytes is not None and self.cache_max_bytes <= 0:
            raise ValueError("cache_max_bytes must be a positive integer")
        if self.cache_sweep_interval_seconds < 0:
            raise ValueError("cache_sweep_interval_seconds must not be negative")
        if not 0.0 <= self.telemetry_sample_rate <= 1.0:
            raise ValueError("telemetry_sample_rate must be between 0.0 and 1.0")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
