from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AGORA_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "agora"
    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 8080
    log_level: str = "INFO"

    # Populate the in-memory repository with a small demo forum on startup
    seed_demo: bool = Field(default=False, validation_alias="SEED_DEMO")

    # Response cache (process-local, volatile)
    cache_enabled: bool = Field(default=True, validation_alias="CACHE_ENABLED")
    cache_default_ttl: int = Field(default=300, validation_alias="CACHE_DEFAULT_TTL")
    cache_check_period: int = Field(default=60, validation_alias="CACHE_CHECK_PERIOD")
    cache_use_clones: bool = Field(default=True, validation_alias="CACHE_USE_CLONES")

    # Per-namespace TTLs (seconds)
    cache_ttl_categories: int = Field(default=600, validation_alias="CACHE_TTL_CATEGORIES")
    cache_ttl_threads: int = Field(default=180, validation_alias="CACHE_TTL_THREADS")
    cache_ttl_user_profile: int = Field(default=300, validation_alias="CACHE_TTL_USER_PROFILE")
    cache_ttl_search_results: int = Field(
        default=120, validation_alias="CACHE_TTL_SEARCH_RESULTS"
    )
    cache_ttl_statistics: int = Field(default=600, validation_alias="CACHE_TTL_STATISTICS")

    # Pagination
    threads_per_page: int = Field(default=20, validation_alias="THREADS_PER_PAGE")
    search_per_page: int = Field(default=20, validation_alias="SEARCH_PER_PAGE")

    # Users allowed to reach /admin (identity comes from the auth proxy)
    admin_usernames: list[str] = Field(
        default_factory=lambda: ["admin"], validation_alias="ADMIN_USERNAMES"
    )

    # Paths that must never be stored by browsers or intermediaries
    no_store_prefixes: list[str] = Field(
        default_factory=lambda: ["/admin"], validation_alias="NO_STORE_PREFIXES"
    )


settings = Settings()
