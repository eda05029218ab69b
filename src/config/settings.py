"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values for the inventory
dashboard are defined here. Use get_settings() to access the singleton
settings instance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import ITEMS_TABLE, STORE_STATUS_TABLE, VARIANTS_TABLE


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required environment variables (for the Supabase backend):
        - SUPABASE_URL: Supabase project URL
        - SUPABASE_ANON_KEY: Supabase anon (public) key

    Optional environment variables:
        - STORE_BACKEND: "supabase" (default) or "memory"
        - REALTIME_ENABLED: Subscribe to change notifications (default: true)
        - ADMIN_ACTOR_ID: Written as updated_by on admin writes
        - ENVIRONMENT: Environment name (development, staging, production)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ==========================================================================
    # Data Store
    # ==========================================================================
    store_backend: str = Field(
        default="supabase",
        description="Backing store: 'supabase' or 'memory'"
    )
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_anon_key: str = Field(default="", description="Supabase anon key")
    supabase_service_key: Optional[str] = Field(
        default=None,
        description="Service role key, preferred over the anon key when set"
    )

    @field_validator("store_backend", mode="before")
    @classmethod
    def normalize_store_backend(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
        if v not in ("supabase", "memory"):
            raise ValueError(f"store_backend must be 'supabase' or 'memory', got {v!r}")
        return v

    @property
    def supabase_key(self) -> str:
        return self.supabase_service_key or self.supabase_anon_key

    items_table: str = Field(default=ITEMS_TABLE)
    variants_table: str = Field(default=VARIANTS_TABLE)
    store_status_table: str = Field(default=STORE_STATUS_TABLE)

    # ==========================================================================
    # Realtime
    # ==========================================================================
    realtime_enabled: bool = Field(
        default=True,
        description="Subscribe to change notifications and re-fetch on every change"
    )

    # ==========================================================================
    # Admin / Display
    # ==========================================================================
    admin_actor_id: Optional[str] = Field(
        default=None,
        description="Attribution recorded as updated_by on admin writes"
    )
    display_utc_offset_minutes: int = Field(
        default=330,
        description="Offset applied to timestamps for display (IST = +330)"
    )
    currency_symbol: str = Field(default="₹")
    notification_history: int = Field(
        default=50, ge=1,
        description="How many notifications each view keeps"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded from environment variables and the project's
    .env file when present.

    Raises:
        ValidationError: If a setting has an invalid value
    """
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        os.environ.setdefault("ENV_FILE", str(env_file))

    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.
    """
    test_defaults = {
        "supabase_url": "https://test.supabase.co",
        "supabase_anon_key": "test-key",
        "store_backend": "memory",
        "environment": "testing",
        "debug": True,
    }
    test_defaults.update(overrides)

    return Settings(**test_defaults)
