"""
OrgTags Configuration Module.

Handles application settings, store selection, and environment configuration.
Uses pydantic-settings for validation and type safety.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Supabase configuration for the production tag store."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(default="https://demo.supabase.co", description="Supabase project URL")
    service_role_key: str = Field(default="demo-service-role-key", description="Supabase service role key")
    table: str = Field(default="organization_tags", description="Table holding tag records")


class TagSettings(BaseSettings):
    """Business-rule switches for the tag directory."""

    model_config = SettingsConfigDict(
        env_prefix="TAGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    reject_ancestor_cycles: bool = Field(
        default=True,
        description="If true, updates that would make a tag its own ancestor are rejected.",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_log_level: str = "INFO"

    # Storage
    store_backend: Literal["memory", "supabase"] = Field(
        default="memory",
        description="Tag store implementation built at startup.",
    )
    system_actor: str = Field(
        default="system",
        description="Attribution used when a write arrives without an actor.",
    )

    # Nested settings
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    tags: TagSettings = Field(default_factory=TagSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
