"""
Builder Configuration

Uses pydantic-settings for environment variable loading with validation.
All tunables of the editing core are centralized here.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Builder settings loaded from environment variables.

    Environment variables can be set directly or via .env file,
    e.g. PAGEBUILDER_DROP_BEFORE_RATIO=0.3
    """

    model_config = SettingsConfigDict(
        env_prefix="PAGEBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Runtime
    # ==========================================================================
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level used by the CLI entrypoint"
    )

    # ==========================================================================
    # Drag & Drop
    # ==========================================================================
    drop_before_ratio: float = Field(
        default=0.25,
        gt=0.0,
        lt=1.0,
        description="Pointer offset (fraction of target height) below which a drop lands before the target"
    )

    drop_after_ratio: float = Field(
        default=0.75,
        gt=0.0,
        lt=1.0,
        description="Pointer offset (fraction of target height) above which a drop lands after the target"
    )

    # ==========================================================================
    # Instance Defaults
    # ==========================================================================
    default_instance_width: str = Field(
        default="200px",
        description="Width used when a manifest declares no default width"
    )

    default_instance_height: str = Field(
        default="100px",
        description="Height used when a manifest declares no default height"
    )

    default_column_span: int = Field(
        default=4,
        ge=1,
        description="Column span of new instances that are not full width"
    )

    grid_columns: int = Field(
        default=12,
        ge=1,
        description="Number of grid columns on a new page"
    )

    # ==========================================================================
    # Component Registry
    # ==========================================================================
    manifests_path: str | None = Field(
        default=None,
        description="JSON or YAML file with component manifests for the CLI"
    )

    @model_validator(mode="after")
    def _check_drop_ratios(self) -> "Settings":
        if self.drop_before_ratio >= self.drop_after_ratio:
            raise ValueError("drop_before_ratio must be lower than drop_after_ratio")
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
