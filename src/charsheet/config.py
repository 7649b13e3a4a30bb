"""Configuration management for charsheet using Pydantic Settings."""

import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="CHARSHEET_",
        extra="ignore",
    )

    # Rules toggles
    currency_weight: bool = Field(
        default=True, description="Carried coins count toward encumbrance"
    )
    metric_weight_units: bool = Field(
        default=False, description="Use metric units for weight and carrying capacity"
    )
    rest_variant: Literal["normal", "gritty", "epic"] = Field(
        default="normal", description="Rest duration variant"
    )
    proficiency_variant: Literal["bonus", "dice"] = Field(
        default="bonus", description="Flat proficiency bonus or proficiency dice"
    )
    honor_score: bool = Field(default=False, description="Enable the Honor ability score")
    sanity_score: bool = Field(default=False, description="Enable the Sanity ability score")
    rules_path: Path | None = Field(
        default=None, description="Override path to the rules YAML file"
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/charsheet.db",
        description="Database connection URL",
        alias="DATABASE_URL",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level", alias="LOG_LEVEL")
    log_format: Literal["console", "json"] = Field(
        default="console", description="Log format (console or json)", alias="LOG_FORMAT"
    )

    @property
    def data_dir(self) -> Path:
        """Get the data directory path."""
        return Path("./data")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Send structlog output to stderr at the configured level."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )
