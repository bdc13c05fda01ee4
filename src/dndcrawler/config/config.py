"""
Configuration management for dndcrawler using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dndcrawler.exceptions import ConfigError

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Nested Configuration Models ---


class CatalogConfig(BaseModel):
    """Where the catalog lives and how its listing table is laid out."""

    base_url: str = Field(default="https://dndtools.net", description="Base URL of the catalog site.")
    list_path: str = Field(default="/spells/?page_size=1000", description="Path of the first listing page.")
    rulebooks: List[str] = Field(
        default_factory=lambda: ["Player's Handbook v.3.5", "Spell Compendium"],
        description="Only rows whose rulebook is in this list are crawled.",
    )
    row_selector: str = "table.common tr"
    header_selector: str = "th"
    origin_selector: str = "td:nth-child(4) a"
    link_selector: str = "td:nth-child(1) a"
    next_selector: str = "a.next"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def start_url(self) -> str:
        return f"{self.base_url}{self.list_path}"


class CrawlerConfig(BaseModel):
    """Crawler configuration."""

    engine: Literal["browser", "http"] = Field(
        default="browser", description="Rendering engine: headless browser or plain HTTP."
    )
    concurrency: int = Field(default=4, ge=1, description="Maximum detail pages in flight.")
    retry_limit: int = Field(default=10, ge=1, description="Attempts per bounded retry before giving up.")
    headless: bool = Field(default=True, description="Run the browser without a visible window.")
    timeout: float = Field(default=30.0, gt=0, description="Navigation timeout in seconds.")
    user_agent: str = Field(
        default="dndcrawler/1.0 (+https://github.com/dndcrawler/dndcrawler)",
        description="User-Agent string for HTTP requests.",
    )


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to stderr.")
    json_logs: bool = Field(default=False, description="Render log lines as JSON.")

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "dndcrawler"
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="DNDCRAWLER_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise ConfigError(f"Configuration file not found or is not a file: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f)
            if not yaml_data:
                log.warning("Configuration file is empty: %s. Using default settings.", path)
                return cls.model_validate({})
            return cls.model_validate(yaml_data)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def load_config(path: Path | None = None) -> Config:
    """Load configuration from ``path`` or from the environment and defaults."""
    if path is not None:
        return Config.from_yaml(path)
    try:
        return Config()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
