"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class LLMConfig(BaseSettings):
    provider: str = ""  # "" (auto) | openai | anthropic
    openai_model: str = "gpt-4o"
    anthropic_model: str = "claude-sonnet-4-20250514"
    timeout_seconds: float = 90.0


class PipelineConfig(BaseSettings):
    batch_size: int = 1
    batch_delay_seconds: float = 4.0
    max_images: int = 20
    fetch_concurrency: int = 4
    fetch_timeout_seconds: float = 15.0
    max_image_bytes: int = 8 * 1024 * 1024


class ImageSourceConfig(BaseSettings):
    navigation_timeout_ms: int = 30000
    settle_delay_ms: int = 3000
    search_url: str = "https://html.duckduckgo.com/html/"
    search_timeout_seconds: float = 15.0
    listing_domains: list[str] = Field(default_factory=lambda: [
        "redfin.com", "zillow.com", "realtor.com", "trulia.com", "homes.com",
    ])
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )


class GeoContextConfig(BaseSettings):
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    open_elevation_url: str = "https://api.open-elevation.com/api/v1/lookup"
    openaq_url: str = "https://api.openaq.org/v2/latest"
    openaq_api_key: str = ""
    user_agent: str = "MUVE-AccessibilityChecker/1.0"
    request_timeout_seconds: float = 20.0
    sample_offset_deg: float = 0.002


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/muve.db"
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    log_level: str = "INFO"
    llm: LLMConfig = Field(default_factory=LLMConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    image_source: ImageSourceConfig = Field(default_factory=ImageSourceConfig)
    geo: GeoContextConfig = Field(default_factory=GeoContextConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    overrides = {}
    db_url = y.get("database", {}).get("url")
    if db_url:
        overrides["database_url"] = db_url
    if y.get("log_level"):
        overrides["log_level"] = y["log_level"]
    return Settings(
        llm=LLMConfig(**y.get("llm", {})),
        pipeline=PipelineConfig(**y.get("pipeline", {})),
        image_source=ImageSourceConfig(**y.get("image_source", {})),
        geo=GeoContextConfig(**y.get("geo", {})),
        **overrides,
    )
