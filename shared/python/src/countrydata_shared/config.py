"""
config.py — pydantic-settings Settings class.

All environment variables for the countrydata service are declared here.
Both the pipeline and API import `settings` from this module.

Usage:
    from countrydata_shared.config import settings
    print(settings.countries_api_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # DuckDB (durable store)
    # -------------------------------------------------------------------------
    duckdb_path: str = Field(default="./data/countries.duckdb")

    # -------------------------------------------------------------------------
    # Data sources
    # -------------------------------------------------------------------------
    countries_api_url: str = Field(
        default="https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
    )
    exchange_api_url: str = Field(
        default="https://open.er-api.com/v6/latest/USD"
    )
    source_timeout_s: float = Field(default=10.0, gt=0)

    # -------------------------------------------------------------------------
    # Summary image
    # -------------------------------------------------------------------------
    cache_dir: str = Field(default="./cache")
    summary_image_name: str = Field(default="summary.png")
    summary_font_path: str | None = Field(default=None)
    summary_top_n: int = Field(default=5, ge=1)

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(default="http://localhost:3000")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def summary_image_path(self) -> Path:
        return Path(self.cache_dir) / self.summary_image_name

    @field_validator("countries_api_url", "exchange_api_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton, import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
