"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    DEFAULT_AUTO_REFRESH_SECONDS,
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_LCD_URL,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    TRANSFER_PORT,
)

load_dotenv()

CONFIG_ENV_VAR = "IBC_ESCROW_CONFIG"
CONFIG_TABLE = "ibc_escrow"


class TomlConfigSource(PydanticBaseSettingsSource):
    """Lowest-precedence source reading a TOML file (top level or [ibc_escrow])."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def _default_path(self) -> Path | None:
        local_config = Path("ibc-escrow.toml")
        user_config = Path.home() / ".config" / "ibc-escrow" / "config.toml"
        if local_config.exists():
            return local_config
        if user_config.exists():
            return user_config
        return None

    def __call__(self) -> dict[str, Any]:
        path = self._path or self._default_path()
        if path is None or not path.exists():
            return {}

        with path.open("rb") as f:
            data = tomllib.load(f)
        body = data.get(CONFIG_TABLE, data)
        if not isinstance(body, dict):
            return {}
        return body


class MonitorSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with IBC_ESCROW_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- remote api ---
    lcd_url: str = DEFAULT_LCD_URL
    page_limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=1000)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)
    request_attempts: int = Field(
        default=1,
        ge=1,
        description="Total attempts per HTTP call. 1 disables retries.",
    )
    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Hard cap on pages per collection. Unset means unbounded.",
    )

    # --- aggregation ---
    transfer_port: str = TRANSFER_PORT
    concurrency_limit: int = Field(default=DEFAULT_CONCURRENCY_LIMIT, ge=1)
    enable_counterparty_resolution: bool = True
    global_timeout_seconds: float | None = None

    # --- refresh ---
    auto_refresh_seconds: float = Field(default=DEFAULT_AUTO_REFRESH_SECONDS, ge=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="IBC_ESCROW_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("lcd_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are appended verbatim, so keep the base URL slash-free."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"lcd_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get(CONFIG_ENV_VAR)
        cfg_path = Path(env_cfg) if env_cfg else None

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the effective config as a JSON-friendly dict."""
        return self.model_dump(mode="json")

    @property
    def watch_enabled(self) -> bool:
        """Check if the auto-refresh loop should run."""
        return self.auto_refresh_seconds > 0
