"""
Config utilities for Feed Printer.

Responsibilities:
- Resolve config/data/cache paths with environment and XDG support
- Load the JSON config, layering defaults < file < environment overrides
- Validate the printer and poller sections into typed settings
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from feed_printer.core.errors import ConfigurationError

ENV_PREFIX = "FEEDPRINTER_"

DEFAULTS: dict[str, Any] = {
    # printer
    "printer_type": "usb",
    "usb_vendor_id": "0x04b8",
    "usb_product_id": "0x0e28",
    "printer_profile": None,
    "network_ip": "",
    "network_keepalive": True,
    "min_feed_dots": 800,
    "dots_per_line": 24,
    "image_max_width": 512,
    # content source
    "source_url": "",
    "source_key": "",
    "items_table": "tweets",
    "authors_table": "account",
    "http_timeout_seconds": 30,
    # poller
    "poll_interval_seconds": 10,
    "poll_limit": 20,
    "lookup_give_up_after": None,
    "cache_path": None,
    "temp_dir": None,
}

# Legacy credential variables honoured when the prefixed ones are absent
_LEGACY_ENV = {
    "source_url": "SUPABASE_URL",
    "source_key": "SUPABASE_ANON_KEY",
}


def default_config_path() -> str:
    """
    Resolve the default config path using:
    1) $XDG_CONFIG_HOME/feedprinter/config.json
    2) ~/.config/feedprinter/config.json
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return str(Path(xdg) / "feedprinter" / "config.json")
    return str(Path.home() / ".config" / "feedprinter" / "config.json")


def default_cache_path() -> str:
    """
    Resolve the persisted item cache path using:
    1) $XDG_DATA_HOME/feedprinter/items.json
    2) ~/.local/share/feedprinter/items.json
    """
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return str(Path(xdg) / "feedprinter" / "items.json")
    return str(Path.home() / ".local" / "share" / "feedprinter" / "items.json")


def default_temp_dir() -> str:
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return str(Path(xdg) / "feedprinter" / "tmp")
    return str(Path.home() / ".cache" / "feedprinter" / "tmp")


def get_config_path() -> str:
    """
    Return the config path honoring FEEDPRINTER_CONFIG_PATH override.
    """
    return os.environ.get(f"{ENV_PREFIX}CONFIG_PATH", default_config_path())


def ensure_dir(path: str) -> str:
    """
    Ensure a directory exists and return the path.
    """
    Path(path).mkdir(parents=True, exist_ok=True)
    return path


def _read_config_file(path: str) -> dict[str, Any]:
    cfg_path = Path(path)
    if not cfg_path.exists():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {cfg_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {cfg_path} must contain a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key in DEFAULTS:
        val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
        if val is None and key in _LEGACY_ENV:
            val = os.environ.get(_LEGACY_ENV[key])
        if val is not None:
            overrides[key] = val
    return overrides


def load_config(path: Optional[str] = None) -> dict[str, Any]:
    """
    Load the effective config: defaults, then the JSON file (if present), then
    FEEDPRINTER_* environment variables.

    Raises:
        ConfigurationError if the file exists but is not a JSON object.
    """
    cfg = dict(DEFAULTS)
    cfg.update(_read_config_file(path or get_config_path()))
    cfg.update(_env_overrides())
    if not cfg.get("cache_path"):
        cfg["cache_path"] = default_cache_path()
    if not cfg.get("temp_dir"):
        cfg["temp_dir"] = default_temp_dir()
    return cfg


def require(config: dict[str, Any], *keys: str) -> None:
    """
    Raise ConfigurationError naming every key that is missing or blank.
    """
    missing = [k for k in keys if config.get(k) in (None, "")]
    if missing:
        raise ConfigurationError(f"Missing required setting(s): {', '.join(missing)}")


class _Settings(BaseModel):
    @classmethod
    def from_config(cls, config: dict[str, Any]):
        values = {k: config[k] for k in cls.model_fields if k in config}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {cls.__name__}: {e}") from e


class PrinterSettings(_Settings):
    """Printer transport and layout settings."""

    printer_type: Literal["usb", "network"] = "usb"
    usb_vendor_id: int = 0x04B8
    usb_product_id: int = 0x0E28
    printer_profile: Optional[str] = None
    network_ip: str = ""
    network_keepalive: bool = True
    min_feed_dots: int = Field(default=800, ge=0)
    dots_per_line: int = Field(default=24, gt=0)
    image_max_width: int = Field(default=512, gt=0)

    @field_validator("printer_type", mode="before")
    @classmethod
    def _lower_type(cls, v: Any) -> Any:
        return str(v).strip().lower() if v is not None else v

    @field_validator("usb_vendor_id", "usb_product_id", mode="before")
    @classmethod
    def _parse_hex(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return int(v.strip(), 16)
            except ValueError:
                raise ValueError(f"expected a hex id like 0x04b8, got {v!r}")
        return v

    @field_validator("printer_profile", mode="before")
    @classmethod
    def _blank_profile(cls, v: Any) -> Any:
        return v or None

    @model_validator(mode="after")
    def _network_needs_host(self) -> "PrinterSettings":
        if self.printer_type == "network" and not self.network_ip.strip():
            raise ValueError("network_ip is required when printer_type is 'network'")
        return self


class PollSettings(_Settings):
    """Content source and polling loop settings."""

    source_url: str
    source_key: str
    items_table: str = "tweets"
    authors_table: str = "account"
    http_timeout_seconds: float = Field(default=30, gt=0)
    poll_interval_seconds: float = Field(default=10, ge=0)
    poll_limit: int = Field(default=20, gt=0)
    lookup_give_up_after: Optional[int] = Field(default=None, gt=0)
    cache_path: str
    temp_dir: str

    @field_validator("lookup_give_up_after", mode="before")
    @classmethod
    def _blank_is_unset(cls, v: Any) -> Any:
        return None if v in ("", None) else v

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PollSettings":
        require(config, "source_url", "source_key", "cache_path", "temp_dir")
        return super().from_config(config)


class ImageSettings(_Settings):
    """Settings for one-off image prints."""

    http_timeout_seconds: float = Field(default=30, gt=0)
    temp_dir: str

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ImageSettings":
        require(config, "temp_dir")
        return super().from_config(config)


__all__ = [
    "DEFAULTS",
    "ENV_PREFIX",
    "ImageSettings",
    "PollSettings",
    "PrinterSettings",
    "default_cache_path",
    "default_config_path",
    "default_temp_dir",
    "ensure_dir",
    "get_config_path",
    "load_config",
    "require",
]
