"""Configuration loader: reads an optional askcat.yaml, validates with Pydantic.

Two sources: a YAML file and the options dict passed to ``AskCatSetup()``.
Editor options win over the file. Provider detection lives in providers.py.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from askcat.providers import PROVIDER_REGISTRY, Provider, detect_provider

logger = logging.getLogger(__name__)

# Keys accepted at the top level of the options dict and lifted into `provider`.
_PROVIDER_KEYS = ("url", "ollama_url", "model", "api_key", "system_prompt")


class ProviderConfig(BaseModel):
    """Where to send prompts and how to authenticate."""

    model_config = ConfigDict(frozen=True)

    url: str = "http://localhost:11434/api/generate"
    model: str = "llama3.2:3b"
    api_key: str | None = None
    system_prompt: str = ""

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and "ollama_url" in data:
            data = dict(data)
            legacy = data.pop("ollama_url")
            data.setdefault("url", legacy)
        return data

    @field_validator("url")
    @classmethod
    def must_be_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Endpoint URL must start with http:// or https://, got '{v}'")
        return v

    @field_validator("system_prompt", mode="before")
    @classmethod
    def none_is_empty(cls, v: str | None) -> str:
        return v or ""

    @property
    def kind(self) -> Provider:
        return detect_provider(self.url)

    def resolved_api_key(self) -> str | None:
        """Explicit key, else the provider's environment variable (if it has one)."""
        if self.api_key:
            return self.api_key
        env_name = PROVIDER_REGISTRY[self.kind].api_key_env
        if env_name:
            return os.environ.get(env_name) or None
        return None


class KeymapConfig(BaseModel):
    """Normal/visual mode mappings registered by AskCatSetup()."""

    model_config = ConfigDict(frozen=True)

    ask: str = "<leader>t"
    cancel: str = "<leader>tt"


class WindowConfig(BaseModel):
    """Geometry of the floating response overlay."""

    model_config = ConfigDict(frozen=True)

    height: int = 8
    margin: int = 2

    @field_validator("height")
    @classmethod
    def positive_height(cls, v: int) -> int:
        if v < 1:
            raise ValueError("window.height must be at least 1")
        return v


class AskCatConfig(BaseModel):
    """Top-level plugin configuration."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderConfig = ProviderConfig()
    keymaps: KeymapConfig = KeymapConfig()
    window: WindowConfig = WindowConfig()

    curl: str = "curl"
    log_file: str | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @model_validator(mode="before")
    @classmethod
    def lift_provider_keys(cls, data: Any) -> Any:
        """Allow ``{"model": ..., "url": ...}`` next to the nested ``provider`` table."""
        if not isinstance(data, dict):
            return data
        flat = {k: data[k] for k in _PROVIDER_KEYS if k in data}
        if not flat:
            return data
        data = {k: v for k, v in data.items() if k not in _PROVIDER_KEYS}
        nested = data.get("provider") or {}
        if isinstance(nested, ProviderConfig):
            nested = nested.model_dump()
        data["provider"] = {**nested, **flat}
        return data


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: AskCatConfig | None = None
_config_path: str | None = None
_overrides: dict[str, Any] = {}


def _read_yaml(path: str) -> dict[str, Any]:
    config_file = Path(path).expanduser()
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")
    try:
        raw = yaml.safe_load(config_file.read_text()) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Config file {config_file} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping at the top level")
    return raw


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str) -> AskCatConfig:
    """Read a YAML config from disk, validate, and cache."""
    global _config, _config_path, _overrides
    _config_path = path
    _overrides = {}
    _config = AskCatConfig(**_read_yaml(path))
    logger.info(
        f"Loaded config from {path}: provider={_config.provider.kind.value}, "
        f"model={_config.provider.model}"
    )
    return _config


def configure(options: dict[str, Any] | None = None) -> AskCatConfig:
    """Build the config from editor options, on top of ``config_file`` if given."""
    global _config, _config_path, _overrides
    options = dict(options or {})
    path = options.pop("config_file", None)

    base = _read_yaml(path) if path else {}
    _config_path = path
    _overrides = options
    _config = AskCatConfig(**_merge(base, options))
    logger.info(
        f"Configured: provider={_config.provider.kind.value}, "
        f"model={_config.provider.model}, url={_config.provider.url}"
    )
    return _config


def get_config() -> AskCatConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded, call configure() or load_config() first")
    return _config


def reload_config() -> AskCatConfig:
    """Re-read the YAML file, keeping the options given to configure()."""
    if _config_path is None:
        raise RuntimeError("No config file to reload, pass config_file to AskCatSetup()")
    logger.info(f"Reloading config from {_config_path}")
    options = dict(_overrides)
    options["config_file"] = _config_path
    return configure(options)
