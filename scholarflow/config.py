"""Application configuration management."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, MutableMapping

CONFIG_DIR_NAME = "ScholarFlow"
DEFAULT_JSON_FILENAME = "settings.json"
DEFAULT_INI_FILENAME = "settings.ini"

ASSISTANT_SECTION = "assistant"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"
DEFAULT_MODEL = "gemini-3-flash-preview"

ENV_API_KEY = "SCHOLARFLOW_API_KEY"
ENV_BASE_URL = "SCHOLARFLOW_BASE_URL"
ENV_MODEL = "SCHOLARFLOW_MODEL"


def get_user_config_dir(app_name: str = CONFIG_DIR_NAME) -> Path:
    """Return the configuration directory for the current user.

    The directory is created on first use. On Windows the directory is
    under ``%APPDATA%``; otherwise the XDG base directory or ``~/.config``
    is used.
    """
    if sys.platform.startswith("win"):
        base_dir = Path(os.getenv("APPDATA", Path.home()))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    config_dir = base_dir / app_name
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


class ConfigManager:
    """Handle loading and saving user configuration settings."""

    def __init__(
        self,
        app_name: str = CONFIG_DIR_NAME,
        *,
        format: str = "json",
        filename: str | None = None,
    ) -> None:
        self.app_name = app_name
        self.format = format.lower()
        if self.format not in {"json", "ini"}:
            raise ValueError("format must be either 'json' or 'ini'")
        if filename is None:
            filename = (
                DEFAULT_JSON_FILENAME if self.format == "json" else DEFAULT_INI_FILENAME
            )
        self.config_dir = get_user_config_dir(app_name)
        self.config_path = self.config_dir / filename

    def load(self) -> dict[str, Any]:
        """Load configuration from disk.

        Returns an empty dictionary if the configuration file is absent.
        """
        if not self.config_path.exists():
            return {}

        if self.format == "json":
            with self.config_path.open("r", encoding="utf-8") as fh:
                return json.load(fh)

        parser = ConfigParser()
        parser.read(self.config_path, encoding="utf-8")
        return {section: dict(parser.items(section)) for section in parser.sections()}

    def save(self, data: MutableMapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if self.format == "json":
            with self.config_path.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
                fh.write("\n")
            return

        parser = ConfigParser()
        for section, values in data.items():
            if not isinstance(values, MutableMapping):
                raise ValueError("INI configuration requires mapping values per section")
            parser[section] = {str(key): str(value) for key, value in values.items()}
        with self.config_path.open("w", encoding="utf-8") as fh:
            parser.write(fh)

    def update(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        """Merge ``data`` section by section into the stored configuration."""
        current = self.load()
        for section, values in data.items():
            if not isinstance(values, MutableMapping):
                if self.format == "ini":
                    raise ValueError(
                        "INI configuration updates require mapping values per section"
                    )
                current[section] = values
                continue
            section_data = current.setdefault(section, {})
            if not isinstance(section_data, dict):
                raise ValueError("Existing section must be a mapping to apply updates")
            section_data.update(values)
        self.save(current)
        return current

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ConfigManager(app_name={self.app_name!r}, format={self.format!r}, path={self.config_path!s})"


@dataclass(frozen=True)
class AssistantConfig:
    """Connection settings for the generative-language backend."""

    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    api_key: str | None = None
    timeout: float = 60.0
    max_retries: int = 2

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


def load_assistant_config(
    config_manager: ConfigManager | None = None,
    environ: Mapping[str, str] | None = None,
) -> AssistantConfig:
    """Resolve :class:`AssistantConfig` from the settings file and environment.

    Environment variables win over the ``assistant`` section of the settings
    file so a key never has to be written to disk.
    """
    env = os.environ if environ is None else environ
    stored: dict[str, Any] = {}
    if config_manager is not None:
        section = config_manager.load().get(ASSISTANT_SECTION)
        if isinstance(section, Mapping):
            stored = dict(section)

    def _pick(env_name: str | None, key: str, default: Any) -> Any:
        if env_name:
            value = env.get(env_name, "").strip()
            if value:
                return value
        value = stored.get(key)
        if isinstance(value, str):
            value = value.strip()
        return value if value not in (None, "") else default

    timeout = _pick(None, "timeout", 60.0)
    retries = _pick(None, "max_retries", 2)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError):
        timeout = 60.0
    try:
        retries = max(int(retries), 0)
    except (TypeError, ValueError):
        retries = 2

    return AssistantConfig(
        base_url=str(_pick(ENV_BASE_URL, "base_url", DEFAULT_BASE_URL)),
        model=str(_pick(ENV_MODEL, "model", DEFAULT_MODEL)),
        api_key=_pick(ENV_API_KEY, "api_key", None),
        timeout=timeout,
        max_retries=retries,
    )


__all__ = [
    "AssistantConfig",
    "ConfigManager",
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "get_user_config_dir",
    "load_assistant_config",
]
