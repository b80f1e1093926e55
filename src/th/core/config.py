"""Configuration management for th."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

# Shared with other 008 clients so an existing login keeps working
APP_DIR_NAME = "008"
AUTH_FILE_NAME = "auth.json"
CONFIG_FILE_NAME = "config.json"

COPILOT_PROVIDER = "github-copilot"

# GitHub device flow
GITHUB_CLIENT_ID = "Iv1.b507a08c87ecfe98"
GITHUB_SCOPE = "read:user"
DEVICE_CODE_URL = "https://github.com/login/device/code"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

# Copilot
COPILOT_TOKEN_URL = "https://api.github.com/copilot_internal/v2/token"
COPILOT_API_BASE = "https://api.githubcopilot.com"

USER_AGENT = "GitHubCopilotChat/0.26.7"
EDITOR_VERSION = "vscode/1.99.3"
EDITOR_PLUGIN_VERSION = "copilot-chat/0.26.7"

MAX_POLL_INTERVAL = 60

# Environment variable -> settings field
ENV_OVERRIDES = {
    "TH_MODEL": "model",
    "TH_TIMEOUT": "timeout",
    "TH_MAX_TOKENS": "max_tokens",
    "TH_TEMPERATURE": "temperature",
    "TH_LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    """Runtime settings for a th invocation."""

    model: str = "gpt-4o"
    temperature: float = 0.2
    max_tokens: int = 180
    timeout: float = 30.0
    log_level: str = "WARNING"


def get_config_dir() -> Path:
    """Get the th config directory.

    Uses ``$XDG_CONFIG_HOME`` when set, otherwise ``~/.config``.
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_auth_path() -> Path:
    """Get the path to the credential file."""
    override = os.environ.get("TH_AUTH_FILE")
    if override:
        return Path(override).expanduser()
    return get_config_dir() / AUTH_FILE_NAME


def get_config_path() -> Path:
    """Get the path to the optional settings file."""
    return get_config_dir() / CONFIG_FILE_NAME


def load_config(path: Path | None = None) -> Settings:
    """Load settings from the config file, then environment variables.

    Environment variables take precedence over the file. A missing or
    unreadable file falls back to defaults.
    """
    config_path = path or get_config_path()
    values: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)
            if isinstance(data, dict):
                values.update(data)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config file {config_path}: {e}")

    for env_name, field_name in ENV_OVERRIDES.items():
        if os.environ.get(env_name):
            values[field_name] = os.environ[env_name]

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        logger.warning(f"Invalid settings, using defaults: {e}")
        return Settings()
