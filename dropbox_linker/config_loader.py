"""
Configuration loading.

Reads config/config.yaml and applies environment overrides
(DROPBOX_APP_KEY, DROPBOX_ROOT_NAMESPACE_ID).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

from dropbox_linker.auth.constants import CALLBACK_PORT
from dropbox_linker.exceptions import ConfigError
from dropbox_linker.send_guard import DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES

DEFAULT_CONFIG_PATH = Path("config") / "config.yaml"
DEFAULT_LINK_EXPIRATION_DAYS = 7
AUTO_NAMESPACE = "auto"

logger = logging.getLogger(__name__)


@dataclass
class LinkerConfig:
    app_key: str = ""
    root_namespace_id: Optional[str] = None
    local_root: Optional[str] = None
    callback_port: int = CALLBACK_PORT
    link_expiration_days: int = DEFAULT_LINK_EXPIRATION_DAYS
    large_attachment_threshold_bytes: int = DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES
    verbose: bool = False
    log_file: Optional[str] = None

    def is_valid(self) -> bool:
        return bool(self.app_key and self.app_key.strip())

    @property
    def discover_namespace(self) -> bool:
        return (self.root_namespace_id or "").lower() == AUTO_NAMESPACE


def _positive_int(value, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"'{name}' must be positive, got {number}")
    return number


def _section(raw: dict, name: str) -> dict:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def load_config(config_path: Union[str, Path, None] = None) -> LinkerConfig:
    """
    Load configuration from YAML and the environment.

    Args:
        config_path: Path to the YAML file (default: config/config.yaml).
                     A missing file yields defaults.

    Returns:
        LinkerConfig

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    raw: dict = {}
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error reading configuration file {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")
    else:
        logger.debug(f"Configuration file not found: {path}; using defaults")

    dropbox_section = _section(raw, "dropbox")
    attachments_section = _section(raw, "attachments")
    logging_section = _section(raw, "logging")

    namespace = dropbox_section.get("root_namespace_id")
    config = LinkerConfig(
        app_key=str(dropbox_section.get("app_key") or ""),
        root_namespace_id=str(namespace) if namespace else None,
        local_root=dropbox_section.get("local_root") or None,
        callback_port=_positive_int(dropbox_section.get("callback_port", CALLBACK_PORT), "dropbox.callback_port"),
        link_expiration_days=_positive_int(
            dropbox_section.get("link_expiration_days", DEFAULT_LINK_EXPIRATION_DAYS), "dropbox.link_expiration_days"
        ),
        large_attachment_threshold_bytes=_positive_int(
            attachments_section.get("large_threshold_bytes", DEFAULT_LARGE_ATTACHMENT_THRESHOLD_BYTES),
            "attachments.large_threshold_bytes",
        ),
        verbose=bool(logging_section.get("verbose", False)),
        log_file=logging_section.get("log_file") or None,
    )

    env_app_key = os.environ.get("DROPBOX_APP_KEY")
    if env_app_key:
        config.app_key = env_app_key
    env_namespace = os.environ.get("DROPBOX_ROOT_NAMESPACE_ID")
    if env_namespace:
        config.root_namespace_id = env_namespace

    return config
