"""Configuration management for pydeploy.

Connection defaults are read from ``~/.config/pydeploy/config.json`` and can
be overridden by ``PYDEPLOY_*`` environment variables.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import DeployConfigError
from .utils import DEFAULT_CONCURRENCY, DEFAULT_SSH_PORT

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
STORAGE_FILE_NAME = "storage.json"


class Config:
    """Connection and storage settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding config and storage files. Defaults to
                ``$PYDEPLOY_CONFIG_DIR`` or ``~/.config/pydeploy``.
        """
        if config_dir is None:
            env_dir = os.environ.get("PYDEPLOY_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "pydeploy"
            )
        self.config_dir = config_dir
        self._data: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    def get_storage_path(self) -> Path:
        return self.config_dir / STORAGE_FILE_NAME

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            path = self.get_config_path()
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        self._data = json.load(f)
                except json.JSONDecodeError as e:
                    raise DeployConfigError(
                        f"Invalid configuration file {path}: {e}"
                    ) from e
            else:
                self._data = {}
        return self._data

    def _get(self, key: str) -> Any:
        env_value = os.environ.get(f"PYDEPLOY_{key.upper()}")
        if env_value:
            return env_value
        return self._load().get(key)

    @property
    def host(self) -> Optional[str]:
        return self._get("host")

    @property
    def user(self) -> Optional[str]:
        return self._get("user")

    @property
    def port(self) -> int:
        value = self._get("port")
        return int(value) if value else DEFAULT_SSH_PORT

    @property
    def key_file(self) -> Optional[str]:
        return self._get("key_file")

    @property
    def concurrency(self) -> int:
        value = self._get("concurrency")
        return int(value) if value else DEFAULT_CONCURRENCY

    def is_configured(self) -> bool:
        """Check whether a remote host is known."""
        return bool(self.host)

    def save(self, **values: Any) -> None:
        """Persist connection defaults, merging with existing values.

        Args:
            **values: Settings to store; ``None`` values are dropped.
        """
        data = dict(self._load())
        data.update({k: v for k, v in values.items() if v is not None})
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        self._data = data
        logger.debug(f"Saved configuration to {path}")


config = Config()
