import os
from pathlib import Path

import yaml

DAYTODAY_DIR = Path(os.environ.get("DAYTODAY_DIR", Path.home() / ".daytoday"))
DB_PATH = DAYTODAY_DIR / "daytoday.db"
CONFIG_PATH = DAYTODAY_DIR / "config.yaml"
STORAGE_KEY = "daytoday-storage"


class Config:
    """Single-instance config manager. Load once, cache in memory."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        """Load config from disk."""
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                self._data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            self._data = {}

    def _save(self) -> None:
        """Persist config to disk."""
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def reload(self) -> None:
        self._load()

    def get(self, key: str, default: object = None) -> object:
        """Get config value."""
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Set config value and persist."""
        self._data[key] = value
        self._save()


_config = Config()


def get_reminder_webhook() -> str | None:
    """URL reminders are POSTed to. None = reminders disabled."""
    val = _config.get("reminder_webhook")
    return str(val).strip() if val else None


def set_reminder_webhook(url: str | None) -> None:
    _config.set("reminder_webhook", url)


def get_default_notification_type() -> str | None:
    """Notification type given to routines created without one."""
    val = _config.get("notification_type")
    return str(val).strip() if val else None
