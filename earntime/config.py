"""
EarnTime - Configuration Management

Handles loading config.json and environment variables.
Settings are stored in ~/.config/earntime/config.json
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from earntime.exceptions import ConfigError
from earntime.ledger import ARCHIVE_AFTER_DAYS
from earntime.models import TaskCategory
from earntime.persistence import DEFAULT_DB_PATH

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "earntime"
CONFIG_FILE = CONFIG_DIR / "config.json"


@dataclass
class DurationBounds:
    """Range the CLI offers for a countdown, in minutes."""

    minimum: int
    maximum: int
    step: int = 5

    def __post_init__(self) -> None:
        if self.minimum <= 0 or self.maximum < self.minimum or self.step <= 0:
            raise ConfigError(
                "Invalid duration bounds",
                {"minimum": self.minimum, "maximum": self.maximum, "step": self.step},
            )

    def contains(self, minutes: int) -> bool:
        return self.minimum <= minutes <= self.maximum

    def to_dict(self) -> dict[str, int]:
        return {"minimum": self.minimum, "maximum": self.maximum, "step": self.step}

    @classmethod
    def from_dict(cls, data: dict[str, Any], default: "DurationBounds") -> "DurationBounds":
        if not isinstance(data, dict):
            raise ConfigError(
                "Duration bounds must be an object with minimum, maximum and step",
                {"value": data},
            )
        return cls(
            minimum=int(data.get("minimum", default.minimum)),
            maximum=int(data.get("maximum", default.maximum)),
            step=int(data.get("step", default.step)),
        )


@dataclass
class EarnTimeConfig:
    """Main configuration container for EarnTime."""

    db_path: str = str(DEFAULT_DB_PATH)
    archive_after_days: int = ARCHIVE_AFTER_DAYS
    default_category: TaskCategory = TaskCategory.FOCUS_SESSION
    default_spend_minutes: int = 15
    earn_duration_bounds: DurationBounds = field(default_factory=lambda: DurationBounds(5, 180))
    spend_duration_bounds: DurationBounds = field(default_factory=lambda: DurationBounds(5, 240))
    export_dir: str = str(Path.home() / "Downloads")

    def __post_init__(self) -> None:
        # Expand ~ in paths
        if self.db_path != ":memory:":
            self.db_path = str(Path(self.db_path).expanduser())
        self.export_dir = str(Path(self.export_dir).expanduser())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "db_path": self.db_path,
            "archive_after_days": self.archive_after_days,
            "default_category": self.default_category.value,
            "default_spend_minutes": self.default_spend_minutes,
            "earn_duration_bounds": self.earn_duration_bounds.to_dict(),
            "spend_duration_bounds": self.spend_duration_bounds.to_dict(),
            "export_dir": self.export_dir,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EarnTimeConfig":
        """Create config from dictionary, keeping defaults for missing keys."""
        defaults = cls()
        try:
            return cls(
                db_path=data.get("db_path", defaults.db_path),
                archive_after_days=int(data.get("archive_after_days", defaults.archive_after_days)),
                default_category=TaskCategory.from_raw(
                    data.get("default_category", defaults.default_category.value)
                ),
                default_spend_minutes=int(data.get("default_spend_minutes", defaults.default_spend_minutes)),
                earn_duration_bounds=DurationBounds.from_dict(
                    data.get("earn_duration_bounds", {}), defaults.earn_duration_bounds
                ),
                spend_duration_bounds=DurationBounds.from_dict(
                    data.get("spend_duration_bounds", {}), defaults.spend_duration_bounds
                ),
                export_dir=data.get("export_dir", defaults.export_dir),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError("Invalid value in EarnTime config", {"error": str(e)}) from e


def ensure_config_dir() -> None:
    """Ensure configuration directory exists."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_config(path: Path | None = None) -> EarnTimeConfig:
    """
    Load configuration from file and environment.

    Args:
        path: Config file to read (default: ~/.config/earntime/config.json)

    Returns:
        EarnTimeConfig with all settings loaded

    Raises:
        ConfigError: If configuration is invalid
    """
    config_path = path or CONFIG_FILE
    config = EarnTimeConfig()

    if config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON in {config_path}",
                {"error": str(e)},
            )
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a JSON object in {config_path}")
        config = EarnTimeConfig.from_dict(data)

    # Environment overrides
    if db_path := os.environ.get("EARNTIME_DB_PATH"):
        config.db_path = db_path

    if archive_days := os.environ.get("EARNTIME_ARCHIVE_DAYS"):
        try:
            config.archive_after_days = int(archive_days)
        except ValueError:
            raise ConfigError(
                "EARNTIME_ARCHIVE_DAYS must be a whole number of days",
                {"value": archive_days},
            )

    if config.archive_after_days <= 0:
        raise ConfigError(
            "archive_after_days must be positive",
            {"archive_after_days": config.archive_after_days},
        )

    return config


def save_config(config: EarnTimeConfig, path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: EarnTimeConfig to save
        path: Target file (default: ~/.config/earntime/config.json)
    """
    config_path = path or CONFIG_FILE
    if path is None:
        ensure_config_dir()
    else:
        config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
