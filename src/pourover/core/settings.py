"""Settings: user preferences for cues and timing, kept as JSON in a config dir."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pourover"
_SETTINGS_FILE = "settings.json"


@dataclass
class Settings:
    notification_sound: bool = True
    haptic_feedback: bool = True
    countdown_seconds: int = 3
    skip_delay: float = 0.3

    def __post_init__(self) -> None:
        if self.countdown_seconds < 1:
            raise ValueError(
                f"countdown_seconds must be at least 1, got {self.countdown_seconds}"
            )
        if self.skip_delay < 0:
            raise ValueError(f"skip_delay must be >= 0, got {self.skip_delay}")

    @classmethod
    def load(cls, config_dir: Path | None = None) -> Settings:
        """Read ``settings.json`` from *config_dir*; defaults when it is missing.

        Unknown keys are ignored so older builds can read newer files.
        """
        path = (config_dir if config_dir is not None else DEFAULT_CONFIG_DIR) / _SETTINGS_FILE
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        known = {f.name for f in fields(cls)}
        ignored = sorted(set(data) - known)
        if ignored:
            logger.debug("Ignoring unknown settings: %s", ", ".join(ignored))
        return cls(**{key: value for key, value in data.items() if key in known})

    def save(self, config_dir: Path | None = None) -> Path:
        """Write the settings as JSON and return the file path."""
        directory = config_dir if config_dir is not None else DEFAULT_CONFIG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / _SETTINGS_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)
        return path
