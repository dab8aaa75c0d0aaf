"""Persistent settings stored in _settings.json next to main.py."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields

log = logging.getLogger(__name__)

SETTINGS_FILE = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                             "_settings.json")


@dataclass
class Settings:
    ollama_url: str = "http://localhost:11434"
    model: str = "qwen3:14b"
    source_language: str = "Japanese"
    target_language: str = "English"
    workers: int = 2
    timeout: int = 120
    backup_suffix: str = "_original"

    @classmethod
    def load(cls, path: str = SETTINGS_FILE) -> "Settings":
        """Load saved settings; a missing or unreadable file gives the defaults.

        Unknown keys are ignored so older and newer files both load.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                cfg = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError, OSError):
            return cls()  # No saved settings, use defaults
        if not isinstance(cfg, dict):
            log.warning("Ignoring %s: not a JSON object", path)
            return cls()

        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in cfg.items() if k in known})

    def save(self, path: str = SETTINGS_FILE):
        """Persist settings as pretty-printed JSON."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, ensure_ascii=False, indent=2)
