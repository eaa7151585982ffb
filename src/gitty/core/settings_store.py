"""Key/value settings persisted as a JSON file."""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

GEMINI_API_KEY = "gemini_api_key"
REPO_RULES_PREFIX = "repo_rules_"


class SettingsStore:
    """String settings used to configure the refactor planner."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.settings_file = self.data_dir / "settings.json"
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.settings_file.exists():
            return {}
        try:
            data = json.loads(self.settings_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.settings_file, exc)
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _save(self, settings: Dict[str, str]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.settings_file.write_text(json.dumps(settings, indent=2), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            settings = self._load()
            settings[key] = value
            self._save(settings)

    def get_all(self) -> Dict[str, str]:
        return self._load()

    def get_gemini_key(self) -> Optional[str]:
        return self.get(GEMINI_API_KEY) or None

    def get_repo_rules(self, repo_path: str) -> Optional[str]:
        return self.get(f"{REPO_RULES_PREFIX}{repo_path}") or None
