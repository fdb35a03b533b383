"""Setup context persistence for resume and partial re-runs."""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from octl.constants import SETTINGS_FILE_NAME
from octl.context import SetupContext

SETTINGS_DIR_ENV = "OCTL_SETTINGS_DIR"


def default_settings_dir() -> Path:
    # Linux keeps a hidden dotfolder; other platforms use Documents.
    if sys.platform.startswith("linux"):
        return Path.home() / ".octl"
    return Path.home() / "Documents" / "octl"


def resolve_settings_dir(override: Optional[str] = None) -> Path:
    if override:
        return Path(override).expanduser()
    env_value = os.environ.get(SETTINGS_DIR_ENV)
    if env_value:
        return Path(env_value).expanduser()
    return default_settings_dir()


class SettingsService:
    """Reads and writes the persisted setup context."""

    def __init__(self, settings_dir: Path, filesystem, logger):
        self.settings_dir = settings_dir
        self.filesystem = filesystem
        self.logger = logger

    @property
    def settings_file(self) -> Path:
        return self.settings_dir / SETTINGS_FILE_NAME

    def load(self) -> Dict[str, Any]:
        """Return the saved context, or an empty mapping when absent or unreadable."""
        if not self.settings_file.exists():
            return {}

        try:
            data = json.loads(self.settings_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Ignoring unreadable settings file %s: %s", self.settings_file, exc)
            return {}

        if not isinstance(data, dict):
            self.logger.warning("Ignoring settings file %s: not a JSON object", self.settings_file)
            return {}

        return data

    def load_into(self, context: SetupContext) -> bool:
        saved = self.load()
        if saved:
            context.merge_saved(saved)
        return bool(saved)

    def save(self, context: SetupContext) -> Path:
        payload = json.dumps(context.to_dict(), indent=2, sort_keys=True) + "\n"
        self.filesystem.write_private_text(self.settings_file, payload)
        self.logger.debug("Settings saved to %s", self.settings_file)
        return self.settings_file
