"""Configuration loader for octl."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from octl.errors import SetupError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "settings_dir",
        "steps",
        "verbose",
        "log_file",
        "environment",
        "droplet_name",
        "default_region",
        "app_repos",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise SetupError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise SetupError(f"Invalid config file '{path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise SetupError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise SetupError(f"Unknown configuration keys: {unknown_list}")

        app_repos = parsed.get("app_repos")
        if app_repos is not None and (
            not isinstance(app_repos, list) or not all(isinstance(repo, str) and repo for repo in app_repos)
        ):
            raise SetupError("Config key 'app_repos' must be a list of repository names.")

        return parsed
