"""Filesystem helpers for octl."""

import logging
import os
import sys
import tempfile
from pathlib import Path

from rich.console import Console

from octl.constants import DIR_MODE, FILE_MODE
from octl.errors import SetupError


class FileSystemService:
    """Encapsulates private directory and credential file side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def ensure_private_dir(self, path: Path):
        path.mkdir(parents=True, exist_ok=True)
        self.set_permissions(str(path), DIR_MODE)

    def write_private_text(self, path: Path, content: str):
        """Atomically replace ``path`` with ``content``, readable by the owner only."""
        self.ensure_private_dir(path.parent)

        fd, temp_path = tempfile.mkstemp(prefix=f".{path.name}-", dir=str(path.parent))
        try:
            self.set_permissions(temp_path, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                file_obj.write(content)
            os.replace(temp_path, path)
        except OSError as exc:
            raise SetupError(f"Could not write '{path}': {exc}") from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self.set_permissions(str(path), FILE_MODE)
