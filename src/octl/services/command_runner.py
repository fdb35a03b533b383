"""Subprocess execution service for octl."""

import shutil
import subprocess
import sys
from typing import List, Optional

from octl.errors import SetupError
from octl.models import CommandResult

INSTALL_HINTS = {
    "gh": {
        "darwin": "brew install gh",
        "linux": "https://github.com/cli/cli/blob/trunk/docs/install_linux.md",
        "win32": "winget install GitHub.cli",
    },
    "doctl": {
        "darwin": "brew install doctl",
        "linux": "snap install doctl",
        "win32": "winget install DigitalOcean.Doctl",
    },
}


def install_hint(tool: str) -> str:
    hints = INSTALL_HINTS.get(tool)
    if not hints:
        return f"Install {tool} from its official website"
    return hints.get(sys.platform, hints["linux"])


class CommandRunner:
    """Runs external commands and captures stdout, stderr and exit code."""

    def __init__(self, logger, default_timeout: Optional[float] = 30.0):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        input_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run ``cmd``; a nonzero exit is returned, never raised."""
        self.logger.debug("Executing: %s", self._describe(cmd))

        effective_timeout = timeout if timeout is not None else self.default_timeout
        try:
            completed = subprocess.run(
                cmd,
                input=input_text,
                text=True,
                capture_output=True,
                timeout=effective_timeout,
            )
        except FileNotFoundError:
            return CommandResult(stdout="", stderr=f"Command not found: {cmd[0]}", exit_code=127)
        except subprocess.TimeoutExpired as exc:
            raise SetupError(
                f"Command timed out after {effective_timeout}s: {self._describe(cmd)}"
            ) from exc

        result = CommandResult(
            stdout=(completed.stdout or "").strip(),
            stderr=(completed.stderr or "").strip(),
            exit_code=completed.returncode,
        )
        if result.stdout:
            self.logger.debug("Command output: %s", result.stdout)
        return result

    def run_or_fail(
        self,
        cmd: List[str],
        input_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        result = self.run(cmd, input_text=input_text, timeout=timeout)
        if result.ok:
            return result.stdout

        details = result.stderr or result.stdout
        message = f"Command failed ({result.exit_code}): {self._describe(cmd)}"
        if details:
            message = f"{message}\n{details}"
        raise SetupError(message)

    def exists(self, command: str) -> bool:
        return shutil.which(command) is not None

    @staticmethod
    def _describe(cmd: List[str]) -> str:
        # Values passed with --body / --access-token are credentials.
        masked: List[str] = []
        hide_next = False
        for part in cmd:
            if hide_next:
                masked.append("***")
                hide_next = False
                continue
            masked.append(part)
            if part in ("--body", "--access-token"):
                hide_next = True
        return " ".join(masked)
