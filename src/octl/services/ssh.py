"""Deploy SSH key generation, installation and verification."""

import os
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from octl.constants import DIR_MODE, SSH_KEY_NAME
from octl.errors import SetupError
from octl.errors_catalog import actionable_error
from octl.services.polling import constant_delay, poll_until

SSH_READY_ATTEMPTS = 30
SSH_READY_DELAY_SECONDS = 5.0

BASE_SSH_OPTIONS = [
    "-o",
    "StrictHostKeyChecking=accept-new",
    "-o",
    "PasswordAuthentication=no",
    "-o",
    "BatchMode=yes",
]


class SshService:
    """Wraps ssh-keygen, ssh-copy-id and ssh for the deploy key."""

    def __init__(
        self,
        command_runner,
        logger,
        ssh_dir: Optional[Path] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.command_runner = command_runner
        self.logger = logger
        self.ssh_dir = ssh_dir or Path.home() / ".ssh"
        self.sleep = sleep

    @property
    def key_path(self) -> Path:
        return self.ssh_dir / SSH_KEY_NAME

    def ensure_deploy_key(self, confirm_reuse: Callable[[Path], bool]) -> Tuple[Path, Path, bool]:
        """Return (private, public, reused); an existing key is reused on confirmation."""
        if not self.ssh_dir.exists():
            self.ssh_dir.mkdir(parents=True, exist_ok=True)
            if sys.platform != "win32":
                os.chmod(self.ssh_dir, DIR_MODE)

        private_key = self.key_path
        public_key = Path(f"{private_key}.pub")

        if private_key.exists() and confirm_reuse(private_key):
            return private_key, public_key, True

        if private_key.exists():
            private_key.unlink()
            if public_key.exists():
                public_key.unlink()

        self.command_runner.run_or_fail(
            ["ssh-keygen", "-t", "ed25519", "-f", str(private_key), "-N", "", "-C", SSH_KEY_NAME]
        )
        return private_key, public_key, False

    def wait_for_ssh(self, host: str, user: str, private_key: Optional[str] = None) -> bool:
        """Poll until SSH answers; False once the attempt budget is exhausted."""
        cmd = ["ssh"] + BASE_SSH_OPTIONS + ["-o", "ConnectTimeout=5"]
        if private_key:
            cmd.extend(["-i", private_key])
        cmd.extend([f"{user}@{host}", "echo ok"])

        return poll_until(
            lambda: self.command_runner.run(cmd).ok,
            max_attempts=SSH_READY_ATTEMPTS,
            delay=constant_delay(SSH_READY_DELAY_SECONDS),
            sleep=self.sleep,
        )

    def copy_public_key(self, host: str, user: str, public_key_path: str):
        target = f"{user}@{host}"

        if self.command_runner.exists("ssh-copy-id"):
            result = self.command_runner.run(
                ["ssh-copy-id", "-i", public_key_path, "-o", "StrictHostKeyChecking=accept-new", target]
            )
            if result.ok:
                return
            self.logger.warning("ssh-copy-id failed, falling back to ssh append: %s", result.stderr)

        public_key = Path(public_key_path).read_text(encoding="utf-8").strip()
        # Appends only when the key is not already authorized.
        append_cmd = (
            "mkdir -p ~/.ssh && chmod 700 ~/.ssh && "
            f"(grep -qF '{public_key}' ~/.ssh/authorized_keys 2>/dev/null || "
            f"echo '{public_key}' >> ~/.ssh/authorized_keys) && "
            "chmod 600 ~/.ssh/authorized_keys"
        )
        result = self.command_runner.run(
            ["ssh", "-o", "StrictHostKeyChecking=accept-new", target, append_cmd]
        )
        if not result.ok:
            raise SetupError(
                actionable_error("deploy_key_install_failed", target=target, key_path=public_key_path)
            )

    def verify_deploy_key(self, host: str, user: str, private_key_path: str, public_key_path: str):
        target = f"{user}@{host}"
        cmd: List[str] = (
            ["ssh", "-i", private_key_path]
            + BASE_SSH_OPTIONS
            + ["-o", "ConnectTimeout=10", "-o", "IdentitiesOnly=yes", target, "echo ok"]
        )
        result = self.command_runner.run(cmd)
        if not result.ok:
            raise SetupError(
                actionable_error(
                    "deploy_key_verify_failed",
                    key_path=private_key_path,
                    host=host,
                    public_key_path=public_key_path,
                    target=target,
                )
            )
