"""Step model, input requirements and the services handed to each step."""

import enum
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence

import click
import requests

from octl.constants import (
    DEFAULT_APP_REPOS,
    DEFAULT_DROPLET_NAME,
    DEFAULT_ENVIRONMENT,
    DEFAULT_REGION,
)
from octl.context import SetupContext
from octl.services.digitalocean import DigitalOceanService
from octl.services.github import GitHubService
from octl.services.hostinger import HostingerDnsService
from octl.services.neon import NeonService
from octl.services.resend import ResendService
from octl.services.ssh import SshService
from octl.services.validation import validate_repo_slug

NEW_CHOICE = "__new__"


class Requirement(enum.Enum):
    """Shared inputs a step needs collected before any step runs."""

    DOMAIN = "domain"
    ADMIN = "admin"
    SITE = "site"
    REPO = "repo"
    RESEND_KEY = "resend_key"
    NEON_TOKEN = "neon_token"
    DO_TOKEN = "do_token"
    GHCR_PAT = "ghcr_pat"


@dataclass(frozen=True)
class Step:
    id: str
    label: str
    description: str
    run: Callable[[SetupContext, "StepServices"], None]
    needs: FrozenSet[Requirement] = field(default_factory=frozenset)


def parse_step_selection(value, steps: Sequence[Step]) -> List[str]:
    """Turn "1,3" or "resend,dns" into step ids in catalog order."""
    if isinstance(value, (list, tuple)):
        tokens = [str(item).strip() for item in value]
    else:
        tokens = [token.strip() for token in str(value).split(",")]
    tokens = [token for token in tokens if token]
    if not tokens:
        raise click.BadParameter("Select at least one step.")

    ids = [step.id for step in steps]
    chosen = set()
    for token in tokens:
        if token.isdigit() and 1 <= int(token) <= len(ids):
            chosen.add(ids[int(token) - 1])
        elif token in ids:
            chosen.add(token)
        else:
            raise click.BadParameter(f"Unknown step '{token}'. Choose from: {', '.join(ids)}")
    return [step_id for step_id in ids if step_id in chosen]


def requirements_for(steps: Iterable[Step]) -> FrozenSet[Requirement]:
    needs: FrozenSet[Requirement] = frozenset()
    for step in steps:
        needs = needs | step.needs
    return needs


class StepServices:
    """Collaborators shared by every step.

    Provider adapters are built on demand from credentials held in the
    context; ``checkpoint`` persists the context after a micro-action.
    """

    def __init__(
        self,
        logger,
        console,
        prompter,
        command_runner,
        checkpoint: Callable[[], None],
        environment: str = DEFAULT_ENVIRONMENT,
        droplet_name: str = DEFAULT_DROPLET_NAME,
        default_region: str = DEFAULT_REGION,
        app_repos: Sequence[str] = DEFAULT_APP_REPOS,
        requests_module=requests,
        sleep: Callable[[float], None] = time.sleep,
        ssh_dir: Optional[Path] = None,
    ):
        self.logger = logger
        self.console = console
        self.prompter = prompter
        self.command_runner = command_runner
        self.checkpoint = checkpoint
        self.environment = environment
        self.droplet_name = droplet_name
        self.default_region = default_region
        self.app_repos = tuple(app_repos)
        self.requests = requests_module
        self.sleep = sleep
        self.github = GitHubService(command_runner=command_runner, logger=logger)
        self.ssh = SshService(command_runner=command_runner, logger=logger, ssh_dir=ssh_dir, sleep=sleep)

    def digitalocean(self, token: str) -> DigitalOceanService:
        return DigitalOceanService(
            token,
            logger=self.logger,
            command_runner=self.command_runner,
            requests_module=self.requests,
            default_region=self.default_region,
        )

    def neon(self, token: str) -> NeonService:
        return NeonService(
            token,
            logger=self.logger,
            console=self.console,
            requests_module=self.requests,
            sleep=self.sleep,
        )

    def resend(self, api_key: str) -> ResendService:
        return ResendService(api_key, logger=self.logger, requests_module=self.requests)

    def hostinger(self, token: str) -> HostingerDnsService:
        return HostingerDnsService(
            token, logger=self.logger, console=self.console, requests_module=self.requests
        )


def ensure_repo(context: SetupContext, services: StepServices):
    """Fill repository coordinates from ``gh`` or, failing that, a prompt."""
    if context.repo_owner and context.repo_name:
        return

    detected = services.github.detect_repo()
    if detected is None:
        detected = services.prompter.text("GitHub repo (owner/name)", validate=validate_repo_slug)
    context.repo_owner = detected.owner
    context.repo_name = detected.name
    services.checkpoint()


def read_deploy_key(context: SetupContext, services: StepServices) -> str:
    """Return the deploy private key contents, or "" when it cannot be read."""
    if not context.ssh_private_key_path:
        return ""
    try:
        return Path(context.ssh_private_key_path).expanduser().read_text(encoding="utf-8")
    except OSError as exc:
        services.logger.warning("Could not read SSH key at %s: %s", context.ssh_private_key_path, exc)
        return ""
