import logging
import signal
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import click
import requests
from rich.console import Console
from rich.table import Table

from .constants import (
    APP_SUBDOMAINS,
    DEFAULT_APP_REPOS,
    DEFAULT_DROPLET_NAME,
    DEFAULT_ENVIRONMENT,
    DEFAULT_REGION,
    DNS_TTL,
)
from .context import SetupContext
from .errors import PrerequisiteError, SetupCancelled, SetupError
from .errors_catalog import actionable_error
from .prompts import Prompter
from .services.command_runner import CommandRunner, install_hint
from .services.filesystem import FileSystemService
from .services.reference import ReferenceService
from .services.secrets import ITERATIONS, derive_all_secrets
from .services.settings import SettingsService
from .services.validation import (
    min_length,
    validate_domain,
    validate_email,
    validate_non_empty,
    validate_repo_slug,
    validate_resend_key,
)
from .steps import STEPS, Requirement, Step, StepServices, requirements_for, steps_by_id

console = Console()
logger = logging.getLogger("octl")

REQUIRED_TOOLS = ("gh", "ssh-keygen")
CANCEL_EXCEPTIONS = (KeyboardInterrupt, click.Abort, SetupCancelled)


class CancellationScope:
    """Routes SIGINT and SIGTERM to ``SetupCancelled`` for the duration of a run.

    Previous handlers are restored on exit. Outside the main thread signal
    handlers cannot be installed and the scope does nothing.
    """

    SIGNALS = tuple(
        sig for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)) if sig is not None
    )

    def __init__(self):
        self._previous = {}

    def __enter__(self):
        if threading.current_thread() is threading.main_thread():
            for sig in self.SIGNALS:
                self._previous[sig] = signal.signal(sig, self._handle)
        return self

    def __exit__(self, exc_type, exc, traceback):
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()
        return False

    @staticmethod
    def _handle(signum, _frame):
        raise SetupCancelled(signum)


class SetupWizard:
    def __init__(
        self,
        settings_dir: Path,
        step_ids: Optional[Sequence[str]] = None,
        environment: str = DEFAULT_ENVIRONMENT,
        droplet_name: str = DEFAULT_DROPLET_NAME,
        default_region: str = DEFAULT_REGION,
        app_repos: Sequence[str] = DEFAULT_APP_REPOS,
        catalog: Sequence[Step] = STEPS,
        prompter=None,
        command_runner=None,
        requests_module=requests,
        sleep: Callable[[float], None] = time.sleep,
        secret_iterations: int = ITERATIONS,
    ):
        self.settings_dir = Path(settings_dir)
        self.step_ids = list(step_ids) if step_ids else []
        self.environment = environment
        self.app_repos = tuple(app_repos)
        self.catalog = list(catalog)
        self.secret_iterations = secret_iterations

        self.prompter = prompter or Prompter(console)
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.settings_service = SettingsService(
            settings_dir=self.settings_dir,
            filesystem=self.filesystem_service,
            logger=logger,
        )
        self.reference_service = ReferenceService(
            settings_dir=self.settings_dir,
            filesystem=self.filesystem_service,
            logger=logger,
        )
        self.context = SetupContext()
        self.services = StepServices(
            logger=logger,
            console=console,
            prompter=self.prompter,
            command_runner=self.command_runner,
            checkpoint=self.save,
            environment=environment,
            droplet_name=droplet_name,
            default_region=default_region,
            app_repos=self.app_repos,
            requests_module=requests_module,
            sleep=sleep,
        )

    # Persistence

    def save(self):
        self.settings_service.save(self.context)

    def _save_partial(self):
        if not self.context.has_progress():
            return
        try:
            path = self.settings_service.save(self.context)
        except SetupError as exc:
            logger.warning("Could not save progress: %s", exc)
            return
        console.print(f"[dim]Progress saved to {path}[/dim]")

    # Prerequisites and selection

    def check_prerequisites(self):
        for tool in REQUIRED_TOOLS:
            if not self.command_runner.exists(tool):
                raise PrerequisiteError(actionable_error("tool_missing", tool=tool, hint=install_hint(tool)))
            console.print(f"[green]{tool} found.[/green]")

    def select_steps(self) -> List[Step]:
        step_ids = self.step_ids or self.prompter.select_steps(self.catalog)
        selected = steps_by_id(step_ids, self.catalog)
        if not selected:
            raise SetupError("No steps selected.")
        return selected

    # Input collection

    def collect_inputs(self, selected: Sequence[Step]):
        """Prompt once for every input the selected steps need, saving after each."""
        ctx = self.context
        needs = requirements_for(selected)
        prompter = self.prompter

        if Requirement.DOMAIN in needs:
            ctx.domain = prompter.text(
                "Domain name (e.g. example.com)", default=ctx.domain, validate=validate_domain
            )
            self.save()

        self.collect_passphrase()
        self.save()

        if Requirement.ADMIN in needs:
            ctx.admin_email = prompter.text(
                "Admin email (initial IAM admin identity)",
                default=ctx.admin_email or (f"admin@{ctx.domain}" if ctx.domain else None),
                validate=validate_email,
            )
            self.save()
            ctx.admin_password = prompter.secret(
                "Admin password (initial IAM admin identity)",
                default=ctx.admin_password,
                validate=min_length(label="Password"),
            )
            self.save()

        if Requirement.SITE in needs:
            ctx.include_site = prompter.confirm(
                "Include the site OAuth2 clients?",
                default=ctx.include_site if ctx.include_site is not None else True,
            )
            self.save()

        if Requirement.REPO in needs:
            default_repo = ctx.repo_slug
            if not default_repo:
                detected = self.services.github.detect_repo()
                default_repo = detected.slug if detected else None
            coordinates = prompter.text("GitHub repo (owner/name)", default=default_repo, validate=validate_repo_slug)
            ctx.repo_owner = coordinates.owner
            ctx.repo_name = coordinates.name
            self.save()

        if Requirement.RESEND_KEY in needs:
            prompter.info("Create an API key at: https://resend.com/api-keys")
            ctx.resend_api_key = prompter.secret(
                "Resend API key (starts with re_)", default=ctx.resend_api_key, validate=validate_resend_key
            )
            self.save()

        if Requirement.NEON_TOKEN in needs:
            prompter.info("Create an API key at: https://console.neon.tech/app/settings/api-keys")
            ctx.neon_api_token = prompter.secret(
                "Neon API token", default=ctx.neon_api_token, validate=validate_non_empty
            )
            self.save()

        if Requirement.DO_TOKEN in needs:
            prompter.info("Create an API token at: https://cloud.digitalocean.com/account/api/tokens")
            ctx.do_token = prompter.secret(
                "DigitalOcean API token", default=ctx.do_token, validate=validate_non_empty
            )
            self.save()

        if Requirement.GHCR_PAT in needs:
            prompter.info("Create a PAT at: https://github.com/settings/tokens (scope: read:packages)")
            ctx.ghcr_pat = prompter.secret(
                "GitHub PAT (read:packages)", default=ctx.ghcr_pat, validate=validate_non_empty
            )
            self.save()

    def collect_passphrase(self):
        """A saved passphrase may be kept; a new one must be typed twice."""
        prompter = self.prompter
        validate = min_length(label="Passphrase")

        if self.context.passphrase:
            self.context.passphrase = prompter.secret(
                "Passphrase (used to derive all secrets)",
                default=self.context.passphrase,
                validate=validate,
            )
            return

        while True:
            passphrase = prompter.secret(
                "Passphrase (used to derive all secrets, remember this!)", validate=validate
            )
            if prompter.secret("Confirm passphrase") == passphrase:
                self.context.passphrase = passphrase
                return
            console.print("[bold red]Passphrases do not match.[/bold red]")
            if not prompter.confirm("Would you like to try again?", default=True):
                raise click.Abort()

    def derive_secrets(self):
        console.print(f"[blue]Deriving secrets from passphrase (PBKDF2, {self.secret_iterations:,} iterations)...[/blue]")
        self.context.derived_secrets = derive_all_secrets(
            self.context.passphrase,
            bool(self.context.include_site),
            iterations=self.secret_iterations,
        )
        self.save()
        console.print(f"[green]Derived {len(self.context.derived_secrets)} secrets.[/green]")

    # Step execution

    def run_steps(self, selected: Sequence[Step]) -> Optional[List[str]]:
        """Run each step with retry-or-continue; None means the user chose to stop."""
        failed: List[str] = []
        total = len(selected)

        for index, step in enumerate(selected, start=1):
            console.rule(f"[bold blue]Step {index}/{total}: {step.label}[/bold blue]")
            while True:
                try:
                    step.run(self.context, self.services)
                    self.save()
                    break
                except CANCEL_EXCEPTIONS:
                    raise
                except Exception as exc:
                    self.save()
                    logger.debug("Step %s failed", step.id, exc_info=True)
                    console.print(f"[bold red]Step {step.label} failed:[/bold red] {exc}")

                    if self.prompter.confirm("Would you like to retry this step?", default=True):
                        console.print(f"[blue]Retrying {step.label}...[/blue]")
                        continue
                    if self.prompter.confirm("Would you like to continue with the remaining steps?", default=True):
                        failed.append(step.id)
                        break

                    logger.error("Step %s failed: %s", step.id, exc)
                    console.print("Exiting. Re-run octl and select only the remaining steps.")
                    return None

        return failed

    # Summary

    def print_summary(self, failed: Sequence[str]):
        ctx = self.context
        table = Table(title="Setup Complete", show_header=False, title_justify="left")
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for label, value in (
            ("Domain", ctx.domain),
            ("Droplet IP", ctx.droplet_ip),
            ("Reserved IP", ctx.reserved_ip),
            ("Neon project", ctx.neon_project_id),
            ("Repo", ctx.repo_slug),
            ("Admin email", ctx.admin_email),
        ):
            if value:
                table.add_row(label, value)
        console.print(table)

        if ctx.domain and ctx.droplet_ip:
            self.prompter.show_table(
                f"A records (all point to {ctx.droplet_ip})",
                ("Type", "Name", "Value", "TTL"),
                [("A", name, ctx.droplet_ip, str(DNS_TTL)) for name in APP_SUBDOMAINS],
            )
        if ctx.resend_dns_records:
            self.prompter.show_table(
                "Resend email DNS records",
                ("Type", "Name", "Value", "Priority"),
                [
                    (
                        record.type,
                        record.name or "(root)",
                        record.value if len(record.value) <= 60 else f"{record.value[:57]}...",
                        "" if record.priority is None else str(record.priority),
                    )
                    for record in ctx.resend_dns_records
                ],
            )

        if failed:
            console.print(f"[yellow]Steps that did not complete: {', '.join(failed)}[/yellow]")

    # Entry point

    def _run(self) -> int:
        console.print("[bold blue]octl: OlympusOSS production setup[/bold blue]")
        self.check_prerequisites()

        selected = self.select_steps()
        self.context.selected_steps = [step.id for step in selected]
        if self.settings_service.load_into(self.context):
            console.print(f"[dim]Loaded previous settings from {self.settings_service.settings_file}[/dim]")

        self.collect_inputs(selected)
        if self.context.passphrase:
            self.derive_secrets()

        failed = self.run_steps(selected)
        if failed is None:
            return 1

        settings_file = self.settings_service.save(self.context)
        console.print(f"[green]Settings saved to {settings_file}[/green]")
        reference_file = self.reference_service.write(
            self.context, environment=self.environment, app_repos=self.app_repos
        )
        console.print(f"[green]Reference written to {reference_file}[/green]")

        self.print_summary(failed)
        return 0

    def run(self) -> int:
        with CancellationScope():
            try:
                return self._run()
            except CANCEL_EXCEPTIONS:
                console.print("\n[yellow]Setup cancelled.[/yellow]")
                logger.info("Setup cancelled by user")
                self._save_partial()
                return 0
            except SetupError as exc:
                console.print(f"[bold red]Error:[/bold red] {exc}")
                logger.error(str(exc))
                if not isinstance(exc, PrerequisiteError):
                    self._save_partial()
                return 1
            except Exception as exc:
                console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
                logger.exception("Unexpected error")
                self._save_partial()
                return 1
