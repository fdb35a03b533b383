"""CI: derived and infrastructure secrets on the deployment environment."""

import re
from typing import Dict

from octl.constants import DEFAULT_SSH_USER, NEON_DATABASES
from octl.context import SetupContext
from octl.errors import SetupError
from octl.errors_catalog import actionable_error
from octl.services.validation import validate_file_path
from octl.steps.base import StepServices, ensure_repo, read_deploy_key

DSN_HOST_PATTERN = re.compile(r"@([^/]+)/")


def dsn_secret_name(database: str) -> str:
    return f"NEON_{database.upper()}_DSN"


def build_secrets(context: SetupContext, deploy_key: str) -> Dict[str, str]:
    secrets: Dict[str, str] = {
        "DEPLOY_SSH_KEY": deploy_key,
        "DEPLOY_USER": context.ssh_user or DEFAULT_SSH_USER,
        "DEPLOY_SERVER_IP": context.droplet_ip,
        "GHCR_PAT": context.ghcr_pat,
    }
    for database in NEON_DATABASES:
        secrets[dsn_secret_name(database)] = context.neon_dsns.get(database, "")
    secrets.update(context.derived_secrets)
    secrets["RESEND_API_KEY"] = context.resend_api_key
    secrets["ADMIN_PASSWORD"] = context.admin_password
    return secrets


def display_value(name: str, value: str) -> str:
    if name.endswith("_DSN"):
        match = DSN_HOST_PATTERN.search(value)
        return f"***@{match.group(1)}/***" if match else "***"
    return f"{value[:8]}..."


def run(context: SetupContext, services: StepServices):
    console = services.console

    ensure_repo(context, services)

    if not context.derived_secrets:
        raise SetupError(actionable_error("missing_derived_secrets"))

    deploy_key = read_deploy_key(context, services)
    if not deploy_key:
        console.print("[yellow]Deploy SSH key not found from the droplet step.[/yellow]")
        context.ssh_private_key_path = services.prompter.text(
            "Path to the deploy SSH private key", validate=validate_file_path
        )
        deploy_key = read_deploy_key(context, services)

    secrets = build_secrets(context, deploy_key)
    context.github_secrets = secrets
    services.checkpoint()

    environment = services.environment
    console.print(f"[blue]Setting {len(secrets)} secrets on the {environment} environment...[/blue]")
    skipped = services.github.set_secrets(secrets, repo=context.repo_slug, environment=environment)

    for name, value in secrets.items():
        if name in skipped:
            services.logger.warning("Skipping secret %s: empty value", name)
            console.print(f"[yellow]Skipped {name}: empty value.[/yellow]")
        else:
            console.print(f"[green]{name}[/green] [dim]= {display_value(name, value)}[/dim]")

    console.print(f"[green]{len(secrets) - len(skipped)} secrets configured.[/green]")
