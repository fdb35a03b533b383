"""CI: public URLs and deployment settings as environment variables."""

from typing import Dict

from octl.context import SetupContext
from octl.steps.base import StepServices, ensure_repo


def build_variables(context: SetupContext) -> Dict[str, str]:
    domain = context.domain
    variables = {
        "DEPLOY_PATH": context.deploy_path,
        "DEPLOY_SSH_PORT": str(context.ssh_port),
        "GHCR_USERNAME": context.ghcr_username,
        "CIAM_HERA_PUBLIC_URL": f"https://login.ciam.{domain}",
        "IAM_HERA_PUBLIC_URL": f"https://login.iam.{domain}",
        "CIAM_HYDRA_PUBLIC_URL": f"https://oauth.ciam.{domain}",
        "IAM_HYDRA_PUBLIC_URL": f"https://oauth.iam.{domain}",
        "CIAM_ATHENA_PUBLIC_URL": f"https://admin.ciam.{domain}",
        "IAM_ATHENA_PUBLIC_URL": f"https://admin.iam.{domain}",
        "SITE_PUBLIC_URL": f"https://olympus.{domain}",
        "SMTP_FROM_EMAIL": f"noreply@{domain}",
        "ATHENA_CIAM_OAUTH_CLIENT_ID": "athena-ciam-client",
        "ATHENA_IAM_OAUTH_CLIENT_ID": "athena-iam-client",
        "ADMIN_EMAIL": context.admin_email or f"admin@{domain}",
        "HERA_IMAGE_TAG": "latest",
        "ATHENA_IMAGE_TAG": "latest",
        "SITE_IMAGE_TAG": "latest",
    }
    if context.include_site:
        variables["SITE_CIAM_CLIENT_ID"] = "site-ciam-client"
        variables["SITE_IAM_CLIENT_ID"] = "site-iam-client"
    return variables


def run(context: SetupContext, services: StepServices):
    console = services.console

    ensure_repo(context, services)
    if not context.ghcr_username:
        context.ghcr_username = services.github.ensure_authenticated()

    variables = build_variables(context)
    context.github_variables = variables
    services.checkpoint()

    environment = services.environment
    console.print(f"[blue]Setting {len(variables)} variables on the {environment} environment...[/blue]")
    skipped = services.github.set_variables(variables, repo=context.repo_slug, environment=environment)

    for name, value in variables.items():
        if name in skipped:
            services.logger.warning("Skipping variable %s: empty value", name)
            console.print(f"[yellow]Skipped {name}: empty value.[/yellow]")
        else:
            console.print(f"[green]{name}[/green] [dim]=[/dim] {value}")

    console.print(f"[green]{len(variables) - len(skipped)} variables configured.[/green]")
