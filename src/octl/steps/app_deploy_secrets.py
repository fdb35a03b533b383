"""CI: deploy credentials and server settings on each application repository."""

from octl.context import SetupContext
from octl.errors import SetupError
from octl.errors_catalog import actionable_error
from octl.services.validation import validate_non_empty
from octl.steps.base import StepServices, ensure_repo, read_deploy_key

DISPATCH_TOKEN_SECRET = "ORG_DISPATCH_TOKEN"


def _set_dispatch_token(context: SetupContext, services: StepServices):
    """Optionally share a workflow dispatch token with every repository in the org."""
    prompter = services.prompter
    if not prompter.confirm(
        f"Set an organization-level {DISPATCH_TOKEN_SECRET} on {context.repo_owner}?",
        default=bool(context.org_dispatch_token),
    ):
        return

    context.org_dispatch_token = prompter.secret(
        "Dispatch token (repo and workflow scopes)",
        default=context.org_dispatch_token,
        validate=validate_non_empty,
    )
    services.checkpoint()

    try:
        services.github.set_secret(DISPATCH_TOKEN_SECRET, context.org_dispatch_token, org=context.repo_owner)
    except SetupError as exc:
        services.logger.warning("Organization secret %s not set: %s", DISPATCH_TOKEN_SECRET, exc)
        services.console.print(
            f"[yellow]Could not set {DISPATCH_TOKEN_SECRET} on {context.repo_owner}; "
            "it requires organization admin access.[/yellow]"
        )
        return
    services.console.print(f"[green]{DISPATCH_TOKEN_SECRET} set on {context.repo_owner}.[/green]")


def run(context: SetupContext, services: StepServices):
    console = services.console
    github = services.github

    ensure_repo(context, services)

    deploy_key = read_deploy_key(context, services) or context.github_secrets.get("DEPLOY_SSH_KEY", "")
    if not deploy_key:
        raise SetupError(actionable_error("missing_ssh_key"))
    if not context.droplet_ip:
        raise SetupError(actionable_error("missing_droplet_ip"))
    if not context.ghcr_username:
        context.ghcr_username = github.ensure_authenticated()

    secrets = {"DEPLOY_SSH_KEY": deploy_key, "GHCR_PAT": context.ghcr_pat}
    variables = {
        "DEPLOY_SERVER_IP": context.droplet_ip,
        "DEPLOY_SSH_PORT": str(context.ssh_port),
        "DEPLOY_USER": context.ssh_user,
        "DEPLOY_PATH": context.deploy_path,
        "GHCR_USERNAME": context.ghcr_username,
    }

    environment = services.environment
    for repo in services.app_repos:
        slug = f"{context.repo_owner}/{repo}"
        console.print(f"[bold blue]Configuring {slug}...[/bold blue]")

        if github.create_environment(context.repo_owner, repo, environment):
            console.print(f"[green]Environment {environment} ready.[/green]")
        else:
            services.logger.warning("Could not create environment %s on %s", environment, slug)
            console.print(
                f"[yellow]Could not create environment on {slug}; it may require admin access.[/yellow]"
            )

        for name in github.set_secrets(secrets, repo=slug, environment=environment):
            console.print(f"[yellow]Skipped {name}: empty value.[/yellow]")
        for name in github.set_variables(variables, repo=slug, environment=environment):
            console.print(f"[yellow]Skipped {name}: empty value.[/yellow]")
        console.print(f"[green]{len(secrets)} secrets and {len(variables)} variables set on {slug}.[/green]")

    _set_dispatch_token(context, services)

    console.print(f"[green]Deployment credentials configured on {len(services.app_repos)} app repos.[/green]")
