"""CI: create the deployment environment on the platform repository."""

from octl.context import SetupContext
from octl.steps.base import StepServices, ensure_repo


def run(context: SetupContext, services: StepServices):
    console = services.console
    github = services.github

    login = github.ensure_authenticated()
    context.ghcr_username = context.ghcr_username or login
    console.print(f"[green]Authenticated as {login}.[/green]")

    ensure_repo(context, services)
    console.print(f"[green]Using repo {context.repo_slug}.[/green]")

    if github.create_environment(context.repo_owner, context.repo_name, services.environment):
        console.print(f"[green]Environment {services.environment} is ready.[/green]")
    else:
        services.logger.warning("Could not create environment %s on %s", services.environment, context.repo_slug)
        console.print(
            "[yellow]Could not create environment; it may require admin access. "
            "Create it manually in the repository settings.[/yellow]"
        )
