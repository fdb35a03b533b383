"""Database: Neon project and the platform's four databases."""

from octl.constants import NEON_DATABASES
from octl.context import SetupContext
from octl.services.neon import mask_dsn
from octl.steps.base import NEW_CHOICE, StepServices


def run(context: SetupContext, services: StepServices):
    console = services.console
    prompter = services.prompter
    neon = services.neon(context.neon_api_token)

    # The saved org id is only a hint; membership is resolved from the API every run.
    org_id = neon.resolve_org_id(prompter.choose_neon_organization)
    if org_id:
        context.neon_org_id = org_id
        console.print(f"[green]Using Neon organization {org_id}.[/green]")
    else:
        console.print("[dim]No Neon organization found, using the personal account.[/dim]")

    project_name = f"olympus.{context.domain or 'prod'}"
    project_id = ""

    console.print("[blue]Checking for existing Neon projects...[/blue]")
    projects = neon.list_projects()
    if projects:
        options = [(project.id, f"{project.name} [dim]{project.id}[/dim]") for project in projects]
        options.append((NEW_CHOICE, f"Create new [dim]({project_name})[/dim]"))
        chosen = prompter.select("Neon project", options, default=context.neon_project_id or None)
        if chosen != NEW_CHOICE:
            project_id = chosen

    if project_id:
        console.print(f"[dim]Reusing Neon project {project_id}.[/dim]")
        connection = neon.load_project(project_id)
    else:
        console.print("[blue]Creating Neon project...[/blue]")
        connection = neon.create_project(project_name)
        context.neon_project_id = connection.project_id
        services.checkpoint()
        console.print(f"[green]Created project {connection.project_id}.[/green]")

        console.print("[blue]Waiting for project to be ready...[/blue]")
        if neon.wait_for_project(connection.project_id):
            console.print("[green]Project is ready.[/green]")
        else:
            services.logger.debug("Neon project readiness not confirmed, continuing")

    context.neon_project_id = connection.project_id

    def report(name: str, created: bool):
        if created:
            console.print(f"[green]Created database {name}.[/green]")
        else:
            console.print(f"[dim]Database {name} already exists.[/dim]")

    console.print("[blue]Creating databases...[/blue]")
    dsns = neon.ensure_databases(connection, NEON_DATABASES, on_progress=report)
    context.neon_dsns.update(dsns)
    services.checkpoint()

    console.print("[blue]Neon connection strings:[/blue]")
    for name in NEON_DATABASES:
        console.print(f"  {name} [dim]-> {mask_dsn(context.neon_dsns[name])}[/dim]")
