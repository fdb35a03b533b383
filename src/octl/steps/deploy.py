"""CI: dispatch the deploy workflow."""

from octl.constants import DEPLOY_WORKFLOW
from octl.context import SetupContext
from octl.errors import SetupError
from octl.errors_catalog import actionable_error
from octl.steps.base import StepServices, ensure_repo


def run(context: SetupContext, services: StepServices):
    console = services.console
    environment = services.environment

    if not services.prompter.confirm("Trigger the deploy workflow now?", default=True):
        console.print(f"Skipped. Deploy manually: Actions > Deploy > Run workflow > {environment}.")
        return

    ensure_repo(context, services)
    console.print("[blue]Triggering deploy workflow...[/blue]")
    try:
        services.github.trigger_workflow(context.repo_slug, DEPLOY_WORKFLOW, {"environment": environment})
    except SetupError as exc:
        services.logger.warning("Deploy workflow dispatch failed: %s", exc)
        console.print(
            "[bold red]Error:[/bold red] "
            + actionable_error("workflow_dispatch_failed", workflow=DEPLOY_WORKFLOW, environment=environment)
        )
        return

    console.print("[green]Deploy workflow triggered.[/green]")
    console.print(f"Monitor progress: Actions > Deploy in {context.repo_slug}.")
