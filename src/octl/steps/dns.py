"""DNS: platform A records and email records in the Hostinger zone."""

from octl.context import SetupContext
from octl.services.hostinger import desired_records
from octl.services.validation import validate_ipv4, validate_non_empty
from octl.steps.base import StepServices


def _shorten(value: str, width: int = 50) -> str:
    return value if len(value) <= width else f"{value[: width - 3]}..."


def run(context: SetupContext, services: StepServices):
    console = services.console
    prompter = services.prompter

    if not context.droplet_ip:
        context.droplet_ip = prompter.text("Droplet public IP address", validate=validate_ipv4)
        services.checkpoint()

    records = desired_records(context.droplet_ip, context.resend_dns_records)

    if not context.hostinger_token and prompter.confirm(
        "Do you have a Hostinger API token for automated DNS setup?", default=True
    ):
        context.hostinger_token = prompter.secret("Hostinger API token", validate=validate_non_empty)
        services.checkpoint()

    if not context.hostinger_token:
        console.print("[yellow]Skipping automated DNS. Add these records manually in Hostinger:[/yellow]")
        prompter.show_table(
            "DNS records",
            ("Type", "Name", "Value", "TTL"),
            [(record.type, record.name or "(root)", _shorten(record.value), record.ttl) for record in records],
        )
        console.print("After adding records, wait for DNS propagation and verify in the Resend dashboard.")
        return

    report = services.hostinger(context.hostinger_token).sync_records(context.domain, records)
    console.print(
        f"[green]DNS synced: {len(report.created)} created, {len(report.updated)} updated, "
        f"{len(report.skipped)} unchanged.[/green]"
    )
    if report.failed:
        services.logger.warning("DNS records not written: %s", ", ".join(report.failed))
        console.print(
            f"[yellow]{len(report.failed)} record(s) could not be written: "
            f"{', '.join(report.failed)}. Add them manually in Hostinger.[/yellow]"
        )
