"""Email: register the sending domain with Resend and collect its DNS records."""

from octl.context import SetupContext
from octl.steps.base import StepServices


def _shorten(value: str, width: int = 60) -> str:
    return value if len(value) <= width else f"{value[: width - 3]}..."


def run(context: SetupContext, services: StepServices):
    console = services.console
    resend = services.resend(context.resend_api_key)

    domain = resend.ensure_domain(context.domain)
    if domain.created:
        console.print(f"[green]Added domain {context.domain} to Resend.[/green]")
    else:
        console.print(f"[dim]Domain {context.domain} already exists in Resend.[/dim]")

    # The provider's current records replace any from a previous run.
    context.resend_dns_records = list(domain.records)
    services.checkpoint()

    if domain.records:
        services.prompter.show_table(
            "DNS records for email (applied by the DNS step)",
            ("Type", "Name", "Value"),
            [(record.type, record.name or "(root)", _shorten(record.value)) for record in domain.records],
        )

    if domain.status == "verified":
        console.print(f"[green]Domain {context.domain} is verified.[/green]")
    else:
        services.logger.warning("Resend domain %s is %s", context.domain, domain.status)
        console.print(
            "[yellow]Domain is not verified yet. Add the DNS records, then click Verify "
            "in the Resend dashboard.[/yellow]"
        )
