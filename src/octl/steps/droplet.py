"""Compute: deploy key, droplet, firewall, reserved IP and SSH access."""

from pathlib import Path
from typing import Optional

from octl.constants import DEFAULT_SIZE, DEFAULT_SSH_USER, SSH_KEY_NAME
from octl.context import SetupContext
from octl.errors import SetupError
from octl.models import DropletInfo
from octl.services.reserved_ip import ReservationStatus, ReservedIpReconciler
from octl.services.validation import validate_ipv4, validate_non_empty
from octl.steps.base import NEW_CHOICE, StepServices

MANUAL_CHOICE = "__manual__"


def _format_memory(megabytes: int) -> str:
    if megabytes >= 1024:
        return f"{megabytes // 1024}GB"
    return f"{megabytes}MB"


def _create_droplet(context: SetupContext, services: StepServices, digitalocean, fingerprint: str) -> DropletInfo:
    console = services.console
    prompter = services.prompter

    name = prompter.text("Droplet name", default=context.droplet_name or services.droplet_name)

    console.print("[blue]Fetching available regions and sizes...[/blue]")
    regions, sizes = digitalocean.list_regions_and_sizes()
    region = prompter.select(
        "Region",
        [(item.slug, f"{item.slug} [dim]{item.name}[/dim]") for item in regions],
        default=services.default_region,
    )

    region_sizes = [size for size in sizes if region in size.regions]
    if not region_sizes:
        raise SetupError(f"No droplet sizes are available in region {region}.")
    size = prompter.select(
        "Droplet size",
        [
            (
                item.slug,
                f"{item.slug}  [dim]{item.vcpus} vCPU / {_format_memory(item.memory)} RAM / "
                f"{item.disk}GB disk[/dim]  [green]${item.price_monthly:g}/mo[/green]",
            )
            for item in region_sizes
        ],
        default=DEFAULT_SIZE,
    )

    console.print("[blue]Creating Droplet (this takes 1-2 minutes)...[/blue]")
    droplet = digitalocean.create_droplet(name, region, size, fingerprint)
    context.use_droplet(droplet.id, droplet.name, droplet.ip)
    services.checkpoint()
    console.print(f"[green]Droplet created: {droplet.name} ({droplet.ip}).[/green]")

    console.print("[blue]Waiting for SSH to become available...[/blue]")
    if services.ssh.wait_for_ssh(droplet.ip, DEFAULT_SSH_USER, context.ssh_private_key_path):
        console.print("[green]SSH is ready.[/green]")
    else:
        services.logger.warning("SSH on %s did not answer in time", droplet.ip)
        console.print(
            "[yellow]SSH is not responding yet; cloud-init may need a few more minutes.[/yellow]"
        )
    return droplet


def _choose_droplet(context: SetupContext, services: StepServices, digitalocean, fingerprint: str):
    """Select an existing droplet, create one, or take a manual IP; returns True when created."""
    console = services.console
    prompter = services.prompter

    console.print("[blue]Checking for existing Droplets...[/blue]")
    droplets = digitalocean.list_droplets()

    if droplets:
        options = [(str(item.id), f"{item.name} [dim]{item.ip}[/dim]") for item in droplets]
        options.append((NEW_CHOICE, "Create new [dim](provision via doctl)[/dim]"))
        default: Optional[str] = str(context.droplet_id) if context.droplet_id is not None else None
        chosen = prompter.select("DigitalOcean Droplet", options, default=default)
        if chosen == NEW_CHOICE:
            _create_droplet(context, services, digitalocean, fingerprint)
            return True
        droplet = next(item for item in droplets if str(item.id) == chosen)
        context.use_droplet(droplet.id, droplet.name, droplet.ip)
        return False

    mode = prompter.select(
        "No Droplets found",
        [
            (NEW_CHOICE, "Create new [dim](provision via doctl)[/dim]"),
            (MANUAL_CHOICE, "Enter IP manually [dim](existing server)[/dim]"),
        ],
    )
    if mode == NEW_CHOICE:
        _create_droplet(context, services, digitalocean, fingerprint)
        return True

    ip = prompter.text("Server IP address", validate=validate_ipv4)
    name = prompter.text("Server name (for reference)", default=context.droplet_name or services.droplet_name)
    context.use_droplet(None, name, ip)
    return False


def _attach_reserved_ip(context: SetupContext, services: StepServices, digitalocean):
    console = services.console
    reconciler = ReservedIpReconciler(digitalocean, logger=services.logger, console=console)

    console.print("[blue]Checking for reserved IPs...[/blue]")
    outcome = reconciler.reconcile(context.droplet_id, services.prompter.choose_reserved_ip)
    context.use_reserved_ip(outcome.ip)
    services.checkpoint()

    if outcome.status is ReservationStatus.ALREADY_ATTACHED:
        console.print(f"[dim]Reserved IP {outcome.ip} is already assigned to this droplet.[/dim]")
    else:
        console.print(f"[green]Reserved IP {outcome.ip} assigned; use it for DNS and deploy.[/green]")


def run(context: SetupContext, services: StepServices):
    console = services.console
    digitalocean = services.digitalocean(context.do_token)

    private_key, public_key, reused = services.ssh.ensure_deploy_key(
        lambda path: services.prompter.confirm(f"SSH key {path} already exists. Reuse it?", default=True)
    )
    context.ssh_private_key_path = str(private_key)
    context.ssh_public_key_path = str(public_key)
    services.checkpoint()
    if reused:
        console.print(f"[dim]Reusing SSH key {private_key}.[/dim]")
    else:
        console.print(f"[green]Generated SSH key {private_key}.[/green]")

    console.print("[blue]Registering deploy SSH key with DigitalOcean...[/blue]")
    key_info = digitalocean.add_ssh_key(SSH_KEY_NAME, Path(public_key).read_text(encoding="utf-8").strip())
    console.print(f"[green]Deploy key registered ({key_info.fingerprint}).[/green]")

    created = _choose_droplet(context, services, digitalocean, key_info.fingerprint)
    services.checkpoint()

    if context.droplet_id is not None:
        console.print("[blue]Ensuring cloud firewall is configured...[/blue]")
        firewall = digitalocean.ensure_firewall(context.droplet_id)
        state = "created" if firewall.created else "active"
        console.print(f"[green]Firewall {firewall.name} {state}.[/green]")

        _attach_reserved_ip(context, services, digitalocean)

    context.ssh_user = services.prompter.text(
        "SSH user on the Droplet",
        default=context.ssh_user or DEFAULT_SSH_USER,
        validate=validate_non_empty,
    )
    services.checkpoint()

    # New droplets boot with the key already authorized.
    if not created:
        console.print(f"[blue]Copying deploy public key to {context.droplet_ip}...[/blue]")
        services.ssh.copy_public_key(context.droplet_ip, context.ssh_user, context.ssh_public_key_path)
        console.print("[green]Deploy key installed on Droplet.[/green]")

    console.print("[blue]Verifying deploy key authenticates to Droplet...[/blue]")
    services.ssh.verify_deploy_key(
        context.droplet_ip,
        context.ssh_user,
        context.ssh_private_key_path,
        context.ssh_public_key_path,
    )
    console.print("[green]Deploy key verified; GitHub Actions will be able to SSH in.[/green]")
