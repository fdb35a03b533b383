"""DigitalOcean compute adapter: droplets, SSH keys, firewalls and reserved IPs."""

import os
import re
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import requests

from octl.constants import DEFAULT_REGION, DROPLET_IMAGE, FIREWALL_NAME
from octl.errors import PrerequisiteError, ProviderError, SetupError
from octl.errors_catalog import actionable_error
from octl.models import (
    DropletInfo,
    DropletSize,
    FirewallInfo,
    Region,
    ReservedIpInfo,
    SshKeyInfo,
)
from octl.services.command_runner import install_hint
from octl.services.http_api import JsonApiClient

DO_API = "https://api.digitalocean.com/v2"

# Ports the platform's services listen on.
INBOUND_PORTS = (
    "22",
    "80",
    "443",
    "3001",
    "3003",
    "3100-3103",
    "4001",
    "4003",
    "4100-4103",
)
ANY_ADDRESS = ["0.0.0.0/0", "::/0"]

CLOUD_INIT = """#cloud-config
packages:
  - docker.io
  - docker-compose-plugin
runcmd:
  - systemctl enable --now docker
  - usermod -aG docker root
"""

IPV4_PATTERN = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")
ALREADY_ASSIGNED_MARKER = "is already assigned"
PAGE = {"per_page": 200}


class DigitalOceanService:
    """Idempotent operations over the DigitalOcean REST API and doctl."""

    def __init__(
        self,
        token: str,
        logger,
        command_runner,
        requests_module=requests,
        default_region: str = DEFAULT_REGION,
    ):
        self.logger = logger
        self.command_runner = command_runner
        self.default_region = default_region
        self.api = JsonApiClient(DO_API, token, requests_module=requests_module)

    # Droplets

    def list_droplets(self) -> List[DropletInfo]:
        data = self.api.get("droplets", "List droplets", params=PAGE)
        droplets: List[DropletInfo] = []
        for droplet in data.get("droplets") or []:
            networks = (droplet.get("networks") or {}).get("v4") or []
            public_ip = next(
                (net.get("ip_address") for net in networks if net.get("type") == "public"),
                "",
            )
            if not public_ip:
                continue
            droplets.append(DropletInfo(id=droplet["id"], name=droplet["name"], ip=public_ip))
        return droplets

    def lookup_droplet_ip(self, name: str) -> str:
        droplets = self.list_droplets()
        for droplet in droplets:
            if droplet.name == name:
                return droplet.ip

        available = ", ".join(droplet.name for droplet in droplets) or "(none)"
        raise SetupError(f'Droplet "{name}" not found. Available: {available}')

    def get_droplet_region(self, droplet_id: int) -> str:
        try:
            response = self.api.send("GET", f"droplets/{droplet_id}", "Get droplet")
        except ProviderError as exc:
            self.logger.debug("Droplet region lookup failed: %s", exc)
            return self.default_region
        if not self.api.is_ok(response):
            self.logger.debug("Could not read droplet %s region, using %s", droplet_id, self.default_region)
            return self.default_region
        droplet = self.api.decode(response).get("droplet") or {}
        return (droplet.get("region") or {}).get("slug") or self.default_region

    def list_regions(self) -> List[Region]:
        data = self.api.get("regions", "List regions", params=PAGE)
        return [
            Region(slug=region["slug"], name=region.get("name", region["slug"]))
            for region in data.get("regions") or []
            if region.get("available")
        ]

    def list_sizes(self) -> List[DropletSize]:
        data = self.api.get("sizes", "List sizes", params=PAGE)
        sizes = [
            DropletSize(
                slug=size["slug"],
                vcpus=size.get("vcpus", 0),
                memory=size.get("memory", 0),
                disk=size.get("disk", 0),
                price_monthly=float(size.get("price_monthly", 0)),
                regions=list(size.get("regions") or []),
            )
            for size in data.get("sizes") or []
            if size.get("available") and str(size.get("slug", "")).startswith("s-")
        ]
        return sorted(sizes, key=lambda size: size.price_monthly)

    def list_regions_and_sizes(self) -> Tuple[List[Region], List[DropletSize]]:
        """Fetch regions and sizes concurrently; both are independent reads."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            regions = executor.submit(self.list_regions)
            sizes = executor.submit(self.list_sizes)
            return regions.result(), sizes.result()

    def authenticate_cli(self):
        if not self.command_runner.exists("doctl"):
            raise PrerequisiteError(
                actionable_error("tool_missing", tool="doctl", hint=install_hint("doctl"))
            )
        self.command_runner.run_or_fail(["doctl", "auth", "init", "--access-token", self.api.token])

    def create_droplet(
        self,
        name: str,
        region: str,
        size: str,
        ssh_key_fingerprint: Optional[str] = None,
    ) -> DropletInfo:
        """Create a droplet that boots with Docker installed.

        Returns once DigitalOcean reports it active with an IP; SSH may still
        be unavailable at that point.
        """
        self.authenticate_cli()

        fd, init_path = tempfile.mkstemp(prefix="olympusoss-cloud-init-", suffix=".yml")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(CLOUD_INIT)

            cmd = [
                "doctl",
                "compute",
                "droplet",
                "create",
                name,
                "--region",
                region,
                "--image",
                DROPLET_IMAGE,
                "--size",
                size,
                "--user-data-file",
                init_path,
                "--wait",
                "--format",
                "ID,PublicIPv4",
                "--no-header",
            ]
            if ssh_key_fingerprint:
                cmd.extend(["--ssh-keys", ssh_key_fingerprint])

            output = self.command_runner.run_or_fail(cmd, timeout=180)
        finally:
            if os.path.exists(init_path):
                os.remove(init_path)

        parts = output.split()
        if len(parts) < 2 or not parts[0].isdigit() or not IPV4_PATTERN.match(parts[1]):
            raise SetupError(f"Could not parse droplet ID and IP from doctl output: {output}")

        return DropletInfo(id=int(parts[0]), name=name, ip=parts[1])

    # SSH keys

    def add_ssh_key(self, name: str, public_key: str) -> SshKeyInfo:
        """Register ``public_key``, reusing a key with the same name or material."""
        response = self.api.send("GET", "account/keys", "List SSH keys", params=PAGE)
        if self.api.is_ok(response):
            for key in self.api.decode(response).get("ssh_keys") or []:
                if key.get("name") == name or (key.get("public_key") or "").strip() == public_key.strip():
                    return SshKeyInfo(id=key["id"], fingerprint=key["fingerprint"])

        data = self.api.post(
            "account/keys",
            "Add SSH key to DigitalOcean",
            payload={"name": name, "public_key": public_key},
        )
        key = data["ssh_key"]
        return SshKeyInfo(id=key["id"], fingerprint=key["fingerprint"])

    # Firewall

    def ensure_firewall(self, droplet_id: int, name: str = FIREWALL_NAME) -> FirewallInfo:
        response = self.api.send("GET", "firewalls", "List firewalls", params=PAGE)
        if self.api.is_ok(response):
            for firewall in self.api.decode(response).get("firewalls") or []:
                if firewall.get("name") == name and droplet_id in (firewall.get("droplet_ids") or []):
                    return FirewallInfo(id=firewall["id"], name=firewall["name"])

        inbound_rules = [
            {"protocol": "tcp", "ports": ports, "sources": {"addresses": ANY_ADDRESS}}
            for ports in INBOUND_PORTS
        ]
        outbound_rules = [
            {"protocol": "tcp", "ports": "1-65535", "destinations": {"addresses": ANY_ADDRESS}},
            {"protocol": "udp", "ports": "1-65535", "destinations": {"addresses": ANY_ADDRESS}},
            {"protocol": "icmp", "destinations": {"addresses": ANY_ADDRESS}},
        ]
        data = self.api.post(
            "firewalls",
            "Create firewall",
            payload={
                "name": name,
                "droplet_ids": [droplet_id],
                "inbound_rules": inbound_rules,
                "outbound_rules": outbound_rules,
            },
        )
        firewall = data["firewall"]
        return FirewallInfo(id=firewall["id"], name=firewall["name"], created=True)

    # Reserved IPs

    def list_reserved_ips(self) -> List[ReservedIpInfo]:
        data = self.api.get("reserved_ips", "List reserved IPs", params=PAGE)
        return [
            ReservedIpInfo(
                ip=item["ip"],
                region=(item.get("region") or {}).get("slug", ""),
                droplet_id=(item.get("droplet") or {}).get("id"),
            )
            for item in data.get("reserved_ips") or []
        ]

    def create_reserved_ip(self, region: str) -> str:
        data = self.api.post("reserved_ips", "Create reserved IP", payload={"region": region})
        return data["reserved_ip"]["ip"]

    def assign_reserved_ip(self, ip: str, droplet_id: int):
        operation = f"Assign reserved IP {ip}"
        response = self.api.send(
            "POST",
            f"reserved_ips/{ip}/actions",
            operation,
            payload={"type": "assign", "droplet_id": droplet_id},
        )
        if self.api.is_ok(response):
            return

        body = self.api.body_text(response)
        if ALREADY_ASSIGNED_MARKER in body:
            self.logger.debug("Reserved IP %s already assigned to droplet %s", ip, droplet_id)
            return
        raise ProviderError(operation, response.status_code, body)
