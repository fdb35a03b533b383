"""Setup context threaded through every wizard step."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_DEPLOY_PATH,
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    NEON_DATABASES,
)
from .models import DnsRecord

STRING_FIELDS = (
    "domain",
    "passphrase",
    "admin_email",
    "admin_password",
    "droplet_ip",
    "droplet_name",
    "reserved_ip",
    "ssh_private_key_path",
    "ssh_public_key_path",
    "resend_api_key",
    "hostinger_token",
    "neon_api_token",
    "neon_org_id",
    "neon_project_id",
    "ghcr_pat",
    "ghcr_username",
    "org_dispatch_token",
    "repo_owner",
    "repo_name",
    "do_token",
)

# Fields whose dataclass default counts as "not collected yet".
DEFAULTED_FIELDS = {
    "ssh_user": DEFAULT_SSH_USER,
    "ssh_port": DEFAULT_SSH_PORT,
    "deploy_path": DEFAULT_DEPLOY_PATH,
}

MAP_FIELDS = ("neon_dsns", "derived_secrets", "github_secrets", "github_variables")


def _empty_dsns() -> Dict[str, str]:
    return {name: "" for name in NEON_DATABASES}


@dataclass
class SetupContext:
    """Mutable record of everything collected or derived during a run."""

    selected_steps: List[str] = field(default_factory=list)

    domain: str = ""
    passphrase: str = ""
    admin_email: str = ""
    admin_password: str = ""
    # None until the site question has been answered once.
    include_site: Optional[bool] = None

    droplet_ip: str = ""
    droplet_name: str = ""
    droplet_id: Optional[int] = None
    reserved_ip: str = ""

    ssh_private_key_path: str = ""
    ssh_public_key_path: str = ""
    ssh_user: str = DEFAULT_SSH_USER
    ssh_port: int = DEFAULT_SSH_PORT
    deploy_path: str = DEFAULT_DEPLOY_PATH

    resend_api_key: str = ""
    resend_dns_records: List[DnsRecord] = field(default_factory=list)
    hostinger_token: str = ""

    neon_api_token: str = ""
    neon_org_id: str = ""
    neon_project_id: str = ""
    neon_dsns: Dict[str, str] = field(default_factory=_empty_dsns)

    ghcr_pat: str = ""
    ghcr_username: str = ""
    org_dispatch_token: str = ""
    repo_owner: str = ""
    repo_name: str = ""

    do_token: str = ""

    derived_secrets: Dict[str, str] = field(default_factory=dict)
    github_secrets: Dict[str, str] = field(default_factory=dict)
    github_variables: Dict[str, str] = field(default_factory=dict)

    @property
    def repo_slug(self) -> str:
        if not self.repo_owner or not self.repo_name:
            return ""
        return f"{self.repo_owner}/{self.repo_name}"

    def has_progress(self) -> bool:
        return bool(self.domain or self.passphrase or self.do_token)

    def use_reserved_ip(self, ip: str):
        """Record a reserved IP; it becomes the address used for DNS and deploy."""
        self.reserved_ip = ip
        self.droplet_ip = ip

    def use_droplet(self, droplet_id: Optional[int], name: str, ip: str):
        # A reserved IP recorded for another droplet no longer applies.
        if droplet_id is None or droplet_id != self.droplet_id:
            self.reserved_ip = ""
        self.droplet_id = droplet_id
        self.droplet_name = name
        self.droplet_ip = self.reserved_ip or ip

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def merge_saved(self, saved: Dict[str, Any]):
        """Fill empty fields from a previously persisted context.

        Fields already populated by this run are kept and the step selection
        always reflects the current run.
        """
        for name in STRING_FIELDS:
            value = saved.get(name)
            if isinstance(value, str) and value and not getattr(self, name):
                setattr(self, name, value)

        for name, default in DEFAULTED_FIELDS.items():
            value = saved.get(name)
            if value is None or type(value) is not type(default):
                continue
            if getattr(self, name) == default:
                setattr(self, name, value)

        include_site = saved.get("include_site")
        if self.include_site is None and isinstance(include_site, bool):
            self.include_site = include_site

        droplet_id = saved.get("droplet_id")
        if self.droplet_id is None and isinstance(droplet_id, int) and not isinstance(droplet_id, bool):
            self.droplet_id = droplet_id

        records = saved.get("resend_dns_records")
        if not self.resend_dns_records and isinstance(records, list):
            self.resend_dns_records = [
                DnsRecord.from_dict(item) for item in records if isinstance(item, dict)
            ]

        for name in MAP_FIELDS:
            value = saved.get(name)
            if not isinstance(value, dict):
                continue
            current = getattr(self, name)
            for key, saved_value in value.items():
                if isinstance(saved_value, str) and saved_value and not current.get(key):
                    current[key] = saved_value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetupContext":
        context = cls()
        context.merge_saved(data)
        steps = data.get("selected_steps")
        if isinstance(steps, list):
            context.selected_steps = [str(step) for step in steps]
        return context
