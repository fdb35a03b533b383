"""Shared domain models for octl."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class DnsRecord:
    """DNS record as required by a provider (email verification, A records)."""

    type: str
    name: str
    value: str
    priority: Optional[int] = None
    ttl: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DnsRecord":
        priority = data.get("priority")
        ttl = data.get("ttl")
        return cls(
            type=str(data.get("type") or ""),
            name=str(data.get("name") or ""),
            value=str(data.get("value") or ""),
            priority=int(priority) if priority is not None else None,
            ttl=str(ttl) if ttl is not None else None,
        )


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of a local command."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class DropletInfo:
    id: int
    name: str
    ip: str


@dataclass(frozen=True)
class Region:
    slug: str
    name: str


@dataclass(frozen=True)
class DropletSize:
    slug: str
    vcpus: int
    memory: int
    disk: int
    price_monthly: float
    regions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SshKeyInfo:
    id: int
    fingerprint: str


@dataclass(frozen=True)
class FirewallInfo:
    id: str
    name: str
    created: bool = False


@dataclass(frozen=True)
class ReservedIpInfo:
    ip: str
    region: str
    droplet_id: Optional[int] = None


@dataclass(frozen=True)
class NeonOrganization:
    id: str
    name: str


@dataclass(frozen=True)
class NeonProject:
    id: str
    name: str


@dataclass
class NeonConnection:
    """Everything needed to build connection strings for a Neon project."""

    project_id: str
    branch_id: str = ""
    host: str = ""
    role: str = ""
    password: str = ""

    def missing_fields(self) -> List[str]:
        return [
            name
            for name in ("branch_id", "host", "role", "password")
            if not getattr(self, name)
        ]


@dataclass(frozen=True)
class EmailDomain:
    id: str
    status: str
    records: List[DnsRecord]
    created: bool = False


@dataclass
class DnsSyncReport:
    skipped: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.updated) + len(self.created)


@dataclass(frozen=True)
class RepoCoordinates:
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, slug: str) -> Optional["RepoCoordinates"]:
        owner, sep, name = slug.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            return None
        return cls(owner=owner, name=name)
