"""Hostinger DNS adapter."""

from typing import Any, Dict, Iterable, List, Optional

import requests

from octl.constants import APP_SUBDOMAINS, DNS_TTL
from octl.errors import ProviderError
from octl.models import DnsRecord, DnsSyncReport
from octl.services.http_api import JsonApiClient

HOSTINGER_API = "https://api.hostinger.com/api/dns/v1"


def desired_records(ip: str, email_records: Iterable[DnsRecord]) -> List[DnsRecord]:
    """Platform A records followed by the email provider's verification records."""
    records = [
        DnsRecord(type="A", name=subdomain, value=ip, ttl=str(DNS_TTL))
        for subdomain in APP_SUBDOMAINS
    ]
    for record in email_records:
        records.append(
            DnsRecord(
                type=record.type.upper(),
                name=record.name,
                value=record.value,
                priority=record.priority,
                ttl=str(DNS_TTL),
            )
        )
    return records


class HostingerDnsService:
    """Reconciles a desired record set against a Hostinger DNS zone."""

    def __init__(self, token: str, logger, console, requests_module=requests):
        self.logger = logger
        self.console = console
        self.api = JsonApiClient(HOSTINGER_API, token, requests_module=requests_module)

    def fetch_zone(self, domain: str) -> List[Dict[str, Any]]:
        data = self.api.get(f"zones/{domain}", f"Fetch DNS zone for {domain}")
        records = data.get("records")
        if records is None:
            records = data.get("data") or []
        return [record for record in records if isinstance(record, dict)]

    def sync_records(self, domain: str, desired: List[DnsRecord]) -> DnsSyncReport:
        """Create missing records, update changed ones, skip identical ones."""
        existing = self.fetch_zone(domain)
        report = DnsSyncReport()

        for record in desired:
            label = f"{record.type} {record.name}"
            match = self._find(existing, record)

            if match is not None and self._value_of(match) == record.value:
                report.skipped.append(label)
                self.console.print(f"[dim]{label} already set[/dim]")
                continue

            overwrite = match is not None
            try:
                self._put_record(domain, record, overwrite=overwrite)
            except ProviderError as exc:
                report.failed.append(label)
                self.logger.warning("Failed to %s %s: %s", "update" if overwrite else "create", label, exc)
                continue

            if overwrite:
                report.updated.append(label)
                self.console.print(f"[green]Updated {label} -> {record.value}[/green]")
            else:
                report.created.append(label)
                self.console.print(f"[green]Created {label} -> {record.value}[/green]")

        return report

    def _put_record(self, domain: str, record: DnsRecord, overwrite: bool):
        entry: Dict[str, Any] = {
            "type": record.type,
            "name": record.name,
            "content": record.value,
            "ttl": int(record.ttl or DNS_TTL),
        }
        if record.priority is not None:
            entry["priority"] = record.priority

        self.api.request(
            "PUT",
            f"zones/{domain}",
            f"Write DNS record {record.type} {record.name}",
            payload={"records": [entry], "overwrite": overwrite},
        )

    @staticmethod
    def _find(existing: List[Dict[str, Any]], record: DnsRecord) -> Optional[Dict[str, Any]]:
        for item in existing:
            if str(item.get("type", "")).upper() == record.type and item.get("name") == record.name:
                return item
        return None

    @staticmethod
    def _value_of(item: Dict[str, Any]) -> str:
        return str(item.get("content") or item.get("value") or "")
