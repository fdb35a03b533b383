"""Resend email adapter."""

from typing import Any, Dict, List

import requests

from octl.models import DnsRecord, EmailDomain
from octl.services.http_api import JsonApiClient

RESEND_API = "https://api.resend.com"


class ResendService:
    """Registers the sending domain and reports its verification records."""

    def __init__(self, api_key: str, logger, requests_module=requests):
        self.logger = logger
        self.api = JsonApiClient(RESEND_API, api_key, requests_module=requests_module)

    def ensure_domain(self, domain: str) -> EmailDomain:
        listing = self.api.get("domains", "List Resend domains")
        existing = next(
            (item for item in listing.get("data") or [] if item.get("name") == domain),
            None,
        )

        if existing is not None:
            self.logger.debug("Resend domain %s already registered as %s", domain, existing.get("id"))
            details = self.api.get(f"domains/{existing['id']}", "Fetch Resend domain")
            created = False
        else:
            details = self.api.post("domains", "Add domain to Resend", payload={"name": domain})
            existing = {}
            created = True

        return EmailDomain(
            id=details.get("id") or existing.get("id", ""),
            status=details.get("status") or existing.get("status") or "not_started",
            records=self.extract_records(details),
            created=created,
        )

    @staticmethod
    def extract_records(details: Dict[str, Any]) -> List[DnsRecord]:
        records: List[DnsRecord] = []
        for item in details.get("records") or []:
            priority = item.get("priority")
            ttl = item.get("ttl")
            records.append(
                DnsRecord(
                    type=str(item.get("record_type") or item.get("type") or ""),
                    name=str(item.get("name") or ""),
                    value=str(item.get("value") or ""),
                    priority=int(priority) if priority is not None else None,
                    ttl=str(ttl) if ttl is not None else None,
                )
            )
        return records
