"""Neon managed PostgreSQL adapter."""

import re
import time
from typing import Callable, Dict, List, Optional, Sequence, Set
from urllib.parse import quote, unquote, urlparse

import requests

from octl.constants import NEON_PG_VERSION
from octl.errors import ProviderError, SetupError
from octl.models import NeonConnection, NeonOrganization, NeonProject
from octl.services.http_api import JsonApiClient
from octl.services.polling import constant_delay, linear_delay, poll_until, retry_on

NEON_API = "https://console.neon.tech/api/v2"

CONFLICT_MARKER = "conflicting operations"
BUSY_OPERATION_STATUSES = {"running", "scheduling"}
SYSTEM_ROLES = {"web_access"}

READY_POLL_ATTEMPTS = 20
READY_POLL_DELAY_SECONDS = 2.0
CREATE_DB_ATTEMPTS = 5
CREATE_DB_BACKOFF_SECONDS = 3.0

ChooseOrganization = Callable[[List[NeonOrganization]], str]


def build_dsn(role: str, password: str, host: str, database: str) -> str:
    return (
        f"postgresql://{quote(role, safe='')}:{quote(password, safe='')}"
        f"@{host}/{database}?sslmode=require"
    )


def mask_dsn(dsn: str) -> str:
    return re.sub(r":([^:@/]+)@", ":***@", dsn, count=1)


class NeonService:
    """Project and database provisioning over the Neon API.

    When the account belongs to an organization, every project call is scoped
    with ``org_id``. Neon rejects concurrent operations on a project, so a new
    project is polled until idle and database creation retries on conflicts.
    """

    def __init__(
        self,
        token: str,
        logger,
        console,
        requests_module=requests,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.console = console
        self.sleep = sleep
        self.api = JsonApiClient(NEON_API, token, requests_module=requests_module)
        self.org_id = ""

    def _params(self, **extra) -> Dict[str, object]:
        params: Dict[str, object] = dict(extra)
        if self.org_id:
            params["org_id"] = self.org_id
        return params

    def resolve_org_id(self, choose: ChooseOrganization) -> str:
        response = self.api.send("GET", "users/me/organizations", "List Neon organizations")
        if not self.api.is_ok(response):
            self.logger.debug("Organization lookup unavailable, using personal account")
            self.org_id = ""
            return self.org_id

        data = self.api.decode(response)
        raw_orgs = data.get("organizations")
        if raw_orgs is None:
            raw_orgs = data.get("data") or []
        orgs = [
            NeonOrganization(id=item["id"], name=item.get("name", item["id"]))
            for item in raw_orgs
            if isinstance(item, dict) and item.get("id")
        ]

        if not orgs:
            self.org_id = ""
        elif len(orgs) == 1:
            self.org_id = orgs[0].id
        else:
            self.org_id = choose(orgs)
        return self.org_id

    def list_projects(self) -> List[NeonProject]:
        data = self.api.get("projects", "List Neon projects", params=self._params())
        return [
            NeonProject(id=item["id"], name=item.get("name", item["id"]))
            for item in data.get("projects") or []
        ]

    def load_project(self, project_id: str) -> NeonConnection:
        """Fetch branch, host, owner role and password of an existing project."""
        connection = NeonConnection(project_id=project_id)

        project = self.api.get(
            f"projects/{project_id}", "Fetch Neon project", params=self._params()
        ).get("project") or {}
        connection.branch_id = project.get("default_branch_id") or ""

        if not connection.branch_id:
            response = self.api.send(
                "GET", f"projects/{project_id}/branches", "List Neon branches", params=self._params()
            )
            if self.api.is_ok(response):
                branches = self.api.decode(response).get("branches") or []
                primary = next((branch for branch in branches if branch.get("primary")), None)
                if primary is None and branches:
                    primary = branches[0]
                if primary:
                    connection.branch_id = primary["id"]

        if not connection.branch_id:
            raise SetupError("Could not determine default branch for Neon project")

        endpoints = self.api.get(
            f"projects/{project_id}/endpoints", "Fetch Neon endpoints", params=self._params()
        ).get("endpoints") or []
        if endpoints:
            connection.host = endpoints[0].get("host", "")

        branch_path = f"projects/{project_id}/branches/{connection.branch_id}"
        roles = self.api.get(
            f"{branch_path}/roles", "Fetch Neon roles", params=self._params()
        ).get("roles") or []
        owner = next((role for role in roles if role.get("name") not in SYSTEM_ROLES), None)
        if owner:
            connection.role = owner["name"]
            response = self.api.send(
                "GET",
                f"{branch_path}/roles/{connection.role}/reveal_password",
                "Reveal Neon role password",
                params=self._params(),
            )
            if self.api.is_ok(response):
                connection.password = self.api.decode(response).get("password") or ""

        return connection

    def create_project(self, name: str) -> NeonConnection:
        project_payload: Dict[str, object] = {"name": name, "pg_version": NEON_PG_VERSION}
        if self.org_id:
            project_payload["org_id"] = self.org_id

        data = self.api.post(
            "projects",
            "Create Neon project",
            payload={"project": project_payload},
            params=self._params(),
        )

        connection = NeonConnection(
            project_id=(data.get("project") or {}).get("id", ""),
            branch_id=(data.get("branch") or {}).get("id", ""),
        )

        # The response may carry credentials in the connection URI, the roles array, or both.
        uris = data.get("connection_uris") or []
        uri = uris[0].get("connection_uri", "") if uris else ""
        if uri:
            parsed = urlparse(uri)
            connection.host = parsed.hostname or ""
            connection.role = unquote(parsed.username or "")
            connection.password = unquote(parsed.password or "")

        roles = data.get("roles") or []
        if roles:
            if not connection.role:
                connection.role = roles[0].get("name", "")
            if not connection.password:
                connection.password = roles[0].get("password", "") or ""

        if not connection.host:
            endpoints = data.get("endpoints") or []
            if endpoints:
                connection.host = endpoints[0].get("host", "")

        return connection

    def wait_for_project(self, project_id: str) -> bool:
        """Poll project operations until none are running.

        Best effort: returns False when the budget runs out or the operations
        endpoint fails, and callers proceed anyway.
        """
        unavailable = {"value": False}

        def is_idle() -> bool:
            response = self.api.send(
                "GET",
                f"projects/{project_id}/operations",
                "List Neon operations",
                params=self._params(limit=5),
            )
            if not self.api.is_ok(response):
                unavailable["value"] = True
                return True
            operations = self.api.decode(response).get("operations") or []
            return not any(op.get("status") in BUSY_OPERATION_STATUSES for op in operations)

        ready = poll_until(
            is_idle,
            max_attempts=READY_POLL_ATTEMPTS,
            delay=constant_delay(READY_POLL_DELAY_SECONDS),
            sleep=self.sleep,
        )
        return ready and not unavailable["value"]

    def list_databases(self, connection: NeonConnection) -> Set[str]:
        response = self.api.send(
            "GET",
            self._databases_path(connection),
            "List Neon databases",
            params=self._params(),
        )
        if not self.api.is_ok(response):
            return set()
        return {item.get("name") for item in self.api.decode(response).get("databases") or []}

    def create_database(self, connection: NeonConnection, name: str) -> int:
        """Create database ``name``; returns the number of attempts used."""
        attempts = {"count": 0}

        def create():
            attempts["count"] += 1
            self.api.post(
                self._databases_path(connection),
                f"Create Neon database {name}",
                payload={"database": {"name": name, "owner_name": connection.role}},
                params=self._params(),
            )

        def on_retry(attempt: int, _exc: Exception):
            self.console.print("[yellow]Waiting for previous Neon operation to complete...[/yellow]")
            self.logger.debug("Neon database %s attempt %s hit conflicting operations", name, attempt)

        retry_on(
            create,
            should_retry=lambda exc: isinstance(exc, ProviderError) and CONFLICT_MARKER in exc.body,
            max_attempts=CREATE_DB_ATTEMPTS,
            delay=linear_delay(CREATE_DB_BACKOFF_SECONDS),
            sleep=self.sleep,
            on_retry=on_retry,
        )
        return attempts["count"]

    def ensure_databases(
        self,
        connection: NeonConnection,
        names: Sequence[str],
        on_progress: Optional[Callable[[str, bool], None]] = None,
    ) -> Dict[str, str]:
        """Create missing databases and return a DSN for every name."""
        missing = connection.missing_fields()
        if missing:
            raise SetupError(f"Missing Neon connection info: {', '.join(missing)}")

        existing = self.list_databases(connection)
        dsns: Dict[str, str] = {}
        for name in names:
            created = name not in existing
            if created:
                self.create_database(connection, name)
            if on_progress is not None:
                on_progress(name, created)
            dsns[name] = build_dsn(connection.role, connection.password, connection.host, name)
        return dsns

    @staticmethod
    def _databases_path(connection: NeonConnection) -> str:
        return f"projects/{connection.project_id}/branches/{connection.branch_id}/databases"
