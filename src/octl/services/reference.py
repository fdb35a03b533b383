"""Credential reference document grouped by where each value belongs."""

from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from octl.constants import DEFAULT_APP_REPOS, DEFAULT_ENVIRONMENT, REFERENCE_FILE_NAME
from octl.context import SetupContext
from octl.services.hostinger import desired_records


def _table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> List[str]:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(str(cell).replace("|", "\\|") for cell in row) + " |")
    return lines


def _secret_rows(context: SetupContext) -> List[Tuple[str, str]]:
    secrets = dict(context.derived_secrets)
    secrets.update(context.github_secrets)
    # Multi-line key material is kept out of the table.
    return [
        (name, "(contents of the deploy private key)" if "\n" in value else value)
        for name, value in sorted(secrets.items())
        if value
    ]


class ReferenceService:
    """Renders and writes ``octl-reference.md`` beside the settings file.

    The document carries secret values in full and is written owner-readable
    only.
    """

    def __init__(self, settings_dir: Path, filesystem, logger):
        self.settings_dir = settings_dir
        self.filesystem = filesystem
        self.logger = logger

    @property
    def reference_file(self) -> Path:
        return self.settings_dir / REFERENCE_FILE_NAME

    def render(
        self,
        context: SetupContext,
        environment: str = DEFAULT_ENVIRONMENT,
        app_repos: Sequence[str] = DEFAULT_APP_REPOS,
    ) -> str:
        lines: List[str] = ["# octl reference", ""]
        if context.domain:
            lines.extend([f"Domain: `{context.domain}`", ""])

        secret_rows = _secret_rows(context)
        if secret_rows:
            target = context.repo_slug or "the platform repository"
            lines.extend([f"## GitHub environment secrets ({target}, `{environment}`)", ""])
            lines.extend(_table(("Name", "Value"), secret_rows))
            lines.append("")

        if context.github_variables:
            lines.extend([f"## GitHub environment variables (`{environment}`)", ""])
            lines.extend(_table(("Name", "Value"), sorted(context.github_variables.items())))
            lines.append("")

        if context.droplet_ip or context.resend_dns_records:
            lines.extend(["## DNS provider", ""])
            records = desired_records(context.droplet_ip, context.resend_dns_records)
            if not context.droplet_ip:
                records = [record for record in records if record.type != "A"]
            lines.extend(
                _table(
                    ("Type", "Name", "Value", "Priority", "TTL"),
                    (
                        (
                            record.type,
                            record.name or "(root)",
                            record.value,
                            "" if record.priority is None else str(record.priority),
                            record.ttl or "",
                        )
                        for record in records
                    ),
                )
            )
            lines.append("")

        if context.repo_owner and context.droplet_ip:
            repos = ", ".join(f"`{context.repo_owner}/{repo}`" for repo in app_repos)
            lines.extend([f"## App repositories ({repos}, `{environment}`)", ""])
            lines.extend(
                _table(
                    ("Kind", "Name", "Value"),
                    [
                        ("secret", "DEPLOY_SSH_KEY", context.ssh_private_key_path or "(deploy private key)"),
                        ("secret", "GHCR_PAT", context.ghcr_pat),
                        ("variable", "DEPLOY_SERVER_IP", context.droplet_ip),
                        ("variable", "DEPLOY_SSH_PORT", str(context.ssh_port)),
                        ("variable", "DEPLOY_USER", context.ssh_user),
                        ("variable", "DEPLOY_PATH", context.deploy_path),
                        ("variable", "GHCR_USERNAME", context.ghcr_username),
                    ],
                )
            )
            lines.append("")

        dsn_rows = [(name, dsn) for name, dsn in context.neon_dsns.items() if dsn]
        if context.neon_project_id or dsn_rows:
            lines.extend(["## Database (Neon)", ""])
            if context.neon_project_id:
                lines.extend([f"Project: `{context.neon_project_id}`", ""])
            if dsn_rows:
                lines.extend(_table(("Database", "Connection string"), dsn_rows))
                lines.append("")

        if context.droplet_ip:
            lines.extend(["## Server", ""])
            lines.append(f"- Name: `{context.droplet_name or '-'}`")
            lines.append(f"- IP: `{context.droplet_ip}`")
            if context.reserved_ip:
                lines.append(f"- Reserved IP: `{context.reserved_ip}`")
            lines.append(f"- SSH: `ssh -p {context.ssh_port} {context.ssh_user}@{context.droplet_ip}`")
            if context.ssh_private_key_path:
                lines.append(f"- Deploy key: `{context.ssh_private_key_path}`")
            lines.append("")

        return "\n".join(lines)

    def write(
        self,
        context: SetupContext,
        environment: str = DEFAULT_ENVIRONMENT,
        app_repos: Sequence[str] = DEFAULT_APP_REPOS,
    ) -> Path:
        self.filesystem.write_private_text(
            self.reference_file, self.render(context, environment=environment, app_repos=app_repos)
        )
        self.logger.debug("Reference document written to %s", self.reference_file)
        return self.reference_file
