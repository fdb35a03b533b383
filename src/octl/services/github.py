"""GitHub configuration adapter built on the ``gh`` CLI."""

from typing import Dict, List, Optional

from octl.errors import PrerequisiteError
from octl.errors_catalog import actionable_error
from octl.models import RepoCoordinates


class GitHubService:
    """Environments, secrets, variables and workflow dispatch through ``gh``.

    Secrets and variables are always overwritten; there is no diffing.
    """

    def __init__(self, command_runner, logger):
        self.command_runner = command_runner
        self.logger = logger

    def ensure_authenticated(self) -> str:
        status = self.command_runner.run(["gh", "auth", "status"])
        if not status.ok:
            raise PrerequisiteError(actionable_error("gh_not_authenticated"))
        return self.command_runner.run_or_fail(["gh", "api", "user", "--jq", ".login"])

    def detect_repo(self) -> Optional[RepoCoordinates]:
        result = self.command_runner.run(
            ["gh", "repo", "view", "--json", "owner,name", "--jq", '.owner.login + "/" + .name']
        )
        if not result.ok:
            return None
        return RepoCoordinates.parse(result.stdout)

    def create_environment(self, owner: str, repo: str, environment: str) -> bool:
        """PUT the environment; returns False instead of raising on failure."""
        result = self.command_runner.run(
            [
                "gh",
                "api",
                "--method",
                "PUT",
                f"repos/{owner}/{repo}/environments/{environment}",
                "--silent",
            ]
        )
        if not result.ok:
            self.logger.debug("Environment %s on %s/%s not created: %s", environment, owner, repo, result.stderr)
        return result.ok

    def set_secret(
        self,
        name: str,
        value: str,
        repo: Optional[str] = None,
        environment: Optional[str] = None,
        org: Optional[str] = None,
    ):
        self.command_runner.run_or_fail(
            ["gh", "secret", "set", name, "--body", value] + self._scope_args(repo, environment, org)
        )

    def set_variable(
        self,
        name: str,
        value: str,
        repo: Optional[str] = None,
        environment: Optional[str] = None,
        org: Optional[str] = None,
    ):
        self.command_runner.run_or_fail(
            ["gh", "variable", "set", name, "--body", value] + self._scope_args(repo, environment, org)
        )

    def set_secrets(
        self,
        secrets: Dict[str, str],
        repo: Optional[str] = None,
        environment: Optional[str] = None,
        org: Optional[str] = None,
    ) -> List[str]:
        """Set every non-empty secret; returns the names skipped for being empty."""
        skipped: List[str] = []
        for name, value in secrets.items():
            if not value:
                skipped.append(name)
                continue
            self.set_secret(name, value, repo=repo, environment=environment, org=org)
        return skipped

    def set_variables(
        self,
        variables: Dict[str, str],
        repo: Optional[str] = None,
        environment: Optional[str] = None,
        org: Optional[str] = None,
    ) -> List[str]:
        skipped: List[str] = []
        for name, value in variables.items():
            if not value:
                skipped.append(name)
                continue
            self.set_variable(name, value, repo=repo, environment=environment, org=org)
        return skipped

    def trigger_workflow(self, repo: str, workflow: str, inputs: Optional[Dict[str, str]] = None):
        cmd = ["gh", "workflow", "run", workflow, "-R", repo]
        for key, value in (inputs or {}).items():
            cmd.extend(["-f", f"{key}={value}"])
        self.command_runner.run_or_fail(cmd)

    @staticmethod
    def _scope_args(repo: Optional[str], environment: Optional[str], org: Optional[str]) -> List[str]:
        if org:
            return ["--org", org]
        args: List[str] = []
        if environment:
            args.extend(["--env", environment])
        if repo:
            args.extend(["-R", repo])
        return args
