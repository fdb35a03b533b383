import pytest

from octl.errors import PrerequisiteError, SetupError
from octl.models import CommandResult
from octl.services.github import GitHubService


class FakeCommandRunner:
    """Returns canned results keyed by the first words of a command."""

    def __init__(self, results=None):
        self.results = results or {}
        self.commands = []

    def _result(self, cmd):
        for prefix, result in self.results.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                return result
        return CommandResult(stdout="", stderr="", exit_code=0)

    def run(self, cmd, input_text=None, timeout=None):
        self.commands.append(cmd)
        return self._result(cmd)

    def run_or_fail(self, cmd, input_text=None, timeout=None):
        result = self.run(cmd)
        if not result.ok:
            raise SetupError(f"Command failed ({result.exit_code}): {' '.join(cmd)}\n{result.stderr}")
        return result.stdout


def test_set_secrets_skips_empty_values(logger):
    runner = FakeCommandRunner()

    skipped = GitHubService(runner, logger).set_secrets(
        {"GHCR_PAT": "ghp_x", "NEON_CIAM_KRATOS_DSN": ""}, repo="acme/platform", environment="production"
    )

    assert skipped == ["NEON_CIAM_KRATOS_DSN"]
    assert runner.commands == [
        ["gh", "secret", "set", "GHCR_PAT", "--body", "ghp_x", "--env", "production", "-R", "acme/platform"]
    ]


def test_org_scope_ignores_repo_and_environment(logger):
    runner = FakeCommandRunner()

    GitHubService(runner, logger).set_secret("ORG_DISPATCH_TOKEN", "ghp_y", repo="acme/platform", org="acme")

    assert runner.commands[0][-2:] == ["--org", "acme"]
    assert "-R" not in runner.commands[0]


def test_set_variables_uses_variable_command(logger):
    runner = FakeCommandRunner()

    GitHubService(runner, logger).set_variables({"DEPLOY_PATH": "/opt/olympusoss/prod"}, repo="acme/hera")

    assert runner.commands[0][:4] == ["gh", "variable", "set", "DEPLOY_PATH"]


def test_create_environment_reports_failure_without_raising(logger):
    runner = FakeCommandRunner({("gh", "api"): CommandResult(stdout="", stderr="HTTP 403", exit_code=1)})

    assert GitHubService(runner, logger).create_environment("acme", "platform", "production") is False
    assert "repos/acme/platform/environments/production" in runner.commands[0]


def test_ensure_authenticated_requires_login(logger):
    runner = FakeCommandRunner({("gh", "auth", "status"): CommandResult(stdout="", stderr="", exit_code=1)})

    with pytest.raises(PrerequisiteError, match="gh auth login"):
        GitHubService(runner, logger).ensure_authenticated()


def test_ensure_authenticated_returns_login(logger):
    runner = FakeCommandRunner({("gh", "api", "user"): CommandResult(stdout="octocat", stderr="", exit_code=0)})

    assert GitHubService(runner, logger).ensure_authenticated() == "octocat"


def test_detect_repo_parses_owner_and_name(logger):
    runner = FakeCommandRunner({("gh", "repo", "view"): CommandResult(stdout="acme/platform", stderr="", exit_code=0)})

    assert GitHubService(runner, logger).detect_repo().slug == "acme/platform"


def test_detect_repo_returns_none_outside_a_repository(logger):
    runner = FakeCommandRunner({("gh", "repo", "view"): CommandResult(stdout="", stderr="not a git repo", exit_code=1)})

    assert GitHubService(runner, logger).detect_repo() is None


def test_trigger_workflow_passes_inputs(logger):
    runner = FakeCommandRunner()

    GitHubService(runner, logger).trigger_workflow("acme/platform", "deploy.yml", {"environment": "production"})

    assert runner.commands[0] == ["gh", "workflow", "run", "deploy.yml", "-R", "acme/platform", "-f", "environment=production"]
