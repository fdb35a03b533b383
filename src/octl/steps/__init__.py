"""Step catalog in execution order."""

from typing import List, Sequence

from octl.steps import (
    app_deploy_secrets,
    deploy,
    dns,
    droplet,
    github_env,
    github_secrets,
    github_vars,
    neon,
    resend,
)
from octl.steps.base import (
    Requirement,
    Step,
    StepServices,
    parse_step_selection,
    requirements_for,
)

STEPS: List[Step] = [
    Step(
        id="resend",
        label="Resend",
        description="Email provider: add domain and get DNS records",
        run=resend.run,
        needs=frozenset({Requirement.DOMAIN, Requirement.RESEND_KEY}),
    ),
    Step(
        id="neon",
        label="Neon",
        description="Managed PostgreSQL: create project and databases",
        run=neon.run,
        needs=frozenset({Requirement.DOMAIN, Requirement.NEON_TOKEN}),
    ),
    Step(
        id="droplet",
        label="DigitalOcean",
        description="Droplet: create or connect, firewall, reserved IP, SSH setup",
        run=droplet.run,
        needs=frozenset({Requirement.DO_TOKEN}),
    ),
    Step(
        id="dns",
        label="Hostinger DNS",
        description="A records and email records, or a manual record list",
        run=dns.run,
        needs=frozenset({Requirement.DOMAIN}),
    ),
    Step(
        id="github-env",
        label="GitHub Environment",
        description="Create the production environment",
        run=github_env.run,
        needs=frozenset({Requirement.REPO}),
    ),
    Step(
        id="github-secrets",
        label="GitHub Secrets",
        description="Derive and set all secrets",
        run=github_secrets.run,
        needs=frozenset(
            {
                Requirement.DOMAIN,
                Requirement.ADMIN,
                Requirement.SITE,
                Requirement.REPO,
                Requirement.RESEND_KEY,
                Requirement.NEON_TOKEN,
                Requirement.GHCR_PAT,
            }
        ),
    ),
    Step(
        id="github-vars",
        label="GitHub Variables",
        description="Compute and set all variables",
        run=github_vars.run,
        needs=frozenset({Requirement.DOMAIN, Requirement.SITE, Requirement.REPO}),
    ),
    Step(
        id="app-deploy-secrets",
        label="App Deploy Secrets",
        description="SSH and GHCR credentials on the app repos",
        run=app_deploy_secrets.run,
        needs=frozenset({Requirement.REPO, Requirement.GHCR_PAT}),
    ),
    Step(
        id="deploy",
        label="Deploy",
        description="Trigger the deploy workflow",
        run=deploy.run,
        needs=frozenset({Requirement.REPO}),
    ),
]


def steps_by_id(step_ids: Sequence[str], catalog: Sequence[Step] = STEPS) -> List[Step]:
    """Selected steps in catalog order, whatever order the ids came in."""
    wanted = set(step_ids)
    return [step for step in catalog if step.id in wanted]


__all__ = [
    "STEPS",
    "Requirement",
    "Step",
    "StepServices",
    "parse_step_selection",
    "requirements_for",
    "steps_by_id",
]
