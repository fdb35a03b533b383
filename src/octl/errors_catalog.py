"""Actionable error catalog for octl."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "tool_missing": {
        "what": "`{tool}` is required but was not found on PATH.",
        "next": "Install it with `{hint}` and run octl again.",
    },
    "gh_not_authenticated": {
        "what": "GitHub CLI is not authenticated.",
        "next": "Run `gh auth login` and run octl again.",
    },
    "deploy_key_install_failed": {
        "what": "Failed to install the deploy key on {target}.",
        "next": "Add the public key {key_path} to {target}:~/.ssh/authorized_keys manually.",
    },
    "deploy_key_verify_failed": {
        "what": "Deploy key {key_path} cannot authenticate to {host}, so deploy workflows will fail too.",
        "next": "Ensure {public_key_path} is listed in {target}:~/.ssh/authorized_keys.",
    },
    "missing_droplet_ip": {
        "what": "No droplet IP is available.",
        "next": "Run the DigitalOcean step first.",
    },
    "missing_ssh_key": {
        "what": "No deploy SSH key is available.",
        "next": "Run the DigitalOcean and GitHub Secrets steps first.",
    },
    "missing_derived_secrets": {
        "what": "No secrets have been derived from the passphrase.",
        "next": "Run octl again and enter the passphrase when prompted.",
    },
    "workflow_dispatch_failed": {
        "what": "Could not trigger workflow {workflow}.",
        "next": "Trigger it manually: Actions > Deploy > Run workflow > {environment}.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
