import pytest

from octl.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("tool_missing", tool="gh", hint="brew install gh")

    assert "`gh` is required but was not found on PATH." in message
    assert "Suggested action: Install it with `brew install gh`" in message


def test_deploy_key_verify_failed_names_key_and_target():
    message = actionable_error(
        "deploy_key_verify_failed",
        key_path="/home/me/.ssh/olympusoss-deploy",
        host="203.0.113.10",
        public_key_path="/home/me/.ssh/olympusoss-deploy.pub",
        target="root@203.0.113.10",
    )

    assert "/home/me/.ssh/olympusoss-deploy cannot authenticate to 203.0.113.10" in message
    assert "root@203.0.113.10:~/.ssh/authorized_keys" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError, match="Unknown error catalog key"):
        actionable_error("does_not_exist")
