import json
import os
import signal
import sys
import time

import click
import pytest

from octl.core import CancellationScope, SetupWizard
from octl.errors import SetupCancelled
from octl.steps import Requirement, Step

PASSPHRASE = "correct horse battery staple"


def make_step(step_id, run, needs=(Requirement.DOMAIN,)):
    return Step(id=step_id, label=step_id.title(), description=f"{step_id} step", run=run, needs=frozenset(needs))


def build_wizard(tmp_path, prompter, runner, catalog, fake_requests, step_ids=None):
    return SetupWizard(
        settings_dir=tmp_path / "settings",
        step_ids=step_ids or [step.id for step in catalog],
        catalog=catalog,
        prompter=prompter,
        command_runner=runner,
        requests_module=fake_requests(),
        sleep=lambda _seconds: None,
        secret_iterations=1,
    )


def read_settings(tmp_path):
    return json.loads((tmp_path / "settings" / "octl.json").read_text(encoding="utf-8"))


def test_successful_run_persists_settings_and_reference(tmp_path, scripted_prompter, command_runner, fake_requests):
    calls = []
    catalog = [make_step("noop", lambda context, services: calls.append(context.domain), needs=(Requirement.DOMAIN, Requirement.SITE))]
    prompter = scripted_prompter(texts=["Example.com", PASSPHRASE, PASSPHRASE])

    exit_code = build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run()

    assert exit_code == 0
    assert calls == ["example.com"]
    saved = read_settings(tmp_path)
    assert saved["selected_steps"] == ["noop"]
    assert saved["include_site"] is True
    assert len(saved["derived_secrets"]) == 13
    assert (tmp_path / "settings" / "octl-reference.md").exists()


def test_missing_prerequisite_exits_without_prompting(tmp_path, scripted_prompter, command_runner, fake_requests):
    prompter = scripted_prompter()
    catalog = [make_step("noop", lambda context, services: None)]

    exit_code = build_wizard(tmp_path, prompter, command_runner(tools=("gh",)), catalog, fake_requests).run()

    assert exit_code == 1
    assert prompter.asked == []
    assert not (tmp_path / "settings" / "octl.json").exists()


def test_declining_retry_and_continue_exits_with_progress_saved(
    tmp_path, scripted_prompter, command_runner, fake_requests
):
    def failing(context, services):
        raise RuntimeError("provider unavailable")

    later = []
    catalog = [
        make_step("first", failing),
        make_step("second", lambda context, services: later.append(True)),
    ]
    prompter = scripted_prompter(texts=["example.com", PASSPHRASE, PASSPHRASE], confirms=[False, False])

    exit_code = build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run()

    assert exit_code == 1
    assert later == []
    assert "Would you like to continue with the remaining steps?" in prompter.asked
    saved = read_settings(tmp_path)
    assert saved["domain"] == "example.com"
    assert saved["passphrase"] == PASSPHRASE


def test_retry_runs_the_failed_step_again(tmp_path, scripted_prompter, command_runner, fake_requests):
    attempts = []

    def flaky(context, services):
        attempts.append(True)
        if len(attempts) == 1:
            raise RuntimeError("temporary failure")

    catalog = [make_step("flaky", flaky)]
    prompter = scripted_prompter(texts=["example.com", PASSPHRASE, PASSPHRASE], confirms=[True])

    assert build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run() == 0
    assert len(attempts) == 2


def test_continue_after_failure_runs_remaining_steps(tmp_path, scripted_prompter, command_runner, fake_requests):
    def failing(context, services):
        raise RuntimeError("provider unavailable")

    later = []
    catalog = [
        make_step("first", failing),
        make_step("second", lambda context, services: later.append(True)),
    ]
    prompter = scripted_prompter(texts=["example.com", PASSPHRASE, PASSPHRASE], confirms=[False, True])
    wizard = build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests)

    assert wizard.run() == 0
    assert later == [True]
    assert wizard.run_steps([catalog[1]]) == []


def test_cancellation_inside_a_step_saves_and_exits_cleanly(
    tmp_path, scripted_prompter, command_runner, fake_requests
):
    def cancelled(context, services):
        context.droplet_ip = "203.0.113.10"
        raise click.Abort()

    catalog = [make_step("cancel", cancelled)]
    prompter = scripted_prompter(texts=["example.com", PASSPHRASE, PASSPHRASE])

    assert build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run() == 0
    assert read_settings(tmp_path)["droplet_ip"] == "203.0.113.10"


def test_passphrase_mismatch_can_be_abandoned(tmp_path, scripted_prompter, command_runner, fake_requests):
    catalog = [make_step("noop", lambda context, services: pytest.fail("step should not run"))]
    prompter = scripted_prompter(texts=["example.com", PASSPHRASE, "something else"], confirms=[False])

    assert build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run() == 0
    saved = read_settings(tmp_path)
    assert saved["domain"] == "example.com"
    assert saved["passphrase"] == ""


def test_saved_values_are_offered_as_defaults(tmp_path, scripted_prompter, command_runner, fake_requests):
    settings_dir = tmp_path / "settings"
    settings_dir.mkdir()
    (settings_dir / "octl.json").write_text(
        json.dumps({"domain": "saved.example.com", "passphrase": PASSPHRASE, "selected_steps": ["old"]}),
        encoding="utf-8",
    )
    seen = []
    catalog = [make_step("noop", lambda context, services: seen.append((context.domain, context.passphrase)))]
    prompter = scripted_prompter(texts=[None, None])

    assert build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run() == 0
    assert seen == [("saved.example.com", PASSPHRASE)]
    assert read_settings(tmp_path)["selected_steps"] == ["noop"]


def test_saved_site_answer_is_the_default_on_rerun(tmp_path, scripted_prompter, command_runner, fake_requests):
    settings_dir = tmp_path / "settings"
    settings_dir.mkdir()
    (settings_dir / "octl.json").write_text(
        json.dumps({"domain": "example.com", "passphrase": PASSPHRASE, "include_site": False}),
        encoding="utf-8",
    )
    catalog = [make_step("noop", lambda context, services: None, needs=(Requirement.DOMAIN, Requirement.SITE))]
    prompter = scripted_prompter(texts=[None, None])

    assert build_wizard(tmp_path, prompter, command_runner(), catalog, fake_requests).run() == 0
    assert "Include the site OAuth2 clients?" in prompter.asked
    saved = read_settings(tmp_path)
    assert saved["include_site"] is False
    assert len(saved["derived_secrets"]) == 11


def test_interactive_step_selection_is_used_without_step_ids(
    tmp_path, scripted_prompter, command_runner, fake_requests
):
    ran = []
    catalog = [
        make_step("first", lambda context, services: ran.append("first")),
        make_step("second", lambda context, services: ran.append("second")),
    ]
    prompter = scripted_prompter(texts=["example.com", PASSPHRASE, PASSPHRASE], step_ids=["second"])
    wizard = SetupWizard(
        settings_dir=tmp_path / "settings",
        catalog=catalog,
        prompter=prompter,
        command_runner=command_runner(),
        requests_module=fake_requests(),
        secret_iterations=1,
    )

    assert wizard.run() == 0
    assert ran == ["second"]


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
def test_cancellation_scope_turns_sigterm_into_setup_cancelled():
    previous = signal.getsignal(signal.SIGTERM)

    with pytest.raises(SetupCancelled):
        with CancellationScope():
            os.kill(os.getpid(), signal.SIGTERM)
            time.sleep(1)

    assert signal.getsignal(signal.SIGTERM) == previous
