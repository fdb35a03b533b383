import pytest

from octl.services.polling import constant_delay, linear_delay, poll_until, retry_on


def test_poll_until_stops_when_condition_is_met():
    answers = iter([False, False, True])
    sleeps = []

    assert poll_until(lambda: next(answers), max_attempts=5, delay=constant_delay(2.0), sleep=sleeps.append)
    assert sleeps == [2.0, 2.0]


def test_poll_until_returns_false_after_budget_without_trailing_sleep():
    sleeps = []

    assert not poll_until(lambda: False, max_attempts=3, delay=constant_delay(1.0), sleep=sleeps.append)
    assert sleeps == [1.0, 1.0]


def test_retry_on_backs_off_linearly_until_success():
    calls = {"count": 0}
    sleeps = []
    retries = []

    def action():
        calls["count"] += 1
        if calls["count"] < 3:
            raise ValueError("busy")
        return "done"

    result = retry_on(
        action,
        should_retry=lambda exc: isinstance(exc, ValueError),
        max_attempts=5,
        delay=linear_delay(3.0),
        sleep=sleeps.append,
        on_retry=lambda attempt, _exc: retries.append(attempt),
    )

    assert result == "done"
    assert sleeps == [3.0, 6.0]
    assert retries == [1, 2]


def test_retry_on_raises_unaccepted_errors_immediately():
    sleeps = []

    def action():
        raise KeyError("fatal")

    with pytest.raises(KeyError):
        retry_on(
            action,
            should_retry=lambda exc: isinstance(exc, ValueError),
            max_attempts=5,
            delay=constant_delay(1.0),
            sleep=sleeps.append,
        )

    assert sleeps == []


def test_retry_on_reraises_last_error_when_budget_is_spent():
    calls = {"count": 0}

    def action():
        calls["count"] += 1
        raise ValueError(f"attempt {calls['count']}")

    with pytest.raises(ValueError, match="attempt 4"):
        retry_on(
            action,
            should_retry=lambda _exc: True,
            max_attempts=4,
            delay=constant_delay(0.0),
            sleep=lambda _seconds: None,
        )
