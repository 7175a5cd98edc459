from __future__ import annotations

import threading

import pytest

from push_contact.services.dispatch_service import DispatchCancelledError, Dispatcher
from push_contact.services.push_service import PushProviderUnavailableError


def _dispatcher(sender, **kwargs):
    kwargs.setdefault("max_workers", 4)
    kwargs.setdefault("max_attempts", 3)
    kwargs.setdefault("base_delay", 0)
    return Dispatcher(sender, **kwargs)


def _by_token(outcomes):
    return {outcome.device_token: outcome for outcome in outcomes}


def test_returns_one_outcome_per_target_including_duplicates(fake_sender):
    sender = fake_sender()

    outcomes = _dispatcher(sender).dispatch("t", "b", None, ["A", "B", "A"])

    assert len(outcomes) == 3
    assert sorted(outcome.device_token for outcome in outcomes) == ["A", "A", "B"]
    assert all(outcome.is_success for outcome in outcomes)


def test_empty_targets_returns_empty_list(fake_sender):
    sender = fake_sender()

    assert _dispatcher(sender).dispatch("t", "b", None, []) == []
    assert sender.calls == []


def test_invalid_target_is_not_retried(fake_sender):
    sender = fake_sender({"B": "invalid"})

    outcomes = _by_token(_dispatcher(sender).dispatch("t", "b", None, ["A", "B", "C"]))

    assert outcomes["B"].is_valid_target is False
    assert outcomes["B"].is_success is False
    assert sender.attempts("B") == 1
    assert outcomes["A"].is_success and outcomes["C"].is_success


def test_transient_failure_is_retried_then_reported(fake_sender):
    sender = fake_sender({"A": "transient"})

    outcome = _dispatcher(sender, max_attempts=3).dispatch("t", "b", None, ["A"])[0]

    assert sender.attempts("A") == 3
    assert outcome.is_valid_target is True
    assert outcome.is_success is False
    assert "503" in outcome.error_detail


def test_transient_failure_recovers_within_attempts(fake_sender):
    sender = fake_sender({"A": "flaky:1"})

    outcome = _dispatcher(sender).dispatch("t", "b", None, ["A"])[0]

    assert outcome.is_success is True
    assert sender.attempts("A") == 2


def test_retry_backoff_is_exponential(fake_sender):
    sender = fake_sender({"A": "transient"})
    delays = []

    _dispatcher(sender, max_attempts=4, base_delay=0.4, sleep=delays.append).dispatch("t", "b", None, ["A"])

    assert delays == [0.4, 0.8, 1.6]


def test_non_retryable_failure_is_reported_once(fake_sender):
    sender = fake_sender({"A": "reject"})

    outcome = _dispatcher(sender).dispatch("t", "b", None, ["A"])[0]

    assert sender.attempts("A") == 1
    assert outcome.is_valid_target is True
    assert outcome.is_success is False


def test_unexpected_error_does_not_abort_other_targets(fake_sender):
    sender = fake_sender({"A": "boom"})

    outcomes = _by_token(_dispatcher(sender).dispatch("t", "b", None, ["A", "B"]))

    assert outcomes["A"].is_success is False
    assert outcomes["B"].is_success is True


def test_unavailable_provider_aborts_dispatch(fake_sender):
    sender = fake_sender({"A": "fatal"})

    with pytest.raises(PushProviderUnavailableError):
        _dispatcher(sender).dispatch("t", "b", None, ["A", "B"])


def test_connect_error_on_one_target_does_not_abort_others(fake_sender):
    sender = fake_sender({"B": "connect"})

    outcomes = _by_token(_dispatcher(sender, max_workers=1).dispatch("t", "b", None, ["A", "B", "C"]))

    assert sender.attempts("B") == 3
    assert outcomes["A"].is_success is True
    assert outcomes["C"].is_success is True
    assert outcomes["B"].is_valid_target is True
    assert outcomes["B"].is_success is False
    assert outcomes["B"].error_detail


def test_provider_unreachable_for_every_target_aborts_dispatch(fake_sender):
    sender = fake_sender({"A": "connect", "B": "connect"})

    with pytest.raises(PushProviderUnavailableError):
        _dispatcher(sender, max_workers=1).dispatch("t", "b", None, ["A", "B"])

    assert sender.attempts("A") == 3
    assert sender.attempts("B") == 3


def test_concurrency_is_bounded_by_max_workers(fake_sender):
    sender = fake_sender(delay=0.02)
    targets = [f"tok-{i}" for i in range(20)]

    outcomes = _dispatcher(sender, max_workers=3).dispatch("t", "b", None, targets)

    assert len(outcomes) == 20
    assert 1 <= sender.max_active <= 3


def test_cancelled_dispatch_does_not_start_sends(fake_sender):
    sender = fake_sender()
    cancel_event = threading.Event()
    cancel_event.set()

    with pytest.raises(DispatchCancelledError):
        _dispatcher(sender).dispatch("t", "b", None, ["A", "B"], cancel_event=cancel_event)

    assert sender.calls == []
