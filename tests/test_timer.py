import signal
import time

import pytest

from mailsieve.timer import AlarmTimer


def test_zero_timeout_rejected():
    timer = AlarmTimer()
    with pytest.raises(ValueError):
        timer.set(0)


def test_not_expired_before_timeout():
    timer = AlarmTimer()
    timer.set(10)
    try:
        assert timer.expired() is False
    finally:
        timer.cancel()


def test_expires_after_timeout():
    timer = AlarmTimer()
    timer.set(0.05)
    try:
        deadline = time.monotonic() + 2
        while not timer.expired() and time.monotonic() < deadline:
            time.sleep(0.01)
        assert timer.expired() is True
    finally:
        timer.cancel()


def test_cancel_stops_timer_and_restores_handler():
    timer = AlarmTimer()
    timer.set(0.05)
    timer.cancel()
    time.sleep(0.15)
    assert timer.expired() is False
    assert signal.getsignal(signal.SIGALRM) == signal.SIG_DFL
    assert signal.getitimer(signal.ITIMER_REAL) == (0.0, 0.0)


def test_set_resets_expired_flag():
    timer = AlarmTimer()
    timer.set(0.02)
    deadline = time.monotonic() + 2
    while not timer.expired() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert timer.expired() is True
    timer.set(10)
    try:
        assert timer.expired() is False
    finally:
        timer.cancel()


def test_context_manager_cancels():
    with AlarmTimer() as timer:
        timer.set(0.05)
        assert timer.expired() is False
    time.sleep(0.15)
    assert timer.expired() is False
    assert signal.getitimer(signal.ITIMER_REAL)[0] == 0.0
    assert signal.getsignal(signal.SIGALRM) == signal.SIG_DFL