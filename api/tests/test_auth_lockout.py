"""Tests for the failed-login lockout window."""

from api.services.auth_lockout import LoginLockout


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_not_blocked_below_threshold():
    lockout = LoginLockout(threshold=3, clock=FakeClock())
    lockout.record_failure("ip:admin")
    lockout.record_failure("ip:admin")
    assert lockout.retry_after("ip:admin") == 0


def test_blocked_at_threshold():
    clock = FakeClock()
    lockout = LoginLockout(threshold=3, block_seconds=600, clock=clock)
    for _ in range(3):
        lockout.record_failure("ip:admin")
    assert lockout.retry_after("ip:admin") == 600
    clock.now += 100
    assert lockout.retry_after("ip:admin") == 500
    clock.now += 500
    assert lockout.retry_after("ip:admin") == 0


def test_old_failures_slide_out_of_window():
    clock = FakeClock()
    lockout = LoginLockout(threshold=3, window_seconds=60, clock=clock)
    lockout.record_failure("ip:admin")
    lockout.record_failure("ip:admin")
    clock.now += 61
    assert lockout.record_failure("ip:admin") == 1
    assert lockout.retry_after("ip:admin") == 0


def test_keys_are_independent():
    lockout = LoginLockout(threshold=1, clock=FakeClock())
    lockout.record_failure("ip:admin")
    assert lockout.retry_after("ip:admin") > 0
    assert lockout.retry_after("ip:other") == 0


def test_clear_resets_key():
    lockout = LoginLockout(threshold=1, clock=FakeClock())
    lockout.record_failure("ip:admin")
    lockout.clear("ip:admin")
    assert lockout.retry_after("ip:admin") == 0
