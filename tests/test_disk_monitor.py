"""
Disk Monitor Tests

Rate limiting is driven by a fake clock.
"""

from datetime import datetime

import pytest

from streamnotify.disk_monitor import DiskMonitor
from streamnotify.models import FreeSpace, Recording

MINUTE = 60

LOW = FreeSpace(free_gb=3.0, total_gb=100.0)
PLENTY = FreeSpace(free_gb=50.0, total_gb=100.0)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, minutes):
        self.now += minutes * MINUTE


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitor(clock):
    return DiskMonitor(clock=clock)


@pytest.fixture
def recordings():
    return [Recording('a', 'https://twitch.tv/a', '/tmp/a.ts', datetime(2026, 1, 1, 12, 0))]


class TestDiskMonitor:

    def test_first_check_always_reports(self, monitor, recordings):
        notification = monitor.check(PLENTY, recordings)

        assert notification is not None
        assert notification.trigger == 'disk state OK'
        assert '**a**' in notification.message

    def test_low_space_reported_once_within_quarter_hour(self, monitor, clock, recordings):
        first = monitor.check(LOW, recordings)
        clock.advance(14)
        second = monitor.check(LOW, recordings)

        assert first is not None
        assert 'LOW DISK SPACE' in first.message
        assert second is None

    def test_low_space_reported_again_after_quarter_hour(self, monitor, clock, recordings):
        monitor.check(LOW, recordings)
        clock.advance(16)

        notification = monitor.check(LOW, recordings)

        assert notification is not None
        assert 'LOW DISK SPACE' in notification.message

    def test_routine_report_after_an_hour(self, monitor, clock, recordings):
        monitor.check(PLENTY, recordings)
        clock.advance(30)
        assert monitor.check(PLENTY, recordings) is None

        clock.advance(31)
        notification = monitor.check(PLENTY, recordings)

        assert notification is not None
        assert 'Disk space state' in notification.message

    def test_critical_takes_precedence_and_resets_timer(self, monitor, clock, recordings):
        monitor.check(PLENTY, recordings)
        clock.advance(61)

        notification = monitor.check(LOW, recordings)
        clock.advance(1)

        assert 'LOW DISK SPACE' in notification.message
        assert monitor.check(PLENTY, recordings) is None

    def test_poll_failure_is_always_reported(self, monitor, recordings):
        first = monitor.check(None, recordings)
        second = monitor.check(None, recordings)

        assert first is not None and second is not None
        assert 'error' in first.message

    def test_poll_failure_does_not_reset_timer(self, monitor, recordings):
        monitor.check(None, recordings)

        notification = monitor.check(PLENTY, recordings)

        assert notification is not None
        assert notification.trigger == 'disk state OK'

    def test_custom_floor(self, clock, recordings):
        monitor = DiskMonitor(low_space_gb=60, clock=clock)

        notification = monitor.check(PLENTY, recordings)

        assert 'LOW DISK SPACE (<60)' in notification.message
