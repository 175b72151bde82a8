"""Tests for the retry schedule."""

from datetime import datetime, timedelta, timezone

from docguard.jobs.backoff import backoff_interval, next_run_time, should_retry


class TestBackoff:
    def test_schedule(self):
        assert [backoff_interval(n) for n in range(1, 8)] == [
            timedelta(minutes=1),
            timedelta(minutes=5),
            timedelta(minutes=15),
            timedelta(hours=1),
            timedelta(hours=6),
            timedelta(hours=24),
            timedelta(hours=24),
        ]

    def test_non_decreasing(self):
        intervals = [backoff_interval(n) for n in range(0, 20)]
        assert intervals == sorted(intervals)

    def test_next_run_time(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert next_run_time(2, now) == now + timedelta(minutes=5)

    def test_should_retry(self):
        assert should_retry(1, 5)
        assert should_retry(4, 5)
        assert not should_retry(5, 5)
        assert not should_retry(1, 5, retryable=False)
