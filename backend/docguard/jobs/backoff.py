"""Exponential backoff schedule for failed validation jobs."""

from datetime import datetime, timedelta

# Delay before attempt N+1, indexed by the attempt that just failed (1-based).
# Attempts past the end of the table use the last entry.
BACKOFF_SCHEDULE = (
    timedelta(minutes=1),
    timedelta(minutes=5),
    timedelta(minutes=15),
    timedelta(hours=1),
    timedelta(hours=6),
    timedelta(hours=24),
)


def backoff_interval(attempt: int) -> timedelta:
    """Delay after the `attempt`-th failure; non-decreasing in `attempt`."""
    index = min(max(attempt, 1), len(BACKOFF_SCHEDULE)) - 1
    return BACKOFF_SCHEDULE[index]


def next_run_time(attempt: int, now: datetime) -> datetime:
    return now + backoff_interval(attempt)


def should_retry(attempt: int, max_attempts: int, retryable: bool = True) -> bool:
    """True if a job that has now failed `attempt` times gets another run."""
    if not retryable:
        return False
    return attempt < max_attempts
