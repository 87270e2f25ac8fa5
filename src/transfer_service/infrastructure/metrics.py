import time
from collections.abc import Awaitable, Callable
from functools import wraps

from prometheus_client import Counter, Histogram


TRANSFER_REQUESTS_TOTAL = Counter(
    "transfer_requests_total",
    "Total number of money transfer requests",
    ["status", "error_code"],
)

TRANSFER_DURATION_SECONDS = Histogram(
    "transfer_duration_seconds",
    "Money transfer processing duration",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACCOUNT_LOCK_WAIT_SECONDS = Histogram(
    "account_lock_wait_seconds",
    "Time spent waiting to acquire an account lock",
    ["backend"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

ACCOUNT_LOCK_FAILURES_TOTAL = Counter(
    "account_lock_failures_total",
    "Total number of account lock acquisitions that timed out",
    ["backend"],
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)


def track_transfer_duration[**P, R](
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration = time.perf_counter() - start
            TRANSFER_DURATION_SECONDS.observe(duration)

    return wrapper
