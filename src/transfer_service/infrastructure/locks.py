import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from transfer_service.application.ports import AccountLock
from transfer_service.domain.exceptions import LockAcquisitionError
from transfer_service.domain.models import AccountId
from transfer_service.infrastructure.metrics import (
    ACCOUNT_LOCK_FAILURES_TOTAL,
    ACCOUNT_LOCK_WAIT_SECONDS,
)


if TYPE_CHECKING:
    import redis.asyncio as redis

    from transfer_service.config import Settings
    from transfer_service.infrastructure.redis_client import RedisClient

logger = structlog.get_logger()


class NoOpAccountLock:
    """Lock that never blocks. Provides no exclusion; meant for tests."""

    async def lock_account(self, account_id: AccountId) -> None:
        return None

    async def release_account(self, account_id: AccountId) -> None:
        return None


class _LockEntry:
    __slots__ = ("lock", "owner", "waiters")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.owner: asyncio.Task[Any] | None = None
        self.waiters = 0


class InMemoryAccountLock:
    """
    Keyed mutex registry for a single process.

    At most one holder per account id. The holder is the task that acquired
    the lock; releases from any other task are ignored. Entries are dropped
    once nobody holds or waits for them.
    """

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self._timeout_seconds = timeout_seconds
        self._entries: dict[AccountId, _LockEntry] = {}

    def is_locked(self, account_id: AccountId) -> bool:
        entry = self._entries.get(account_id)
        return entry is not None and entry.lock.locked()

    async def lock_account(self, account_id: AccountId) -> None:
        entry = self._entries.setdefault(account_id, _LockEntry())
        entry.waiters += 1
        start = time.perf_counter()
        try:
            await asyncio.wait_for(entry.lock.acquire(), timeout=self._timeout_seconds)
        except TimeoutError:
            ACCOUNT_LOCK_FAILURES_TOTAL.labels(backend="memory").inc()
            logger.warning("account_lock_timeout", account_id=account_id, timeout=self._timeout_seconds)
            raise LockAcquisitionError(account_id, self._timeout_seconds) from None
        finally:
            entry.waiters -= 1
            if entry.waiters == 0 and not entry.lock.locked():
                self._entries.pop(account_id, None)

        entry.owner = asyncio.current_task()
        ACCOUNT_LOCK_WAIT_SECONDS.labels(backend="memory").observe(time.perf_counter() - start)
        logger.debug("account_locked", account_id=account_id, backend="memory")

    async def release_account(self, account_id: AccountId) -> None:
        entry = self._entries.get(account_id)
        if entry is None or not entry.lock.locked():
            return
        if entry.owner is not asyncio.current_task():
            logger.warning("account_release_by_non_holder", account_id=account_id, backend="memory")
            return

        entry.owner = None
        entry.lock.release()
        if entry.waiters == 0:
            self._entries.pop(account_id, None)
        logger.debug("account_released", account_id=account_id, backend="memory")


# Deletes the key only while it still carries this holder's token.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisAccountLock:
    """
    Distributed account lock using Redis `SET NX PX`.

    Each acquisition stores a random token for the acquiring task; release
    only removes a key that still holds that task's token, so an expired and
    re-acquired lock is never released by its previous holder, even when both
    holders share this instance.
    """

    def __init__(
        self,
        redis_client: "redis.Redis[bytes]",
        timeout_seconds: float = 5.0,
        ttl_seconds: float = 30.0,
        key_prefix: str = "account-lock:",
        retry_interval_seconds: float = 0.05,
    ) -> None:
        self._redis = redis_client
        self._timeout_seconds = timeout_seconds
        self._ttl_ms = int(ttl_seconds * 1000)
        self._key_prefix = key_prefix
        self._retry_interval_seconds = retry_interval_seconds
        self._tokens: dict[tuple[AccountId, asyncio.Task[Any] | None], str] = {}

    def _key(self, account_id: AccountId) -> str:
        return f"{self._key_prefix}{account_id}"

    @staticmethod
    def _holder(account_id: AccountId) -> tuple[AccountId, asyncio.Task[Any] | None]:
        return account_id, asyncio.current_task()

    async def lock_account(self, account_id: AccountId) -> None:
        token = uuid.uuid4().hex
        key = self._key(account_id)
        start = time.perf_counter()
        deadline = start + self._timeout_seconds

        while not await self._redis.set(key, token, nx=True, px=self._ttl_ms):
            if time.perf_counter() >= deadline:
                ACCOUNT_LOCK_FAILURES_TOTAL.labels(backend="redis").inc()
                logger.warning("account_lock_timeout", account_id=account_id, timeout=self._timeout_seconds)
                raise LockAcquisitionError(account_id, self._timeout_seconds)
            await asyncio.sleep(self._retry_interval_seconds)

        self._tokens[self._holder(account_id)] = token
        ACCOUNT_LOCK_WAIT_SECONDS.labels(backend="redis").observe(time.perf_counter() - start)
        logger.debug("account_locked", account_id=account_id, backend="redis")

    async def release_account(self, account_id: AccountId) -> None:
        token = self._tokens.pop(self._holder(account_id), None)
        if token is None:
            return

        released = await self._redis.eval(_RELEASE_SCRIPT, 1, self._key(account_id), token)
        if not released:
            logger.warning("account_lock_expired_before_release", account_id=account_id)
        else:
            logger.debug("account_released", account_id=account_id, backend="redis")


def create_account_lock(
    settings: "Settings",
    redis_client: "RedisClient | None" = None,
) -> AccountLock:
    if settings.lock_backend == "redis":
        if redis_client is None:
            raise ValueError("Redis lock backend requires a connected Redis client")
        return RedisAccountLock(
            redis_client.client,
            timeout_seconds=settings.lock_timeout_seconds,
            ttl_seconds=settings.lock_ttl_seconds,
            key_prefix=settings.lock_key_prefix,
        )
    if settings.lock_backend == "noop":
        logger.warning("noop_account_lock_enabled")
        return NoOpAccountLock()
    return InMemoryAccountLock(timeout_seconds=settings.lock_timeout_seconds)
