"""
Distributed locking for payment operations.

Row-level serialization of a single Payment is done in the database
(select_for_update plus the version compare-and-swap on
core.model_mixins.VersionedMixin). This module covers the case the
database cannot: two processes about to create *new* gateway intents for
the same business, where there is no row to lock yet.

Usage:
    from payments.locks import DistributedLock

    with DistributedLock.for_business_intent(business.id):
        # Only one process per business runs this block
        ...
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from django.conf import settings
from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Features:
        - TTL prevents deadlocks from crashed processes
        - Token-based ownership: only the holder can release
        - Blocking (with timeout) and non-blocking acquisition
        - Context manager support

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Lock TTL in seconds (auto-releases after this time)
        blocking: If True, acquire() polls until the lock is free
        timeout: Maximum wait time in seconds (only if blocking=True)

    Raises:
        LockAcquisitionError: From acquire()/__enter__ when the lock is held
    """

    # Atomic check-and-delete so a lock that expired and was re-acquired
    # by another process is never released by us
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL_SECONDS = 0.05
    GATEWAY_CALLS_PER_INTENT = 3
    TTL_MARGIN_SECONDS = 5

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    @classmethod
    def for_business_intent(cls, business_id: Any) -> DistributedLock:
        """
        Lock serializing payment-intent creation for one business.

        The TTL outlives the Stripe calls made while it is held (customer
        search, customer create, intent create), each of which may take
        STRIPE_API_TIMEOUT_SECONDS per attempt. Contenders wait at most
        PAYMENT_INTENT_LOCK_TTL_SECONDS.
        """
        wait = settings.PAYMENT_INTENT_LOCK_TTL_SECONDS
        gateway_bound = (
            settings.STRIPE_API_TIMEOUT_SECONDS
            * (settings.STRIPE_MAX_RETRIES + 1)
            * cls.GATEWAY_CALLS_PER_INTENT
        )
        return cls(
            f"payment-intent:business:{business_id}",
            ttl=max(wait, gateway_bound + cls.TTL_MARGIN_SECONDS),
            blocking=True,
            timeout=float(wait),
        )

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Returns:
            True once the lock is held

        Raises:
            LockAcquisitionError: If the lock couldn't be acquired
        """
        self._token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if not self.blocking:
            if self._try_acquire(redis):
                return True
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )

        deadline = time.monotonic() + self.timeout
        while True:
            if self._try_acquire(redis):
                return True
            if time.monotonic() >= deadline:
                self._token = None
                raise LockAcquisitionError(
                    f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                    details={"key": self.key, "timeout": self.timeout},
                )
            time.sleep(self.POLL_INTERVAL_SECONDS)

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Returns:
            True if released, False if we no longer held it (expired)
        """
        if self._token is None:
            return False

        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


__all__ = ["DistributedLock"]
