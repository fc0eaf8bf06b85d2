"""Redis-based per-partner balance locks.

A transfer locks every partner whose balance it may touch, always in sorted
id order so two transfers over the same pair can never wait on each other.
The guarded UPDATE in the transfer engine stays the final word on
non-negativity; these locks only serialize read-validate-write sequences.

Commands used:
- SET NX EX: atomic acquisition with expiry
- GET + DEL (Lua): owner-checked release
"""

import asyncio
import time
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from partner_wallet.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class LockInfo:
    """Lock metadata."""

    lock_key: str
    owner_token: str
    acquired_at: float


class LockAcquisitionError(Exception):
    """Failed to acquire a lock within the timeout."""

    def __init__(self, lock_key: str, reason: str = "timeout"):
        self.lock_key = lock_key
        self.reason = reason
        super().__init__(f"Failed to acquire lock {lock_key} ({reason})")


class BalanceLockManager:
    """Per-partner advisory locks held for the duration of a transfer."""

    LOCK_KEY_PREFIX = "wallet:lock:"

    # Delete only if we still own the key
    RELEASE_LOCK_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        redis_client: Redis,
        lock_ttl_seconds: int = 10,
        acquire_timeout_ms: int = 2000,
        retry_interval_ms: int = 50,
    ):
        self.redis = redis_client
        self.lock_ttl_seconds = lock_ttl_seconds
        self.acquire_timeout_ms = acquire_timeout_ms
        self.retry_interval_ms = retry_interval_ms
        self._release_script = None

    def _make_lock_key(self, partner_id: str) -> str:
        return f"{self.LOCK_KEY_PREFIX}{partner_id}"

    async def acquire(self, partner_id: str) -> LockInfo:
        """Acquire the balance lock of one partner.

        Raises:
            LockAcquisitionError: If the lock is still held after the timeout
                or Redis rejected the command
        """
        lock_key = self._make_lock_key(partner_id)
        owner_token = uuid4().hex
        start = time.monotonic()

        while True:
            try:
                acquired = await self.redis.set(
                    lock_key,
                    owner_token,
                    nx=True,
                    ex=self.lock_ttl_seconds,
                )
            except RedisError as e:
                raise LockAcquisitionError(lock_key, reason=str(e)) from e
            if acquired:
                return LockInfo(
                    lock_key=lock_key,
                    owner_token=owner_token,
                    acquired_at=time.time(),
                )

            elapsed_ms = (time.monotonic() - start) * 1000
            if elapsed_ms >= self.acquire_timeout_ms:
                raise LockAcquisitionError(lock_key)

            await asyncio.sleep(self.retry_interval_ms / 1000)

    async def release(self, lock_info: LockInfo) -> bool:
        """Release a lock if it is still ours.

        Returns:
            True if released, False if it had expired or changed owner
        """
        if self._release_script is None:
            self._release_script = self.redis.register_script(self.RELEASE_LOCK_SCRIPT)

        result = await self._release_script(
            keys=[lock_info.lock_key],
            args=[lock_info.owner_token],
        )
        if result != 1:
            logger.warning("balance_lock_lost", lock_key=lock_info.lock_key)
        return result == 1

    @asynccontextmanager
    async def hold(self, partner_ids: Iterable[str]) -> AsyncGenerator[list[LockInfo], None]:
        """Hold the locks of several partners, acquired in sorted order.

        Release is best effort: a failed release is logged and the key expires
        on its TTL, so it never masks the outcome of the guarded block.
        """
        held: list[LockInfo] = []
        try:
            for partner_id in sorted(set(partner_ids)):
                held.append(await self.acquire(partner_id))
            yield held
        finally:
            for lock_info in reversed(held):
                try:
                    await self.release(lock_info)
                except RedisError as e:
                    logger.warning(
                        "balance_lock_release_failed",
                        lock_key=lock_info.lock_key,
                        error=str(e),
                    )
