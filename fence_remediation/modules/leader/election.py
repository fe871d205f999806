import asyncio
import logging
from typing import Awaitable, Callable, Optional

from redis.exceptions import RedisError

from ...config.provider import LeaderElectionConfig

logger = logging.getLogger(__name__)

# Extend the lease only if we still hold it
RENEW_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('pexpire', KEYS[1], ARGV[2])
end
return 0
"""

# Delete the lease only if we still hold it
RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class LeaderElector:
    def __init__(self, redis_client, election_config: LeaderElectionConfig):
        """
        Initialize leader elector.

        Args:
            redis_client: Async Redis client
            election_config: Lease name, duration, renew interval and identity
        """
        self.redis = redis_client
        self.config = election_config
        self.key = f"leader:lease:{election_config.lease_name}"
        self.is_leader = False

    async def try_acquire(self) -> bool:
        """Take the lease if nobody holds it."""
        acquired = await self.redis.set(
            self.key,
            self.config.identity,
            nx=True,
            px=self.config.lease_seconds * 1000,
        )
        if not acquired:
            holder = await self.redis.get(self.key)
            # Our own lease from a previous run of this identity
            acquired = holder == self.config.identity and await self.renew()
        self.is_leader = bool(acquired)
        return self.is_leader

    async def acquire(self) -> None:
        """Block until the lease is acquired; Redis errors are retried."""
        logger.info(f"Waiting for leader lease {self.key} as {self.config.identity}")
        while True:
            try:
                if await self.try_acquire():
                    break
            except RedisError as e:
                self.is_leader = False
                logger.error(f"Failed to acquire leader lease: {e}")
            await asyncio.sleep(self.config.renew_seconds)
        logger.info(f"Acquired leader lease {self.key}")

    async def renew(self) -> bool:
        """Extend the lease; returns False if it is no longer ours."""
        renewed = await self.redis.eval(
            RENEW_SCRIPT, 1, self.key, self.config.identity, self.config.lease_seconds * 1000
        )
        return bool(renewed)

    async def release(self) -> None:
        """Give up the lease if we hold it."""
        if not self.is_leader:
            return
        self.is_leader = False
        await self.redis.eval(RELEASE_SCRIPT, 1, self.key, self.config.identity)
        logger.info(f"Released leader lease {self.key}")

    async def run_renewal(self, on_lost: Optional[Callable[[], Awaitable[None]]] = None) -> None:
        """
        Renew the lease every renew_seconds until it is lost.

        Args:
            on_lost: Coroutine function called once leadership is lost
        """
        while self.is_leader:
            await asyncio.sleep(self.config.renew_seconds)
            try:
                renewed = await self.renew()
            except RedisError as e:
                logger.error(f"Failed to renew leader lease: {e}")
                renewed = False

            if not renewed:
                self.is_leader = False
                logger.error(f"Lost leader lease {self.key}")
                if on_lost:
                    await on_lost()
