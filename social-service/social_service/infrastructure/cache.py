"""
Redis caching layer for Social Service
"""
import redis.asyncio as redis
from redis.exceptions import WatchError
from typing import Optional, Any
import json
import logging

from ..config import settings

logger = logging.getLogger(__name__)

# Cached marker for "no edge", so misses and absent edges can be told apart
NO_EDGE = "none"


class RedisCache:
    """Redis cache manager for relationship lookups and unread counts"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis: Optional[redis.Redis] = client

    async def connect(self):
        """Connect to Redis"""
        if not settings.REDIS_ENABLED:
            logger.info("Redis caching is disabled")
            return

        try:
            self.redis = await redis.from_url(
                f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}",
                password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Continuing without cache.")
            self.redis = None

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.close()
            logger.info("Disconnected from Redis")

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self.redis:
            return None

        try:
            value = await self.redis.get(key)
            if value is not None:
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"Error getting cache key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300):
        """Set value in cache with TTL"""
        if not self.redis:
            return

        try:
            await self.redis.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.error(f"Error setting cache key {key}: {e}")

    async def delete(self, *keys: str):
        """Delete keys from cache"""
        if not self.redis or not keys:
            return

        try:
            await self.redis.delete(*keys)
        except Exception as e:
            logger.error(f"Error deleting cache keys {keys}: {e}")

    # Social-specific cache methods
    def _follow_status_key(self, follower_id: int, following_id: int) -> str:
        """Generate cache key for the status of an ordered pair"""
        return f"social:follow:{follower_id}:{following_id}"

    def _relationship_generation_key(self, user1_id: int, user2_id: int) -> str:
        """Generation counter shared by both directions of a pair"""
        low, high = sorted((user1_id, user2_id))
        return f"social:follow:gen:{low}:{high}"

    def _unread_key(self, profile_id: int) -> str:
        """Generate cache key for unread notification count"""
        return f"social:unread:{profile_id}"

    async def get_follow_status(self, follower_id: int, following_id: int) -> Optional[str]:
        """Get cached edge status; NO_EDGE when the absence itself is cached"""
        return await self.get(self._follow_status_key(follower_id, following_id))

    async def get_relationship_generation(self, user1_id: int, user2_id: int) -> Optional[int]:
        """
        Current generation of a pair, read before loading the edge from the store

        Returns None without redis, in which case nothing should be cached.
        """
        if not self.redis:
            return None

        try:
            value = await self.redis.get(self._relationship_generation_key(user1_id, user2_id))
            return int(value or 0)
        except Exception as e:
            logger.error(f"Error reading relationship generation {user1_id}:{user2_id}: {e}")
            return None

    async def set_follow_status(
        self,
        follower_id: int,
        following_id: int,
        status: Optional[str],
        generation: Optional[int] = None,
    ) -> bool:
        """
        Cache edge status

        With a generation the write only lands if no invalidation of the pair
        happened since that generation was read.

        Returns:
            True if the status was written
        """
        key = self._follow_status_key(follower_id, following_id)
        if generation is None:
            await self.set(key, status or NO_EDGE, settings.CACHE_TTL_RELATIONSHIP)
            return self.redis is not None

        if not self.redis:
            return False

        generation_key = self._relationship_generation_key(follower_id, following_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(generation_key)
                current = await pipe.get(generation_key)
                if int(current or 0) != generation:
                    logger.debug(f"Skipping stale follow status for {key}")
                    return False

                pipe.multi()
                pipe.setex(key, settings.CACHE_TTL_RELATIONSHIP, json.dumps(status or NO_EDGE))
                await pipe.execute()
                return True
        except WatchError:
            logger.debug(f"Relationship {key} invalidated while caching")
            return False
        except Exception as e:
            logger.error(f"Error setting cache key {key}: {e}")
            return False

    async def invalidate_relationship_cache(self, follower_id: int, following_id: int):
        """Invalidate relationship cache between two users and bump the pair generation"""
        if not self.redis:
            return

        generation_key = self._relationship_generation_key(follower_id, following_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.incr(generation_key)
                pipe.expire(generation_key, settings.CACHE_TTL_RELATIONSHIP * 2)
                pipe.delete(
                    self._follow_status_key(follower_id, following_id),
                    self._follow_status_key(following_id, follower_id),
                )
                await pipe.execute()
        except Exception as e:
            logger.error(f"Error invalidating relationship {follower_id}:{following_id}: {e}")

    async def get_unread_count(self, profile_id: int) -> Optional[int]:
        """Get cached unread count"""
        return await self.get(self._unread_key(profile_id))

    async def set_unread_count(self, profile_id: int, count: int):
        """Cache unread count"""
        await self.set(self._unread_key(profile_id), count, settings.CACHE_TTL_UNREAD)

    async def invalidate_unread_count(self, profile_id: int):
        """Invalidate unread count of a profile"""
        await self.delete(self._unread_key(profile_id))


# Global cache instance
cache = RedisCache()


async def get_cache() -> RedisCache:
    """Dependency for getting cache instance"""
    return cache
