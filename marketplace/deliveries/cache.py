"""
Cache Redis des livraisons lues par ID.

Clé `delivery:<id>`, expiration fixe, invalidée à chaque écriture.
Sans REDIS_URL, le cache est désactivé.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from marketplace.config import settings
from marketplace.deliveries.config import DELIVERY_CACHE_KEY_PREFIX
from marketplace.deliveries.models import DeliveryRead

logger = logging.getLogger(__name__)

_redis_client: Optional[aioredis.Redis] = None


def get_redis_client() -> Optional[aioredis.Redis]:
    """Client Redis partagé, créé au premier appel."""
    global _redis_client
    if not settings.REDIS_URL:
        return None
    if _redis_client is None:
        _redis_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


RedisClientDep = Annotated[Optional[aioredis.Redis], Depends(get_redis_client)]


class DeliveryCache:

    def __init__(self, redis_client: Optional[aioredis.Redis], ttl: int = settings.DELIVERY_CACHE_TTL_SECONDS):
        self.redis = redis_client
        self.ttl = ttl

    @staticmethod
    def key(delivery_id: int) -> str:
        return f"{DELIVERY_CACHE_KEY_PREFIX}{delivery_id}"

    async def get(self, delivery_id: int) -> Optional[DeliveryRead]:
        if self.redis is None:
            return None
        try:
            cached = await self.redis.get(self.key(delivery_id))
        except RedisError as e:
            logger.warning(f"[DeliveryCache] Lecture impossible pour {delivery_id}: {e}")
            return None
        if not cached:
            return None
        logger.debug(f"[DeliveryCache] Hit livraison {delivery_id}")
        return DeliveryRead.model_validate_json(cached)

    async def set(self, delivery: DeliveryRead) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(self.key(delivery.id), delivery.model_dump_json(), ex=self.ttl)
        except RedisError as e:
            logger.warning(f"[DeliveryCache] Écriture impossible pour {delivery.id}: {e}")

    async def invalidate(self, delivery_id: int) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.delete(self.key(delivery_id))
        except RedisError as e:
            logger.warning(f"[DeliveryCache] Invalidation impossible pour {delivery_id}: {e}")


def get_delivery_cache(redis_client: RedisClientDep) -> DeliveryCache:
    return DeliveryCache(redis_client)


DeliveryCacheDep = Annotated[DeliveryCache, Depends(get_delivery_cache)]
