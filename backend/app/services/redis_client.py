"""Redis client for plan-change broadcasts.

Publishing is best effort: a Redis outage is logged and never fails the
request that changed the plan.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

PLAN_CHANNEL_PREFIX = "study-plan"

# Global Redis connection pool
_redis_pool: redis.ConnectionPool | None = None
_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get Redis client instance (creates connection pool on first call)."""
    global _redis_pool, _redis_client

    if _redis_client is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
        _redis_client = redis.Redis(connection_pool=_redis_pool)
        logger.info("Redis connection pool initialized")

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None

    logger.info("Redis connection pool closed")


def plan_channel(plan_id: str) -> str:
    return f"{PLAN_CHANNEL_PREFIX}:{plan_id}"


async def publish_plan_event(plan_id: str, event: str, payload: dict[str, Any] | None = None) -> bool:
    """Publish ``{event, planId, payload}`` on the plan's channel.

    Returns True if the message was handed to Redis. Fails silently.
    """
    if not settings.plan_broadcast_enabled:
        return False

    message = json.dumps({"event": event, "planId": plan_id, "payload": payload or {}}, default=str)
    try:
        client = await get_redis()
        await client.publish(plan_channel(plan_id), message)
        return True
    except Exception:
        logger.warning("Broadcast of %s for plan %s failed", event, plan_id, exc_info=True)
        return False
