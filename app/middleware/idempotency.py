import json
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.redis_client import cache_get, cache_set


IDEMPOTENCY_TTL = 86400  # 24 hours


def _cache_key(scope: str, key: str) -> str:
    return f"idempotency:{scope}:{key}"


async def check_idempotency(
    redis: aioredis.Redis,
    scope: str,
    key: Optional[str],
) -> Optional[Response]:
    """
    Returns the cached Response if this Idempotency-Key was already used by
    the same caller, otherwise None (proceed normally).
    """
    if not key:
        return None

    cached = await cache_get(redis, _cache_key(scope, key))
    if cached:
        data = json.loads(cached)
        return JSONResponse(
            content=data["body"],
            status_code=data["status_code"],
            headers={"X-Idempotency-Replay": "true"},
        )
    return None


async def store_idempotency_result(
    redis: aioredis.Redis,
    scope: str,
    key: str,
    status_code: int,
    body: dict,
) -> None:
    """Persist the response for the given idempotency key (24h TTL)."""
    await cache_set(
        redis,
        _cache_key(scope, key),
        json.dumps({"status_code": status_code, "body": jsonable_encoder(body)}),
        ttl=IDEMPOTENCY_TTL,
    )


IDEMPOTENCY_LOCK_TTL = 30  # seconds a key stays reserved while its request runs


def _lock_key(scope: str, key: str) -> str:
    return f"{_cache_key(scope, key)}:lock"


async def reserve_idempotency(redis: aioredis.Redis, scope: str, key: str) -> bool:
    """
    Claim the key for the request about to run. Only one caller gets True;
    concurrent duplicates get False until the owner stores or releases it.
    """
    acquired = await redis.set(_lock_key(scope, key), "1", nx=True, ex=IDEMPOTENCY_LOCK_TTL)
    return bool(acquired)


async def release_idempotency(redis: aioredis.Redis, scope: str, key: str) -> None:
    await redis.delete(_lock_key(scope, key))
