"""
Realtime router — WS /ws/rides?token=<access token>

Streams ride change events for the authenticated caller:
  passenger -> their own rides
  driver    -> rides assigned to them, plus open requests while online
Clients are expected to keep polling on `requests_poll_seconds` as a backstop.
"""
import asyncio
import logging
from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.errors import AuthenticationError
from app.models.user import User
from app.redis_client import get_redis
from app.services.auth_provider import AuthProvider
from app.services.notifications import RideSubscription

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(tags=["Realtime"])


def subscription_for(redis: aioredis.Redis, user: User) -> Optional[RideSubscription]:
    if user.user_type == "passenger":
        return RideSubscription(redis, passenger_id=user.id)
    if user.user_type == "driver":
        return RideSubscription(redis, driver_id=user.id, include_unassigned=True)
    return None


async def _watch_disconnect(websocket: WebSocket, subscription: RideSubscription) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()


@router.websocket("/ws/rides")
async def ride_events(
    websocket: WebSocket,
    token: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    try:
        user_id = await AuthProvider(db).verify(token or "")
    except AuthenticationError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user = await db.get(User, user_id)
    subscription = subscription_for(redis, user) if user else None
    if subscription is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    async with subscription:
        await websocket.send_json({
            "type": "SUBSCRIBED",
            "channels": subscription.channels,
            "poll_interval_seconds": settings.requests_poll_seconds,
        })
        watcher = asyncio.create_task(_watch_disconnect(websocket, subscription))
        try:
            async for event in subscription:
                await websocket.send_json(event)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.info("Realtime client %s went away: %s", user_id, exc)
        finally:
            watcher.cancel()
