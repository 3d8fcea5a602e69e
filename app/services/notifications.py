"""
Ride change fan-out over Redis pub/sub.

Every committed ride mutation is published as a JSON event on the channels of
the parties that care about it:

  rides:passenger:{passenger_id}   always
  rides:driver:{driver_id}         once a driver is attached
  rides:unassigned                 while the ride is an open request

Consumers open a RideSubscription with explicit filter criteria and cancel it
when done; nothing is captured from ambient state.
"""
import json
import logging
from typing import Any, AsyncIterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.services.state_machine import OPEN_REQUEST_STATUSES

logger = logging.getLogger(__name__)

UNASSIGNED_CHANNEL = "rides:unassigned"


def passenger_channel(passenger_id: str) -> str:
    return f"rides:passenger:{passenger_id}"


def driver_channel(driver_id: str) -> str:
    return f"rides:driver:{driver_id}"


def channels_for(ride: dict[str, Any]) -> list[str]:
    channels = [passenger_channel(ride["passenger_id"])]
    if ride.get("driver_id"):
        channels.append(driver_channel(ride["driver_id"]))
    elif ride.get("status") in {s.value for s in OPEN_REQUEST_STATUSES}:
        channels.append(UNASSIGNED_CHANNEL)
    return channels


class RideEventPublisher:
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def publish(self, event_type: str, ride: dict[str, Any]) -> int:
        """
        Publish a ride event to every interested channel.

        The row mutation has already been committed, so a broker failure is
        logged and swallowed: clients re-poll on a fixed interval and will
        converge. Returns the number of channels published to.
        """
        payload = json.dumps({"type": event_type, "ride": ride}, default=str)
        published = 0
        for channel in channels_for(ride):
            try:
                await self.redis.publish(channel, payload)
                published += 1
            except RedisError as exc:
                logger.error("Failed to publish %s for ride=%s on %s: %s",
                             event_type, ride.get("id"), channel, exc)
        return published


class RideSubscription:
    """
    An explicit, cancellable subscription to ride events.

        async with RideSubscription(redis, driver_id=uid, include_unassigned=True) as sub:
            async for event in sub:
                ...
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        passenger_id: Optional[str] = None,
        driver_id: Optional[str] = None,
        include_unassigned: bool = False,
    ):
        self.redis = redis
        self.channels: list[str] = []
        if passenger_id:
            self.channels.append(passenger_channel(passenger_id))
        if driver_id:
            self.channels.append(driver_channel(driver_id))
        if include_unassigned:
            self.channels.append(UNASSIGNED_CHANNEL)
        if not self.channels:
            raise ValueError("RideSubscription needs at least one filter")
        self._pubsub = None
        self.cancelled = False

    async def start(self) -> "RideSubscription":
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(*self.channels)
        logger.info("Subscribed to %s", ", ".join(self.channels))
        return self

    def cancel(self) -> None:
        """Stop iteration; safe to call from any task. The loop exits on its next tick."""
        self.cancelled = True

    async def close(self) -> None:
        """Cancel and release the underlying pub/sub connection."""
        self.cancel()
        if self._pubsub is not None:
            pubsub, self._pubsub = self._pubsub, None
            await pubsub.unsubscribe(*self.channels)
            await pubsub.aclose()
            logger.info("Unsubscribed from %s", ", ".join(self.channels))

    async def get_event(self, timeout: float = 1.0) -> Optional[dict[str, Any]]:
        """Return the next decoded event, or None if nothing arrived in time."""
        if self._pubsub is None:
            raise RuntimeError("Subscription not started")
        message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        if not message or message.get("type") != "message":
            return None
        try:
            return json.loads(message["data"])
        except (TypeError, ValueError):
            logger.warning("Dropping undecodable event on %s", message.get("channel"))
            return None

    async def __aenter__(self) -> "RideSubscription":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while not self.cancelled:
            event = await self.get_event()
            if event is not None:
                yield event
