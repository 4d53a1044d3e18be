import asyncio
import json
import logging
from typing import AsyncGenerator, Callable, Optional
from redis.asyncio import Redis

from skinarena.models.dc_models import RoundSnapshotModel

HEART_BEAT = 15


class RedisSubscriber:
    """Relay the broadcast channel to one Server-Sent-Events client."""

    def __init__(self, snapshot: Optional[Callable[[], RoundSnapshotModel]] = None):
        """Initialize RedisSubscriber with an optional round snapshot sent first."""
        self.snapshot: Optional[Callable[[], RoundSnapshotModel]] = snapshot

    @staticmethod
    def event_name(payload: dict) -> str:
        """SSE event name of a broadcast payload

        Args:
            payload (dict): broadcast message

        Returns:
            str: battle action, bet update type or "round" for the round clock messages
        """
        return payload.get("action") or payload.get("type") or "round"

    async def event_generator(self, channel: str, redis: Redis) -> AsyncGenerator[str, None]:
        """Event generator to handle SSE events.

        The current round snapshot goes out first so a late listener can rebuild
        the state, then every broadcast follows in publish order.

        Args:
            channel (str): Redis channel the ConnectionManager publishes broadcasts on.
            redis (Redis): Redis connection object.
        """
        pubsub = redis.pubsub()
        if self.snapshot is not None:
            payload = self.snapshot().model_dump_json()
            yield f"event: snapshot\ndata: {payload}\n\n"

        await pubsub.subscribe(channel)
        try:
            while True:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=HEART_BEAT)
                if msg is None:
                    # keep proxies from closing an idle stream
                    yield ": heartbeat\n\n"
                    await asyncio.sleep(0)
                    continue
                if msg["type"] != "message":
                    continue
                data = msg["data"]
                logging.debug(f"Payload: {data}")
                sse_message = f"event: {self.event_name(json.loads(data))}\ndata: {data}\n\n"
                yield sse_message
        finally:
            logging.info("Unsubscribing from channel")
            if pubsub:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
