# app/services/change_feed.py
import asyncio
import json
import logging
import uuid
from typing import Callable, Iterable, Optional

import redis

from app.settings import CHANGE_CHANNEL, REDIS_URL

logger = logging.getLogger(__name__)


class ChangeFeed:
    """
    Publishes committed collection names on a Redis channel and replays
    changes committed by other processes into the local subscription hub.
    """

    def __init__(self, client, notify: Callable[[Iterable[str]], None],
                 channel: str = CHANGE_CHANNEL, origin: Optional[str] = None):
        self._client = client
        self._notify = notify
        self.channel = channel
        self.origin = origin or uuid.uuid4().hex

    def publish(self, collections: Iterable[str]):
        payload = json.dumps({"origin": self.origin, "collections": sorted(collections)})
        try:
            self._client.publish(self.channel, payload)
        except redis.RedisError as e:
            logger.warning(f"⚠️ Failed to publish change on {self.channel}: {e}")

    def handle_message(self, message) -> bool:
        """Apply one pub/sub message; returns True when the hub was notified."""
        if not message or message.get("type") != "message":
            return False
        try:
            payload = json.loads(message["data"])
        except (TypeError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring malformed change message: {e}")
            return False
        if payload.get("origin") == self.origin:
            return False
        collections = set(payload.get("collections") or [])
        if not collections:
            return False
        logger.info(f"📡 Remote change on {sorted(collections)}")
        self._notify(collections)
        return True

    async def listen(self, poll_interval: float = 1.0):
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(self.channel)
        logger.info(f"✅ Listening for catalog changes on {self.channel}")
        try:
            while True:
                message = await asyncio.to_thread(pubsub.get_message, timeout=poll_interval)
                self.handle_message(message)
        finally:
            pubsub.close()


def create_change_feed(store, redis_url: Optional[str] = REDIS_URL) -> Optional[ChangeFeed]:
    """Wire a change feed into ``store`` when Redis is configured."""
    if not redis_url:
        return None
    client = redis.Redis.from_url(redis_url, decode_responses=True)
    feed = ChangeFeed(client, store.hub.notify)
    store.executor.add_listener(feed.publish)
    return feed
