"""
Push transports for notifications.

Delivery is best-effort: no acknowledgement, no retry, no ordering across
users. A user who is offline only sees the notification through the pull
endpoint.
"""
import json
import logging
import os
from typing import Protocol
from .ws_manager import ConnectionManager

logger = logging.getLogger(__name__)

NOTIFICATIONS_CHANNEL = os.getenv('NOTIFICATIONS_CHANNEL', 'notifications')


class DeliveryChannel(Protocol):
    async def publish(self, user_id: int, payload: dict) -> None:
        ...


class LocalDeliveryChannel:
    """Delivers straight to sockets held by this process"""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def publish(self, user_id: int, payload: dict) -> None:
        if not self.manager.is_connected(user_id):
            logger.debug(f'User {user_id} has no open socket, push skipped')
            return
        await self.manager.send_personal(user_id, payload)


class RedisDeliveryChannel:
    """Publishes to a Redis channel that every app instance listens on"""

    def __init__(self, redis, channel: str = NOTIFICATIONS_CHANNEL):
        self.redis = redis
        self.channel = channel

    async def publish(self, user_id: int, payload: dict) -> None:
        await self.redis.publish(self.channel, json.dumps({'user_id': user_id, 'payload': payload}))
