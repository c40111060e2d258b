import asyncio
import json
import logging
from typing import Dict, Set
from fastapi import WebSocket

logger = logging.getLogger(__name__)

class ConnectionManager:
    """Live websocket connections of this app instance, keyed by user id"""

    def __init__(self):
        self.connections: Dict[int, Set[WebSocket]] = {}

    async def connect(self, user_id: int, websocket: WebSocket):
        # registered before the handshake completes so a push can't slip past a just-accepted client
        self.connections.setdefault(user_id, set()).add(websocket)
        await websocket.accept()

    async def disconnect(self, user_id: int, websocket: WebSocket):
        ws_set = self.connections.get(user_id, set())
        ws_set.discard(websocket)
        if not ws_set:
            self.connections.pop(user_id, None)

    def is_connected(self, user_id: int) -> bool:
        return bool(self.connections.get(user_id))

    async def send_personal(self, user_id: int, message: dict) -> int:
        """Send to every socket of user_id; returns how many accepted the frame"""
        delivered = 0
        for ws in list(self.connections.get(user_id, set())):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.info(f'Dropping websocket of user {user_id}: {e}')
                await self.disconnect(user_id, ws)
        return delivered

    # Redis pub/sub listener to route pushes published by any app instance.
    # Runs until cancelled; a lost subscription is logged and re-established.
    async def start_redis_listener(self, redis, channel: str, retry_delay: float = 3):
        while True:
            try:
                await self._listen(redis, channel)
                logger.warning(f'Push subscription on {channel} ended, resubscribing in {retry_delay} seconds...')
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f'Push subscription on {channel} failed, resubscribing in {retry_delay} seconds...')
            await asyncio.sleep(retry_delay)

    async def _listen(self, redis, channel: str):
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for item in pubsub.listen():
                if not item or item.get('type') != 'message':
                    continue
                try:
                    data = json.loads(item['data'])
                    await self.send_personal(int(data['user_id']), data['payload'])
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning(f'Ignoring malformed push event on {channel}: {e}')
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except Exception as e:
                logger.debug(f'Closing pubsub on {channel} failed: {e}')
