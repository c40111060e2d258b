import asyncio
import logging
import os
from typing import Optional, Protocol
import httpx
from .errors import TransientCollaboratorFailure

logger = logging.getLogger(__name__)

FALLBACK_GREETING = "Hey there! I'd love to connect with you."
MESSAGE_GENERATOR_URL = os.getenv('MESSAGE_GENERATOR_URL')
MESSAGE_GENERATOR_TIMEOUT = float(os.getenv('MESSAGE_GENERATOR_TIMEOUT', '5'))


class MessageGenerator(Protocol):
    async def generate(self, sender_id: int, receiver_id: int) -> str:
        ...


class HttpMessageGenerator:
    """Asks an external service for a personalized friend request greeting"""

    def __init__(self, url: str, timeout: float = MESSAGE_GENERATOR_TIMEOUT, transport: httpx.AsyncBaseTransport = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def generate(self, sender_id: int, receiver_id: int) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.url, json={'sender_id': sender_id, 'receiver_id': receiver_id})
                resp.raise_for_status()
                return resp.json()['message']
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise TransientCollaboratorFailure(f'greeting generation failed: {e}') from e


class GreetingService:
    """Greeting for a new friend request that never fails.

    Whatever goes wrong with the generator (error, timeout, empty text) the
    caller gets FALLBACK_GREETING.
    """

    def __init__(self, generator: Optional[MessageGenerator] = None, timeout: float = MESSAGE_GENERATOR_TIMEOUT, fallback: str = FALLBACK_GREETING):
        self.generator = generator
        self.timeout = timeout
        self.fallback = fallback

    async def greeting_for(self, sender_id: int, receiver_id: int) -> str:
        if self.generator is None:
            return self.fallback
        try:
            message = await asyncio.wait_for(self.generator.generate(sender_id, receiver_id), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning({'msg': 'greeting_timeout', 'sender_id': sender_id, 'receiver_id': receiver_id})
            return self.fallback
        except Exception as e:
            logger.warning({'msg': 'greeting_failed', 'sender_id': sender_id, 'receiver_id': receiver_id, 'error': str(e)})
            return self.fallback
        message = (message or '').strip() if isinstance(message, str) else ''
        return message or self.fallback


def default_greeting_service() -> GreetingService:
    generator = HttpMessageGenerator(MESSAGE_GENERATOR_URL) if MESSAGE_GENERATOR_URL else None
    return GreetingService(generator)
