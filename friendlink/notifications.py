import asyncio
import logging
import os
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from . import crud
from .delivery import DeliveryChannel
from .metrics import NOTIFICATIONS_PERSISTED, PUSH_FAILURES
from .models.notifications import Notification, NotificationType, RefModel
from .schemas.notifications import NotificationOut

logger = logging.getLogger(__name__)

PUSH_TIMEOUT_SECONDS = float(os.getenv('PUSH_TIMEOUT_SECONDS', '2'))


class NotificationDispatcher:
    """Persists notifications, then pushes them over a DeliveryChannel.

    The notify_* calls commit the caller's session, so the notification rows
    land in the same transaction as the state change that caused them. Push
    only starts after that commit and its failures are never surfaced.
    """

    def __init__(self, channel: DeliveryChannel, push_timeout: float = PUSH_TIMEOUT_SECONDS):
        self.channel = channel
        self.push_timeout = push_timeout

    async def notify_request_sent(self, session: AsyncSession, receiver_id: int, content: str, related_id: int) -> Notification:
        n = crud.add_notification(
            session,
            user_id=receiver_id,
            type=NotificationType.FRIEND_REQUEST.value,
            content=content,
            related_id=related_id,
            ref_model=RefModel.FRIEND_REQUEST.value,
        )
        await self._persist(session, [n])
        await self._push_all([n])
        return n

    async def notify_accepted(self, session: AsyncSession, sender_id: int, receiver_id: int, chat_id: int,
                              sender_content: str, receiver_content: str) -> List[Notification]:
        # one for the original sender, one for the user who accepted
        notes = [
            crud.add_notification(
                session,
                user_id=user_id,
                type=NotificationType.FRIEND_ACCEPTED.value,
                content=content,
                related_id=chat_id,
                ref_model=RefModel.CHAT.value,
            )
            for user_id, content in ((sender_id, sender_content), (receiver_id, receiver_content))
        ]
        await self._persist(session, notes)
        await self._push_all(notes)
        return notes

    async def _persist(self, session: AsyncSession, notes: List[Notification]):
        await session.commit()
        for n in notes:
            await session.refresh(n)
            NOTIFICATIONS_PERSISTED.labels(type=n.type).inc()

    async def _push_all(self, notes: List[Notification]):
        payloads = [(n.user_id, NotificationOut.model_validate(n).model_dump(mode='json')) for n in notes]
        await asyncio.gather(*(self._push(user_id, payload) for user_id, payload in payloads))

    async def _push(self, user_id: int, payload: dict):
        try:
            await asyncio.wait_for(self.channel.publish(user_id, payload), timeout=self.push_timeout)
        except Exception as e:
            PUSH_FAILURES.inc()
            logger.warning({
                'msg': 'notification_push_failed',
                'user_id': user_id,
                'notification_id': payload.get('id'),
                'error': repr(e),
            })
