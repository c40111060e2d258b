"""
Friend request lifecycle.

    NONE     --send-->     PENDING   (either user; never to self)
    DECLINED --send-->     PENDING   (same record, direction and message rewritten)
    PENDING  --accept-->   ACCEPTED  (receiver only; provisions the chat, notifies both)
    PENDING  --decline-->  DECLINED  (receiver only; no notification)
    PENDING  --cancel-->   NONE      (sender only)
    ACCEPTED --remove-->   NONE      (either user; chat is kept)

Every write is a conditional statement checked against its rowcount, so two
callers racing on the same pair or request can't both win.
"""
import logging
from sqlalchemy.exc import IntegrityError
from . import crud
from .chats import ChatProvisioner
from .errors import ValidationError, NotFoundError, AuthorizationError, ConflictError
from .greetings import GreetingService
from .metrics import FRIEND_REQUEST_ACTIONS
from .notifications import NotificationDispatcher
from .schemas.friendships import FriendRequestsOut, PendingRequestOut, UserSummaryOut, FriendOut

logger = logging.getLogger(__name__)

PENDING = crud.PENDING
ACCEPTED = crud.ACCEPTED
DECLINED = crud.DECLINED


def other_participant(sender_id: int, receiver_id: int, actor_id: int) -> int:
    """The user on the other side of a request, whichever field the actor is stored in"""
    if actor_id == sender_id:
        return receiver_id
    if actor_id == receiver_id:
        return sender_id
    raise ValueError(f'user {actor_id} is not part of the pair ({sender_id}, {receiver_id})')


def _display_name(user, default='A user'):
    return user.username if user is not None else default


class FriendshipService:

    def __init__(self, session_factory, dispatcher: NotificationDispatcher, greetings: GreetingService = None,
                 chats: ChatProvisioner = None):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.greetings = greetings or GreetingService()
        self.chats = chats or ChatProvisioner()

    async def send_by_handle(self, actor_id: int, username_or_email: str, message: str = None):
        handle = (username_or_email or '').strip()
        if not handle:
            raise ValidationError('username_or_email is required')
        async with self.session_factory() as session:
            target = await crud.find_user_by_handle(session, handle)
        if target is None:
            raise NotFoundError('User not found')
        return await self.send(actor_id, target.id, message)

    async def send(self, actor_id: int, target_id: int, message: str = None):
        if target_id == actor_id:
            raise ValidationError('You cannot send a friend request to yourself')

        async with self.session_factory() as session:
            target = await crud.get_user(session, target_id)
            if target is None:
                raise NotFoundError('User not found')

            existing = await crud.find_request_for_pair(session, actor_id, target_id)
            if existing is not None and existing.status == PENDING:
                raise ConflictError('A friend request already exists between these users')
            if existing is not None and existing.status == ACCEPTED:
                raise ConflictError('You are already friends with this user')
            sender_name = _display_name(await crud.get_user(session, actor_id))

        # no session is held while the generator runs; the writes below recheck the pair
        text = (message or '').strip() or await self.greetings.greeting_for(actor_id, target_id)

        async with self.session_factory() as session:
            if existing is None:
                try:
                    fr = await crud.insert_request(session, actor_id, target_id, text)
                except IntegrityError:
                    # the other user's request for this pair committed first
                    await session.rollback()
                    raise ConflictError('A friend request already exists between these users')
                action = 'send'
            else:
                if not await crud.revive_declined_request(session, existing.id, actor_id, target_id, text):
                    await session.rollback()
                    raise ConflictError('A friend request already exists between these users')
                fr = await crud.get_request(session, existing.id)
                fr.revived = True
                action = 'resend'

            await self.dispatcher.notify_request_sent(
                session,
                receiver_id=target_id,
                content=f'{sender_name} sent you a friend request: "{text}"',
                related_id=fr.id,
            )
            await session.refresh(fr)

        FRIEND_REQUEST_ACTIONS.labels(action=action).inc()
        logger.info({'msg': 'friend_request_sent', 'request_id': fr.id, 'sender_id': actor_id,
                     'receiver_id': target_id, 'revived': action == 'resend'})
        return fr

    async def accept(self, actor_id: int, request_id: int):
        async with self.session_factory() as session:
            fr = await self._pending_for_receiver(session, request_id, actor_id, 'accept')
            if not await crud.transition_request(session, request_id, actor_id, ACCEPTED):
                await session.rollback()
                raise ConflictError('Friend request is no longer pending')

            chat = await self.chats.ensure(session, fr.sender_id, fr.receiver_id)
            users = await crud.get_users(session, [fr.sender_id, fr.receiver_id])
            await self.dispatcher.notify_accepted(
                session,
                sender_id=fr.sender_id,
                receiver_id=fr.receiver_id,
                chat_id=chat.id,
                sender_content=f'{_display_name(users.get(fr.receiver_id))} accepted your friend request',
                receiver_content=f'You are now friends with {_display_name(users.get(fr.sender_id))}',
            )
            await session.refresh(fr)

        FRIEND_REQUEST_ACTIONS.labels(action='accept').inc()
        logger.info({'msg': 'friend_request_accepted', 'request_id': request_id, 'chat_id': chat.id})
        return fr, chat

    async def decline(self, actor_id: int, request_id: int):
        async with self.session_factory() as session:
            fr = await self._pending_for_receiver(session, request_id, actor_id, 'decline')
            if not await crud.transition_request(session, request_id, actor_id, DECLINED):
                await session.rollback()
                raise ConflictError('Friend request is no longer pending')
            await session.commit()
            await session.refresh(fr)

        FRIEND_REQUEST_ACTIONS.labels(action='decline').inc()
        logger.info({'msg': 'friend_request_declined', 'request_id': request_id})
        return fr

    async def cancel(self, actor_id: int, request_id: int):
        async with self.session_factory() as session:
            fr = await crud.get_request(session, request_id)
            if fr is None:
                raise NotFoundError('Friend request not found')
            if fr.sender_id != actor_id:
                raise AuthorizationError('Not authorized to cancel this request')
            if fr.status != PENDING:
                raise ConflictError(f'Friend request is already {fr.status.lower()}')
            if not await crud.delete_pending_request(session, request_id, actor_id):
                await session.rollback()
                raise ConflictError('Friend request is no longer pending')
            await session.commit()

        FRIEND_REQUEST_ACTIONS.labels(action='cancel').inc()
        logger.info({'msg': 'friend_request_cancelled', 'request_id': request_id})

    async def remove(self, actor_id: int, friend_id: int):
        async with self.session_factory() as session:
            request_id = await crud.delete_accepted_request(session, actor_id, friend_id)
            if request_id is None:
                raise NotFoundError('You are not friends with this user')
            await session.commit()

        FRIEND_REQUEST_ACTIONS.labels(action='remove').inc()
        logger.info({'msg': 'friend_removed', 'request_id': request_id, 'user_id': actor_id, 'friend_id': friend_id})

    async def list_requests(self, actor_id: int) -> FriendRequestsOut:
        async with self.session_factory() as session:
            incoming = await crud.list_pending(session, actor_id, incoming=True)
            outgoing = await crud.list_pending(session, actor_id, incoming=False)
            users = await crud.get_users(
                session, [other_participant(fr.sender_id, fr.receiver_id, actor_id) for fr in [*incoming, *outgoing]]
            )

        def view(fr):
            out = PendingRequestOut.model_validate(fr)
            counterpart = users.get(other_participant(fr.sender_id, fr.receiver_id, actor_id))
            if counterpart is not None:
                out.counterpart = UserSummaryOut.model_validate(counterpart)
            return out

        return FriendRequestsOut(incoming=[view(fr) for fr in incoming], outgoing=[view(fr) for fr in outgoing])

    async def list_friends(self, actor_id: int):
        async with self.session_factory() as session:
            accepted = await crud.list_accepted(session, actor_id)
            friend_ids = [other_participant(fr.sender_id, fr.receiver_id, actor_id) for fr in accepted]
            users = await crud.get_users(session, friend_ids)
            chats = await crud.direct_chats_for(session, actor_id)

        friends = []
        for fr, friend_id in zip(accepted, friend_ids):
            friend = users.get(friend_id)
            chat = chats.get(friend_id)
            friends.append(FriendOut(
                friend_id=friend_id,
                username=friend.username if friend else None,
                name=friend.name if friend else None,
                image=friend.image if friend else None,
                status=friend.status if friend else None,
                friend_request_id=fr.id,
                chat_id=chat.id if chat else None,
            ))
        return friends

    async def _pending_for_receiver(self, session, request_id: int, actor_id: int, action: str):
        fr = await crud.get_request(session, request_id)
        if fr is None:
            raise NotFoundError('Friend request not found')
        if fr.receiver_id != actor_id:
            raise AuthorizationError(f'Not authorized to {action} this request')
        if fr.status != PENDING:
            raise ConflictError(f'Friend request is already {fr.status.lower()}')
        return fr
