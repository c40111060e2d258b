from sqlalchemy import select, update, delete, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from .models import ordered_pair
from .models.users import User
from .models.friend_requests import FriendRequest, FriendRequestStatus
from .models.chats import Chat
from .models.notifications import Notification, RefModel

PENDING = FriendRequestStatus.PENDING.value
ACCEPTED = FriendRequestStatus.ACCEPTED.value
DECLINED = FriendRequestStatus.DECLINED.value

# user directory (users are owned by the identity service, read-only here)
async def get_user(session: AsyncSession, user_id: int):
    q = await session.execute(select(User).where(User.id == user_id))
    return q.scalars().first()

async def find_user_by_handle(session: AsyncSession, username_or_email: str):
    q = await session.execute(
        select(User).where(or_(User.username == username_or_email, User.email == username_or_email))
    )
    return q.scalars().first()

async def get_users(session: AsyncSession, user_ids):
    if not user_ids:
        return {}
    q = await session.execute(select(User).where(User.id.in_(set(user_ids))))
    return {u.id: u for u in q.scalars().all()}

# friend requests
async def get_request(session: AsyncSession, request_id: int):
    q = await session.execute(select(FriendRequest).where(FriendRequest.id == request_id))
    return q.scalars().first()

async def find_request_for_pair(session: AsyncSession, user_a: int, user_b: int):
    low, high = ordered_pair(user_a, user_b)
    q = await session.execute(
        select(FriendRequest).where(FriendRequest.user_low == low, FriendRequest.user_high == high)
    )
    return q.scalars().first()

async def insert_request(session: AsyncSession, sender_id: int, receiver_id: int, message: str):
    # flushes so the pair constraint fires here, inside the caller's transaction
    low, high = ordered_pair(sender_id, receiver_id)
    fr = FriendRequest(
        sender_id=sender_id,
        receiver_id=receiver_id,
        user_low=low,
        user_high=high,
        status=PENDING,
        message=message,
    )
    session.add(fr)
    await session.flush()
    return fr

async def revive_declined_request(session: AsyncSession, request_id: int, sender_id: int, receiver_id: int, message: str) -> bool:
    res = await session.execute(
        update(FriendRequest)
        .where(FriendRequest.id == request_id, FriendRequest.status == DECLINED)
        .values(sender_id=sender_id, receiver_id=receiver_id, status=PENDING, message=message, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1

async def transition_request(session: AsyncSession, request_id: int, receiver_id: int, to_status: str) -> bool:
    """Move a PENDING request addressed to receiver_id into to_status.

    Returns False when no row matched, i.e. the request is gone, belongs to
    someone else or already left PENDING.
    """
    res = await session.execute(
        update(FriendRequest)
        .where(
            FriendRequest.id == request_id,
            FriendRequest.receiver_id == receiver_id,
            FriendRequest.status == PENDING,
        )
        .values(status=to_status, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1

async def delete_pending_request(session: AsyncSession, request_id: int, sender_id: int) -> bool:
    res = await session.execute(
        delete(FriendRequest)
        .where(
            FriendRequest.id == request_id,
            FriendRequest.sender_id == sender_id,
            FriendRequest.status == PENDING,
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return False
    await delete_notifications_for(session, RefModel.FRIEND_REQUEST.value, request_id)
    return True

async def delete_accepted_request(session: AsyncSession, user_a: int, user_b: int):
    """Delete the ACCEPTED request between two users, returning its id or None"""
    low, high = ordered_pair(user_a, user_b)
    q = await session.execute(
        select(FriendRequest.id).where(
            FriendRequest.user_low == low,
            FriendRequest.user_high == high,
            FriendRequest.status == ACCEPTED,
        )
    )
    request_id = q.scalars().first()
    if request_id is None:
        return None
    res = await session.execute(
        delete(FriendRequest)
        .where(FriendRequest.id == request_id, FriendRequest.status == ACCEPTED)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return None
    await delete_notifications_for(session, RefModel.FRIEND_REQUEST.value, request_id)
    return request_id

async def list_pending(session: AsyncSession, user_id: int, incoming: bool = True):
    column = FriendRequest.receiver_id if incoming else FriendRequest.sender_id
    q = await session.execute(
        select(FriendRequest)
        .where(column == user_id, FriendRequest.status == PENDING)
        .order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
    )
    return q.scalars().all()

async def list_accepted(session: AsyncSession, user_id: int):
    q = await session.execute(
        select(FriendRequest)
        .where(
            or_(FriendRequest.sender_id == user_id, FriendRequest.receiver_id == user_id),
            FriendRequest.status == ACCEPTED,
        )
        .order_by(FriendRequest.updated_at.desc(), FriendRequest.id.desc())
    )
    return q.scalars().all()

# notifications
def add_notification(session: AsyncSession, user_id: int, type: str, content: str, related_id: int, ref_model: str):
    n = Notification(
        user_id=user_id,
        type=type,
        content=content,
        read=False,
        related_id=related_id,
        ref_model=ref_model,
    )
    session.add(n)
    return n

async def delete_notifications_for(session: AsyncSession, ref_model: str, related_id: int):
    await session.execute(
        delete(Notification)
        .where(Notification.ref_model == ref_model, Notification.related_id == related_id)
        .execution_options(synchronize_session=False)
    )

async def list_notifications(session: AsyncSession, user_id: int, unread_only: bool = False, limit: int = 50):
    q = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        q = q.where(Notification.read.is_(False))
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    res = await session.execute(q)
    return res.scalars().all()

async def mark_notification_read(session: AsyncSession, user_id: int, notification_id: int):
    q = await session.execute(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    )
    n = q.scalars().first()
    if not n:
        return None
    n.read = True
    await session.commit()
    await session.refresh(n)
    return n

async def mark_all_notifications_read(session: AsyncSession, user_id: int) -> int:
    res = await session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return res.rowcount

# chats
async def direct_chats_for(session: AsyncSession, user_id: int):
    """Direct chats of user_id keyed by the other participant's id"""
    q = await session.execute(
        select(Chat).where(
            or_(Chat.user_low == user_id, Chat.user_high == user_id),
            Chat.is_group.is_(False),
        )
    )
    return {
        (c.user_high if c.user_low == user_id else c.user_low): c
        for c in q.scalars().all()
    }
