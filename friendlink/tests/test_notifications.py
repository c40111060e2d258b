import asyncio
import json
import pytest
from sqlalchemy import select
from friendlink.delivery import LocalDeliveryChannel, RedisDeliveryChannel
from friendlink.models.notifications import Notification
from friendlink.notifications import NotificationDispatcher
from friendlink.ws_manager import ConnectionManager
from .conftest import FakeChannel


class FakeSocket:
    def __init__(self, broken=False):
        self.accepted = False
        self.broken = broken
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError('socket closed')
        self.sent.append(message)


class FakeRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, data):
        self.published.append((channel, data))
        return 1


class HangingChannel:
    async def publish(self, user_id, payload):
        await asyncio.sleep(10)


async def stored(session_factory, user_id):
    async with session_factory() as session:
        res = await session.execute(select(Notification).where(Notification.user_id == user_id))
        return res.scalars().all()


@pytest.mark.asyncio
async def test_notify_request_sent_persists_then_pushes(session_factory, users):
    channel = FakeChannel()
    dispatcher = NotificationDispatcher(channel)
    async with session_factory() as session:
        n = await dispatcher.notify_request_sent(session, users.bob.id, 'alice sent you a friend request: "hi"', 7)

    assert n.id is not None
    assert n.read is False
    rows = await stored(session_factory, users.bob.id)
    assert [(r.type, r.ref_model, r.related_id) for r in rows] == [('FRIEND_REQUEST', 'FriendRequest', 7)]

    user_id, payload = channel.published[0]
    assert user_id == users.bob.id
    assert payload['id'] == n.id
    assert payload['type'] == 'FRIEND_REQUEST'
    assert payload['content'] == 'alice sent you a friend request: "hi"'


@pytest.mark.asyncio
async def test_notify_accepted_produces_two_chat_notifications(session_factory, users):
    channel = FakeChannel()
    dispatcher = NotificationDispatcher(channel)
    async with session_factory() as session:
        notes = await dispatcher.notify_accepted(
            session, users.alice.id, users.bob.id, 3,
            sender_content='bob accepted your friend request',
            receiver_content='You are now friends with alice',
        )

    assert [n.user_id for n in notes] == [users.alice.id, users.bob.id]
    assert all(n.type == 'FRIEND_ACCEPTED' and n.ref_model == 'Chat' and n.related_id == 3 for n in notes)
    assert sorted(uid for uid, _ in channel.published) == sorted([users.alice.id, users.bob.id])


@pytest.mark.asyncio
async def test_push_failure_is_swallowed_and_record_kept(session_factory, users):
    channel = FakeChannel(fail_for={users.alice.id})
    dispatcher = NotificationDispatcher(channel)
    async with session_factory() as session:
        await dispatcher.notify_accepted(session, users.alice.id, users.bob.id, 1, 'a', 'b')

    assert len(await stored(session_factory, users.alice.id)) == 1
    assert [uid for uid, _ in channel.published] == [users.bob.id]


@pytest.mark.asyncio
async def test_hanging_push_times_out(session_factory, users):
    dispatcher = NotificationDispatcher(HangingChannel(), push_timeout=0.05)
    async with session_factory() as session:
        n = await asyncio.wait_for(
            dispatcher.notify_request_sent(session, users.bob.id, 'hello', 1),
            timeout=2,
        )
    assert n.id is not None
    assert len(await stored(session_factory, users.bob.id)) == 1


@pytest.mark.asyncio
async def test_local_channel_delivers_to_open_sockets():
    manager = ConnectionManager()
    good, broken = FakeSocket(), FakeSocket(broken=True)
    await manager.connect(1, good)
    await manager.connect(1, broken)
    assert good.accepted and broken.accepted

    await LocalDeliveryChannel(manager).publish(1, {'id': 5})
    await LocalDeliveryChannel(manager).publish(2, {'id': 6})

    assert good.sent == [{'id': 5}]
    # failing sockets are dropped, the healthy one stays
    assert manager.connections[1] == {good}
    assert not manager.is_connected(2)


@pytest.mark.asyncio
async def test_disconnect_forgets_user():
    manager = ConnectionManager()
    ws = FakeSocket()
    await manager.connect(4, ws)
    await manager.disconnect(4, ws)
    assert not manager.is_connected(4)
    assert await manager.send_personal(4, {'id': 1}) == 0


@pytest.mark.asyncio
async def test_redis_channel_publishes_json_envelope():
    redis = FakeRedis()
    await RedisDeliveryChannel(redis, 'notifications').publish(9, {'id': 1, 'type': 'FRIEND_ACCEPTED'})

    channel, data = redis.published[0]
    assert channel == 'notifications'
    assert json.loads(data) == {'user_id': 9, 'payload': {'id': 1, 'type': 'FRIEND_ACCEPTED'}}
