import asyncio
import pytest
from sqlalchemy import select, func
from friendlink.chats import ChatProvisioner
from friendlink.errors import ConflictError
from friendlink.models.chats import Chat
from friendlink.models.friend_requests import FriendRequest
from friendlink.models.notifications import Notification


async def count(session_factory, model, *where):
    async with session_factory() as session:
        q = select(func.count()).select_from(model)
        if where:
            q = q.where(*where)
        return (await session.execute(q)).scalar_one()


@pytest.mark.asyncio
async def test_mutual_simultaneous_send_creates_one_request(service, users, session_factory, generator):
    # the generator yields so both sends reach the insert with no record visible
    generator.delay = 0.05
    results = await asyncio.gather(
        service.send(users.alice.id, users.bob.id),
        service.send(users.bob.id, users.alice.id),
        return_exceptions=True,
    )

    conflicts = [r for r in results if isinstance(r, ConflictError)]
    created = [r for r in results if isinstance(r, FriendRequest)]
    assert len(conflicts) == 1
    assert len(created) == 1
    assert await count(session_factory, FriendRequest) == 1
    assert await count(session_factory, Notification) == 1


@pytest.mark.asyncio
async def test_concurrent_accept_creates_one_chat_and_one_notification_pair(service, users, session_factory):
    fr = await service.send(users.alice.id, users.bob.id, 'hi')

    results = await asyncio.gather(
        service.accept(users.bob.id, fr.id),
        service.accept(users.bob.id, fr.id),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, tuple)]
    assert len(winners) == 1
    assert all(isinstance(r, ConflictError) for r in results if not isinstance(r, tuple))
    assert await count(session_factory, Chat) == 1
    assert await count(session_factory, Notification, Notification.type == 'FRIEND_ACCEPTED') == 2


@pytest.mark.asyncio
async def test_concurrent_chat_ensure_returns_same_chat(session_factory, users):
    provisioner = ChatProvisioner()

    async def ensure(a, b):
        async with session_factory() as session:
            chat = await provisioner.ensure(session, a, b)
            await session.commit()
            return chat.id

    ids = await asyncio.gather(*[
        ensure(users.alice.id, users.bob.id) if i % 2 else ensure(users.bob.id, users.alice.id)
        for i in range(4)
    ])

    assert len(set(ids)) == 1
    assert await count(session_factory, Chat) == 1


@pytest.mark.asyncio
async def test_ensure_is_idempotent(session_factory, users):
    provisioner = ChatProvisioner()
    async with session_factory() as session:
        first = await provisioner.ensure(session, users.alice.id, users.carol.id)
        second = await provisioner.ensure(session, users.carol.id, users.alice.id)
        await session.commit()

    assert first.id == second.id
    assert first.participant_ids == sorted([users.alice.id, users.carol.id])
    assert await count(session_factory, Chat) == 1
