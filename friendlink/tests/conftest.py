import asyncio
import os
from types import SimpleNamespace
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Configure test environment before the app reads it
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite:///./friendlink_test.db')
os.environ.setdefault('JWT_SECRET', 'test-secret')

from friendlink.auth import SECRET, ALGORITHM  # noqa: E402
from friendlink.friendships import FriendshipService  # noqa: E402
from friendlink.greetings import GreetingService  # noqa: E402
from friendlink.models import Base  # noqa: E402
from friendlink.models.users import User  # noqa: E402
from friendlink.notifications import NotificationDispatcher  # noqa: E402


class FakeChannel:
    """DeliveryChannel that records pushes; users in fail_for raise"""

    def __init__(self, fail_for=(), delay: float = 0):
        self.published = []
        self.fail_for = set(fail_for)
        self.delay = delay

    async def publish(self, user_id, payload):
        if self.delay:
            await asyncio.sleep(self.delay)
        if user_id in self.fail_for:
            raise ConnectionError('push transport down')
        self.published.append((user_id, payload))


class FakeGenerator:
    def __init__(self, message='Saw we both like jazz, want to connect?', error=None, delay: float = 0):
        self.message = message
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate(self, sender_id, receiver_id):
        self.calls.append((sender_id, receiver_id))
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.message


def make_token(user_id: int) -> str:
    return jwt.encode({'id': user_id}, SECRET, algorithm=ALGORITHM)


def auth_header(user_id: int) -> dict:
    return {'Authorization': f'Bearer {make_token(user_id)}'}


@pytest_asyncio.fixture
async def engine(tmp_path):
    # file database: every session gets its own connection, like a real server
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'friendlink.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def users(session_factory):
    async with session_factory() as session:
        alice = User(username='alice', email='alice@example.com', name='Alice')
        bob = User(username='bob', email='bob@example.com', name='Bob')
        carol = User(username='carol', email='carol@example.com', name='Carol')
        session.add_all([alice, bob, carol])
        await session.commit()
        for u in (alice, bob, carol):
            await session.refresh(u)
    return SimpleNamespace(alice=alice, bob=bob, carol=carol)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def service(session_factory, channel, generator):
    return FriendshipService(
        session_factory,
        NotificationDispatcher(channel, push_timeout=0.5),
        GreetingService(generator, timeout=0.5),
    )


@pytest_asyncio.fixture
async def client(session_factory, channel, generator):
    from friendlink.deps import get_session_factory
    from friendlink.main import app

    original_greetings = app.state.greetings
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.delivery_channel = channel
    app.state.greetings = GreetingService(generator, timeout=0.5)

    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.delivery_channel = None
    app.state.greetings = original_greetings
