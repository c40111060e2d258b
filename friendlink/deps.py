from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from .delivery import LocalDeliveryChannel
from .friendships import FriendshipService
from .greetings import GreetingService
from .models import AsyncSessionLocal
from .notifications import NotificationDispatcher

def get_session_factory():
    return AsyncSessionLocal

async def get_db(session_factory=Depends(get_session_factory)) -> AsyncSession:
    async with session_factory() as session:
        yield session

def get_delivery_channel(request: Request):
    channel = getattr(request.app.state, 'delivery_channel', None)
    if channel is None:
        channel = LocalDeliveryChannel(request.app.state.connections)
    return channel

def get_greetings(request: Request) -> GreetingService:
    return getattr(request.app.state, 'greetings', None) or GreetingService()

def get_friendship_service(
    session_factory=Depends(get_session_factory),
    channel=Depends(get_delivery_channel),
    greetings: GreetingService = Depends(get_greetings),
) -> FriendshipService:
    return FriendshipService(session_factory, NotificationDispatcher(channel), greetings)
