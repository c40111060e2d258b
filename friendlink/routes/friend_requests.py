from typing import List
from fastapi import APIRouter, Depends, Response
from ..auth import get_current_user
from ..deps import get_friendship_service
from ..friendships import FriendshipService
from ..schemas.friendships import (
    SendRequestIn,
    FriendRequestOut,
    AcceptOut,
    ChatOut,
    FriendRequestsOut,
    FriendOut,
    ActionOkOut,
)

router = APIRouter()


@router.post('/send', response_model=FriendRequestOut, status_code=201)
async def send_request(
    payload: SendRequestIn,
    response: Response,
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    fr = await service.send_by_handle(current_user['id'], payload.username_or_email, payload.message)
    if fr.revived:
        # a declined request was reopened, nothing new was created
        response.status_code = 200
    return fr


@router.put('/{request_id}/accept', response_model=AcceptOut)
async def accept_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    fr, chat = await service.accept(current_user['id'], request_id)
    return AcceptOut(friend_request=FriendRequestOut.model_validate(fr), chat=ChatOut.model_validate(chat))


@router.put('/{request_id}/decline', response_model=FriendRequestOut)
async def decline_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.decline(current_user['id'], request_id)


@router.delete('/{request_id}', response_model=ActionOkOut)
async def cancel_request(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    await service.cancel(current_user['id'], request_id)
    return {'ok': True, 'message': 'Friend request cancelled successfully'}


@router.get('/', response_model=FriendRequestsOut)
async def my_requests(
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.list_requests(current_user['id'])


@router.get('/friends', response_model=List[FriendOut])
async def my_friends(
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    return await service.list_friends(current_user['id'])


@router.delete('/friends/{friend_id}', response_model=ActionOkOut)
async def remove_friend(
    friend_id: int,
    current_user: dict = Depends(get_current_user),
    service: FriendshipService = Depends(get_friendship_service),
):
    await service.remove(current_user['id'], friend_id)
    return {'ok': True, 'message': 'Friend removed successfully'}
