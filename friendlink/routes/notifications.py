from typing import List
from fastapi import APIRouter, Depends
from ..auth import get_current_user
from ..crud import list_notifications, mark_notification_read, mark_all_notifications_read
from ..deps import get_db
from ..errors import NotFoundError
from ..schemas.notifications import NotificationOut, MarkedReadOut

router = APIRouter()

@router.get('/my', response_model=List[NotificationOut])
async def my_notifications(unread_only: bool = False, limit: int = 50, current_user: dict = Depends(get_current_user), session=Depends(get_db)):
    return await list_notifications(session, current_user['id'], unread_only=unread_only, limit=min(max(limit, 1), 200))

@router.post('/read-all', response_model=MarkedReadOut)
async def read_all(current_user: dict = Depends(get_current_user), session=Depends(get_db)):
    return {'updated': await mark_all_notifications_read(session, current_user['id'])}

@router.post('/{notification_id}/read', response_model=NotificationOut)
async def read_one(notification_id: int, current_user: dict = Depends(get_current_user), session=Depends(get_db)):
    n = await mark_notification_read(session, current_user['id'], notification_id)
    if not n:
        raise NotFoundError('Notification not found')
    return n
