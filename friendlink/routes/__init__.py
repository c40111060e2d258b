from fastapi import APIRouter
from .friend_requests import router as friend_requests_router
from .notifications import router as notifications_router
from .ws import router as ws_router

router = APIRouter()
router.include_router(friend_requests_router, prefix='/friend-requests', tags=['friend-requests'])
router.include_router(notifications_router, prefix='/notifications', tags=['notifications'])
router.include_router(ws_router, prefix='/ws', tags=['ws'])
