from fastapi import APIRouter, WebSocket, Query
from ..auth import decode_token

router = APIRouter()

@router.websocket('/notifications')
async def notifications_ws(websocket: WebSocket, token: str = Query(None)):
    user = decode_token(token) if token else None
    if not user:
        await websocket.close(code=1008)
        return
    user_id = user['id']
    manager = websocket.app.state.connections
    try:
        await manager.connect(user_id, websocket)
        while True:
            # clients only listen; anything they send is a keepalive
            message = await websocket.receive()
            if message['type'] == 'websocket.disconnect':
                break
    finally:
        await manager.disconnect(user_id, websocket)
