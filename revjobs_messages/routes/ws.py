from fastapi import APIRouter, WebSocket
from ..ws_manager import manager

router = APIRouter()

@router.websocket('/messages/{user_id}')
async def messages_ws(websocket: WebSocket, user_id: str):
    await manager.connect(user_id, websocket)
    try:
        while True:
            # inbound frames, text or binary, are keep-alives only; messages are sent over HTTP
            event = await websocket.receive()
            if event['type'] == 'websocket.disconnect':
                break
    finally:
        await manager.disconnect(user_id, websocket)
