from fastapi import APIRouter, WebSocket

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket):
    await websocket.app.state.gateway.handle(websocket)
