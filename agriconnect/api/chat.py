from fastapi import APIRouter, WebSocket

router = APIRouter()


@router.websocket('/private-chat')
async def private_chat(websocket: WebSocket):
    await websocket.app.state.private_chat.serve(websocket)


@router.websocket('/community-chat')
async def community_chat(websocket: WebSocket):
    await websocket.app.state.community_chat.serve(websocket)
