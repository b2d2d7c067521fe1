from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from lus_emi.database import SessionLocal
from lus_emi.deps import user_from_token
from lus_emi.realtime import manager

router = APIRouter(tags=["Realtime"])


# =========================================================
# WEBSOCKET ENDPOINT
# =========================================================
@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    db = SessionLocal()
    try:
        user = user_from_token(db, token)
        if not user or not user.is_active:
            await websocket.close(code=1008)
            return
        user_id = user.id
        role = user.role.value
    finally:
        db.close()

    await manager.connect(websocket, user_id)
    try:
        await websocket.send_json({"type": "connected", "data": {"user_id": str(user_id), "role": role}})

        # clients only listen; anything they send is a keepalive
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
