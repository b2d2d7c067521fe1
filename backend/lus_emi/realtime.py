from typing import Any, Dict
from uuid import UUID

from fastapi import WebSocket

from lus_emi.core.logging import get_logger
from lus_emi.database import utc_now

logger = get_logger(__name__)


# =========================================================
# CONNECTION MANAGER
# =========================================================
class ConnectionManager:
    """Authenticated dashboard sockets; every event goes to every client."""

    def __init__(self):
        self.connections: Dict[WebSocket, UUID] = {}  # ws -> user id

    async def connect(self, websocket: WebSocket, user_id: UUID):
        await websocket.accept()
        self.connections[websocket] = user_id
        logger.info("ws_connected", user_id=str(user_id), clients=len(self.connections))

    def disconnect(self, websocket: WebSocket):
        user_id = self.connections.pop(websocket, None)
        if user_id:
            logger.info("ws_disconnected", user_id=str(user_id), clients=len(self.connections))

    async def broadcast(self, type: str, data: Any):
        message = {"type": type, "data": data, "timestamp": utc_now().isoformat() + "Z"}
        for ws in list(self.connections):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.warning("ws_send_failed", message_type=type, error=str(e))
                self.disconnect(ws)


manager = ConnectionManager()
