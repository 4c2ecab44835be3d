# app/services/realtime.py
"""
Canal en tiempo real: una suscripción WebSocket por usuario.

La entrega es best-effort. Si el usuario no tiene conexión activa el evento se
descarta (sin cola ni reenvío); al reconectar, el cliente vuelve a pedir el
estado por HTTP.
"""
from typing import Any, Dict, Iterable, Optional
from fastapi import WebSocket
import logging

from ..errors import TransportUnavailable
from ..schemas.message import MessageOut
from ..utils import to_id

logger = logging.getLogger(__name__)

NEW_MESSAGE = "new_message"
MESSAGE_UPDATED = "message_updated"
STATE_CHANGED = "state_changed"


def message_payload(doc: Dict[str, Any]) -> Dict[str, Any]:
    return MessageOut.model_validate(to_id(doc)).model_dump()


class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        await websocket.accept()
        previous = self.active_connections.get(user_id)
        self.active_connections[user_id] = websocket
        if previous is not None and previous is not websocket:
            # Reconexión: la suscripción anterior queda sustituida
            logger.info(f"Replacing previous connection for {user_id}")
            try:
                await previous.close(code=4000, reason="Replaced by a new connection")
            except Exception as e:
                logger.debug(f"Previous socket for {user_id} already closed: {e}")

    def disconnect(self, user_id: str, websocket: Optional[WebSocket] = None):
        current = self.active_connections.get(user_id)
        if current is None:
            return
        # Un socket antiguo no puede expulsar a su sustituto
        if websocket is not None and current is not websocket:
            return
        del self.active_connections[user_id]

    def is_connected(self, user_id: str) -> bool:
        return user_id in self.active_connections

    async def deliver(self, event: dict, user_id: str):
        websocket = self.active_connections.get(user_id)
        if websocket is None:
            raise TransportUnavailable(f"{user_id} no está conectado")
        try:
            await websocket.send_json(event)
        except Exception as e:
            logger.error(f"Error sending to {user_id}: {e}", exc_info=True)
            self.disconnect(user_id, websocket)
            raise TransportUnavailable(f"Fallo al enviar a {user_id}") from e

    async def send_personal_message(self, event: dict, user_id: str) -> bool:
        try:
            await self.deliver(event, user_id)
        except TransportUnavailable as e:
            logger.debug(f"Dropped {event.get('type')} event: {e.detail}")
            return False
        return True

    async def send_to_users(self, event: dict, user_ids: Iterable[str]) -> int:
        """Envía el mismo evento a varios usuarios; devuelve cuántos lo recibieron"""
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            if await self.send_personal_message(event, user_id):
                delivered += 1
        return delivered

    async def notify_participants(self, kind: str, doc: Dict[str, Any]) -> int:
        event = {"type": kind, "message": message_payload(doc)}
        return await self.send_to_users(event, (doc["sender_id"], doc["receiver_id"]))


manager = ConnectionManager()
