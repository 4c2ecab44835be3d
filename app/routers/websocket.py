# app/routers/websocket.py
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
import logging

from ..db import get_lifecycle, get_users
from ..errors import NotFound, WhisperError
from ..schemas.message import MessageCreate
from ..security import decode_user_id
from ..services.realtime import manager

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_user_from_token(websocket: WebSocket, token: str) -> str | None:
    """Extrae el user_id del token JWT y comprueba que el usuario existe"""
    user_id = decode_user_id(token)
    if not user_id or not get_users().find_user_by_id(user_id):
        await websocket.close(code=1008, reason="Invalid token")
        return None
    return user_id


async def handle_client_event(websocket: WebSocket, user_id: str, data: dict):
    lifecycle = get_lifecycle()
    event_type = data.get("type")

    if event_type == "send_message":
        try:
            payload = MessageCreate(
                receiver_id=data.get("receiver_id") or "",
                type=data.get("message_type", "text"),
                content=data.get("content") or "",
                duration=data.get("duration"),
            )
        except ValidationError:
            await websocket.send_json({"type": "error", "message": "Campos inválidos o incompletos"})
            return
        if not get_users().find_user_by_id(payload.receiver_id):
            raise NotFound("Receptor no encontrado")
        # new_message llega a ambos participantes a través del canal
        await lifecycle.send(
            user_id, payload.receiver_id, payload.type, payload.content, payload.duration
        )

    elif event_type == "mark_viewed":
        message_id = data.get("message_id")
        if not message_id:
            await websocket.send_json({"type": "error", "message": "Falta message_id"})
            return
        await lifecycle.mark_viewed(message_id, user_id)

    else:
        await websocket.send_json({"type": "error", "message": f"Evento desconocido: {event_type}"})


@router.websocket("/ws/{token}")
async def websocket_endpoint(websocket: WebSocket, token: str):
    """
    Endpoint WebSocket para mensajería en tiempo real.
    El token se pasa como parámetro en la URL; conectarse equivale a "join".
    """
    user_id = await get_user_from_token(websocket, token)
    if not user_id:
        return

    await manager.connect(websocket, user_id)
    logger.info(f"User {user_id} connected")

    try:
        await websocket.send_json({
            "type": "connected",
            "user_id": user_id,
        })

        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await websocket.send_json({"type": "error", "message": "Formato inválido"})
                continue
            try:
                await handle_client_event(websocket, user_id, data)
            except WhisperError as e:
                # Errores de dominio (p.ej. mensaje ya expirado): se informan y la conexión sigue
                await websocket.send_json({
                    "type": "error",
                    "code": type(e).__name__,
                    "message": e.detail,
                })

    except WebSocketDisconnect:
        manager.disconnect(user_id, websocket)
    except Exception as e:
        logger.error(f"Error en WebSocket: {e}", exc_info=True)
        manager.disconnect(user_id, websocket)
