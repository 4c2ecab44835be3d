from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import List
import logging

from ..db import get_lifecycle, get_store, get_users
from ..security import get_current_user
from ..schemas.message import ChatPreview, MessageCreate, MessageOut
from ..services.chats import recent_chats
from ..services.lifecycle import LifecycleController
from ..store import MessageStore
from ..users import UserDirectory
from ..utils import to_id
from ..middleware.rate_limit import apply_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: Request,
    payload: MessageCreate,
    lifecycle: LifecycleController = Depends(get_lifecycle),
    users: UserDirectory = Depends(get_users),
    current=Depends(get_current_user),
):
    """Enviar mensaje (también se puede hacer vía WebSocket)"""
    apply_rate_limit(request, "60/minute")

    if not users.find_user_by_id(payload.receiver_id):
        raise HTTPException(404, "Receptor no encontrado")
    doc = await lifecycle.send(
        current["id"], payload.receiver_id, payload.type, payload.content, payload.duration
    )
    return to_id(doc)


@router.get("/messages/{user_a}/{user_b}", response_model=List[MessageOut])
async def get_messages(
    user_a: str,
    user_b: str,
    lifecycle: LifecycleController = Depends(get_lifecycle),
    current=Depends(get_current_user),
):
    """Historial de una conversación, ordenado del más antiguo al más reciente"""
    if current["id"] not in (user_a, user_b):
        raise HTTPException(403, "Sin acceso a esta conversación")
    return [to_id(doc) for doc in lifecycle.get_messages(user_a, user_b)]


@router.patch("/messages/{message_id}/viewed", response_model=MessageOut)
async def mark_viewed(
    message_id: str,
    lifecycle: LifecycleController = Depends(get_lifecycle),
    current=Depends(get_current_user),
):
    """Marcar un mensaje como visto: arranca la cuenta atrás de expiración"""
    doc = await lifecycle.mark_viewed(message_id, current["id"])
    return to_id(doc)


@router.get("/chats", response_model=List[ChatPreview])
async def list_chats(
    store: MessageStore = Depends(get_store),
    users: UserDirectory = Depends(get_users),
    lifecycle: LifecycleController = Depends(get_lifecycle),
    current=Depends(get_current_user),
):
    """Listar las conversaciones del usuario, la más reciente primero"""
    return list(recent_chats(current["id"], store, users, lifecycle.clock))
