# app/services/lifecycle.py
"""
Ciclo de vida de un mensaje efímero.

    Creado (viewed_at=None) -> Visto (viewed_at=t, expires_at=t+duration) -> Expirado (borrado)

Ninguna transición se deshace. "Expirado" no es un estado observable: el
mensaje simplemente deja de existir en el almacén.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from ..config import Settings, get_settings
from ..errors import InvalidMessage, InvalidParticipants, NotFound, Unauthorized
from ..store import MessageStore
from ..utils import now_ms, to_object_id
from .realtime import ConnectionManager, MESSAGE_UPDATED, NEW_MESSAGE

logger = logging.getLogger(__name__)

MESSAGE_TYPES = ("text", "image")


class LifecycleController:
    def __init__(
        self,
        store: MessageStore,
        channel: ConnectionManager,
        settings: Optional[Settings] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.channel = channel
        self.settings = settings or get_settings()
        self.clock = clock

    def _resolve_duration(self, duration: Optional[int]) -> int:
        if duration is None:
            return self.settings.default_duration_ms
        if duration not in self.settings.allowed_durations_ms:
            raise InvalidMessage(
                f"Duración no permitida: {duration}. Válidas: {self.settings.allowed_durations_ms}"
            )
        return duration

    def _validate_content(self, type_: str, content: str):
        if type_ not in MESSAGE_TYPES:
            raise InvalidMessage(f"Tipo inválido: {type_}. Válidos: {MESSAGE_TYPES}")
        if not isinstance(content, str) or not content:
            raise InvalidMessage("El contenido no puede estar vacío")
        if len(content) > self.settings.max_content_chars:
            raise InvalidMessage("El contenido supera el tamaño máximo permitido")

    async def send(
        self,
        sender_id: str,
        receiver_id: str,
        type_: str,
        content: str,
        duration: Optional[int] = None,
    ) -> Dict[str, Any]:
        if sender_id == receiver_id:
            raise InvalidParticipants()
        self._validate_content(type_, content)

        doc = self.store.insert({
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "type": type_,
            "content": content,
            "timestamp": self.clock(),
            "viewed_at": None,
            "expires_at": None,
            "duration": self._resolve_duration(duration),
        })
        logger.info(f"Message {doc['_id']} sent {sender_id} -> {receiver_id}")

        await self.channel.notify_participants(NEW_MESSAGE, doc)
        return doc

    async def mark_viewed(self, message_id: str, requesting_user_id: str) -> Dict[str, Any]:
        now = self.clock()

        def stamp(doc: Dict[str, Any]) -> bool:
            if requesting_user_id not in (doc["sender_id"], doc["receiver_id"]):
                raise Unauthorized()
            if doc["viewed_at"] is not None:
                return False
            # El emisor no puede arrancar la cuenta atrás de su propio mensaje
            if requesting_user_id != doc["receiver_id"]:
                raise Unauthorized("Solo el receptor puede marcar el mensaje como visto")
            doc["viewed_at"] = now
            doc["expires_at"] = now + doc["duration"]
            return True

        doc, changed = self.store.update(to_object_id(message_id, "message_id"), now, stamp)
        if doc is None:
            raise NotFound()

        if changed:
            logger.info(f"Message {message_id} viewed, expires at {doc['expires_at']}")
            await self.channel.notify_participants(MESSAGE_UPDATED, doc)
        return doc

    def get_messages(self, user_a: str, user_b: str) -> List[Dict[str, Any]]:
        return self.store.find_pair(user_a, user_b, self.clock())
