# app/services/chats.py
from typing import Any, Callable, Dict, Iterator, List
import logging

from ..store import MessageStore
from ..users import UserDirectory
from ..utils import now_ms, to_id

logger = logging.getLogger(__name__)


def recent_chats(
    user_id: str,
    store: MessageStore,
    users: UserDirectory,
    clock: Callable[[], int] = now_ms,
) -> Iterator[Dict[str, Any]]:
    """
    Conversaciones del usuario con último mensaje y contador de no leídos.

    Se recalcula entero en cada llamada a partir de los mensajes vivos. Los
    contactos cuyos mensajes han expirado todos se mantienen con
    last_message=None y van al final.
    """
    messages = store.find_for_user(user_id, clock())

    # Agrupar por el otro participante
    by_other: Dict[str, List[Dict[str, Any]]] = {other: [] for other in store.contacts_of(user_id)}
    for msg in messages:
        other = msg["receiver_id"] if msg["sender_id"] == user_id else msg["sender_id"]
        by_other.setdefault(other, []).append(msg)

    chats = []
    for other_id, history in by_other.items():
        other_user = users.find_user_by_id(other_id)
        if not other_user:
            logger.debug(f"Skipping chat with unknown user {other_id}")
            continue
        last = max(history, key=lambda m: m["timestamp"]) if history else None
        unread = sum(1 for m in history if m["receiver_id"] == user_id and m["viewed_at"] is None)
        chats.append({
            "other_user": to_id(other_user),
            "last_message": to_id(last) if last else None,
            "unread_count": unread,
        })

    chats.sort(key=lambda c: c["other_user"]["id"])
    chats.sort(
        key=lambda c: c["last_message"]["timestamp"] if c["last_message"] else 0,
        reverse=True,
    )
    return iter(chats)
