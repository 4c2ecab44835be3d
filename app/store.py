# app/store.py
"""
Almacén de mensajes en memoria.

Todo el estado vive en el proceso: reiniciar el servidor borra el historial.
Cada mutación (insertar, actualizar, borrar, purgar) se aplica bajo el mismo
lock, de modo que dos "mark_viewed" simultáneos sobre el mismo mensaje se
serializan y el segundo ve la escritura del primero.

Los documentos se guardan como dicts con "_id" ObjectId, igual que llegarían
de Mongo; hacia fuera siempre se entregan copias.
"""
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple
import threading
from bson import ObjectId

Doc = Dict[str, Any]


def is_expired(doc: Doc, now: int) -> bool:
    """Único predicado de expiración: lo comparten lecturas, actualizaciones y el barrido"""
    expires_at = doc.get("expires_at")
    return expires_at is not None and now >= expires_at


def pair_key(user_a: str, user_b: str) -> FrozenSet[str]:
    return frozenset((user_a, user_b))


class MessageStore:
    def __init__(self):
        self._lock = threading.RLock()
        self._messages: Dict[ObjectId, Doc] = {}
        # Pares que alguna vez intercambiaron mensajes (solo crece)
        self._contacts: Set[FrozenSet[str]] = set()

    def insert(self, doc: Doc) -> Doc:
        data = dict(doc)
        data.setdefault("_id", ObjectId())
        with self._lock:
            if data["_id"] in self._messages:
                raise ValueError(f"Mensaje duplicado: {data['_id']}")
            self._messages[data["_id"]] = data
            self._contacts.add(pair_key(data["sender_id"], data["receiver_id"]))
        return dict(data)

    def find_one(self, message_id: ObjectId, now: int) -> Optional[Doc]:
        with self._lock:
            doc = self._messages.get(message_id)
            if doc is None or is_expired(doc, now):
                return None
            return dict(doc)

    def find_pair(self, user_a: str, user_b: str, now: int) -> List[Doc]:
        """Historial de la conversación (sin orden de participantes), ordenado por timestamp"""
        key = pair_key(user_a, user_b)
        with self._lock:
            items = [
                dict(doc) for doc in self._messages.values()
                if pair_key(doc["sender_id"], doc["receiver_id"]) == key
                and not is_expired(doc, now)
            ]
        return sorted(items, key=lambda d: d["timestamp"])

    def find_for_user(self, user_id: str, now: int) -> List[Doc]:
        with self._lock:
            return [
                dict(doc) for doc in self._messages.values()
                if user_id in (doc["sender_id"], doc["receiver_id"])
                and not is_expired(doc, now)
            ]

    def contacts_of(self, user_id: str) -> Set[str]:
        with self._lock:
            pairs = [p for p in self._contacts if user_id in p]
        others: Set[str] = set()
        for pair in pairs:
            others.update(pair - {user_id})
        return others

    def update(self, message_id: ObjectId, now: int, mutate: Callable[[Doc], bool]) -> Tuple[Optional[Doc], bool]:
        """
        Aplica `mutate` sobre el documento dentro del lock.
        `mutate` devuelve True si ha modificado algo; puede lanzar excepciones,
        en cuyo caso el documento queda intacto.
        Devuelve (copia del documento o None si no existe, modificado).
        """
        with self._lock:
            doc = self._messages.get(message_id)
            if doc is None or is_expired(doc, now):
                return None, False
            draft = dict(doc)
            changed = bool(mutate(draft))
            if changed:
                self._messages[message_id] = draft
            return dict(draft), changed

    def delete(self, message_id: ObjectId) -> bool:
        with self._lock:
            return self._messages.pop(message_id, None) is not None

    def purge_expired(self, now: int) -> List[Doc]:
        """Elimina los mensajes expirados y devuelve los eliminados"""
        with self._lock:
            expired = [mid for mid, doc in self._messages.items() if is_expired(doc, now)]
            return [self._messages.pop(mid) for mid in expired]

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
            self._contacts.clear()
