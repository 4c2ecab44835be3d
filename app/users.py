# app/users.py
"""
Directorio de usuarios en memoria.

Colaborador mínimo del núcleo de mensajería: el ciclo de vida de los mensajes
solo lo consulta para resolver los datos visibles del otro participante.
"""
from typing import Any, Dict, Optional
import threading
from bson import ObjectId

from .utils import now_ms

DEFAULT_BIO = "Whispering in the leaves..."


class UsernameTaken(Exception):
    pass


class UserDirectory:
    def __init__(self):
        self._lock = threading.RLock()
        self._users: Dict[str, Dict[str, Any]] = {}

    def create_user(self, username: str, password_hash: str, bio: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            if self.find_user_by_username(username):
                raise UsernameTaken(username)
            doc = {
                "_id": ObjectId(),
                "username": username,
                "password_hash": password_hash,
                "bio": bio or DEFAULT_BIO,
                "avatar": None,
                "created_at": now_ms(),
            }
            self._users[str(doc["_id"])] = doc
            return dict(doc)

    def find_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._users.get(user_id)
            return dict(doc) if doc else None

    def find_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        # Los nombres de usuario no distinguen mayúsculas
        wanted = username.strip().lower()
        with self._lock:
            for doc in self._users.values():
                if doc["username"].lower() == wanted:
                    return dict(doc)
        return None

    def clear(self) -> None:
        with self._lock:
            self._users.clear()
