from .config import get_settings
from .store import MessageStore
from .users import UserDirectory
from .services.lifecycle import LifecycleController
from .services.realtime import manager
from .services.sweeper import ExpirySweeper

# Estado de proceso: reiniciar el servidor vacía mensajes y usuarios
_store: MessageStore | None = None
_users: UserDirectory | None = None
_lifecycle: LifecycleController | None = None
_sweeper: ExpirySweeper | None = None


def get_store() -> MessageStore:
    global _store
    if _store is None:
        _store = MessageStore()
    return _store


def get_users() -> UserDirectory:
    global _users
    if _users is None:
        _users = UserDirectory()
    return _users


def get_lifecycle() -> LifecycleController:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = LifecycleController(get_store(), manager, get_settings())
    return _lifecycle


def get_sweeper() -> ExpirySweeper:
    global _sweeper
    if _sweeper is None:
        _sweeper = ExpirySweeper(get_store(), manager, get_settings().sweep_interval_seconds)
    return _sweeper


def reset_state():
    """Vacía el almacén y el directorio (usado por los tests)"""
    get_store().clear()
    get_users().clear()
    manager.active_connections.clear()
