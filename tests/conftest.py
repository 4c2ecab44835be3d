"""
Configuración de pytest para tests
"""
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.db import get_lifecycle, get_sweeper, reset_state
from app.services.lifecycle import LifecycleController
from app.services.realtime import ConnectionManager
from app.store import MessageStore
from app.users import UserDirectory


class FakeClock:
    """Reloj controlable en milisegundos"""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms

    def set(self, ms: int):
        self.now = ms


class FakeWebSocket:
    """Sustituto mínimo de WebSocket que guarda lo enviado"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.accepted = False
        self.closed = False
        self.close_code = None
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket roto")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None):
        self.closed = True
        self.close_code = code

    def of_type(self, kind: str):
        return [e for e in self.sent if e.get("type") == kind]


@pytest.fixture(autouse=True)
def clean_state():
    """Vacía el estado en memoria antes de cada test"""
    reset_state()
    yield
    reset_state()


# Deshabilitar rate limiting en la app antes de usarla
@pytest.fixture(scope="session", autouse=True)
def disable_rate_limiting():
    """Deshabilita rate limiting para todos los tests"""
    from app.main import app
    app.state.limiter = None


@pytest.fixture
def clock():
    return FakeClock(1_000_000)


@pytest.fixture
def socket_factory():
    return FakeWebSocket


@pytest.fixture
def settings():
    return Settings(
        default_duration_ms=300000,
        allowed_durations_ms=[60000, 300000, 900000, 3600000],
        sweep_interval_seconds=5,
        max_content_chars=1000,
    )


@pytest.fixture
def store():
    return MessageStore()


@pytest.fixture
def channel():
    return ConnectionManager()


@pytest.fixture
def directory():
    return UserDirectory()


@pytest.fixture
def lifecycle(store, channel, settings, clock):
    return LifecycleController(store, channel, settings, clock)


@pytest.fixture
def client():
    """Fixture para cliente de test de FastAPI (con lifespan activo)"""
    # Importar aquí para evitar problemas de importación circular
    from app.main import app
    app.state.limiter = None
    with TestClient(app) as c:
        yield c


@pytest.fixture
def api_clock(clock):
    """Sustituye el reloj del controlador y del barrido de la app"""
    lifecycle = get_lifecycle()
    sweeper = get_sweeper()
    original = (lifecycle.clock, sweeper.clock)
    lifecycle.clock = clock
    sweeper.clock = clock
    yield clock
    lifecycle.clock, sweeper.clock = original


@pytest.fixture
def make_user(client):
    """Registra un usuario, hace login y devuelve (id, headers, token)"""
    def _make(username: str, password: str = "secreto123"):
        r = client.post("/auth/register", json={"username": username, "password": password})
        assert r.status_code == 201, r.text
        r = client.post("/auth/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        data = r.json()
        token = data["access_token"]
        return data["user"]["id"], {"Authorization": f"Bearer {token}"}, token
    return _make
