import random

import pytest

from sinfiltro.game.players import join_room
from sinfiltro.game.rooms import claim_room
from sinfiltro.store import MemoryStore

NOW = 1_700_000_000_000


class FakeClock:
    def __init__(self, start: int = NOW):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> int:
        self.now += int(seconds * 1000)
        return self.now


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_room(store, clock):
    """Claim a room and seat players p1..pN (p1 hosts)."""

    def _make(code: str = "BOLA", names=("Ana", "Beto", "Cris")):
        claim_room(store, code, clock.now)
        ids = []
        for i, name in enumerate(names):
            result = join_room(store, code, f"p{i + 1}", name, now=clock.now + i)
            ids.append(result.player_id)
        return code, ids

    return _make


def answers_for(room, player_id: str, text: str = "respuesta") -> dict:
    """Answer payload covering every prompt assigned to ``player_id``."""
    from sinfiltro.game.prompts import get_player_prompts

    return {str(a.prompt_index): f"{text} {player_id} {a.prompt_index}" for a in get_player_prompts(player_id, room.matches)}


@pytest.fixture
def start(store, clock, rng):
    from sinfiltro.game.referee import start_game
    from sinfiltro.game.service import load_room

    def _start(code: str = "BOLA", host: str = "p1", mode: str = "classic", **kwargs):
        start_game(store, code, host, mode=mode, now=clock.now, rng=rng, **kwargs)
        return load_room(store, code)

    return _start


@pytest.fixture
def app_and_socketio(store):
    from sinfiltro.server import create_app

    return create_app(
        {
            "TESTING": True,
            "STORE": store,
            "SOCKETIO_ASYNC_MODE": "threading",
            "REFEREE_ENABLED": False,
            "ANSWER_GENERATOR": lambda prompt: "respuesta de la IA",
        }
    )


@pytest.fixture
def app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sio_client(app_and_socketio):
    """Factory: every call connects one more Socket.IO client."""
    app, socketio = app_and_socketio
    clients = []

    def _connect():
        c = socketio.test_client(app)
        clients.append(c)
        return c

    yield _connect
    for c in clients:
        if c.is_connected():
            c.disconnect()
