from __future__ import annotations

import math
import time
from threading import RLock

from ..store import MemoryStore, StateStore, read_retrying
from .models import Room, room_path


def now_ms() -> int:
    return int(time.time() * 1000)


def remaining_seconds(phase_end_time: int | None, now: int | None = None) -> int | None:
    """Seconds left before ``phase_end_time``, rounded up, never negative."""
    if phase_end_time is None:
        return None
    now = now_ms() if now is None else now
    return max(0, math.ceil((phase_end_time - now) / 1000))


_lock = RLock()
_store: StateStore | None = None


def use_store(store: StateStore) -> StateStore:
    global _store
    with _lock:
        if _store is not None and _store is not store:
            _store.close()
        _store = store
        return store


def get_store() -> StateStore:
    global _store
    with _lock:
        if _store is None:
            _store = MemoryStore()
        return _store


def load_room(store: StateStore, code: str, retry: bool = False) -> Room | None:
    path = room_path(code)
    data = read_retrying(store, path) if retry else store.read(path)
    if not data:
        return None
    room = Room.from_dict(data)
    room.id = room.id or code
    return room


def room_public_state(room: Room, viewer_id: str | None = None, now: int | None = None) -> dict:
    """Snapshot for the presentation layer.

    While answers are being written, only the viewer's own answers are
    included.
    """
    now = now_ms() if now is None else now
    gs = room.game_state

    matches = []
    for m in room.matches:
        d = m.to_dict()
        if gs.status == "INPUT":
            if viewer_id != m.player_a:
                d["responseA"] = ""
            if viewer_id != m.player_b:
                d["responseB"] = ""
        matches.append(d)

    players = [p.to_dict() for p in room.players_in_order()]
    chat = sorted(room.chat.values(), key=lambda msg: msg.get("timestamp", 0))

    return {
        "code": room.id,
        "hostId": room.host_id,
        "isClosed": room.is_closed,
        "gameState": gs.to_dict(),
        "remainingSec": remaining_seconds(gs.phase_end_time, now) if gs.status in ("INPUT", "VOTING", "RESULTS") else None,
        "players": players,
        "matches": matches,
        "customLibrary": room.custom_library,
        "chat": chat[-10:],
        "nowMs": now,
    }
