from __future__ import annotations

import logging
import random
from typing import Literal

from ..config import Config
from ..store import StateStore, StoreError, read_retrying
from .models import GameState, Room, room_path
from .modes import initial_game_state
from .service import now_ms

log = logging.getLogger(__name__)

# Four-letter words, easy to read off a TV and type on a phone.
ROOM_WORDS = [
    "BOLA", "TACO", "GATO", "PATO", "LUNA", "MAGO", "RAYO", "PUMA",
    "NUBE", "FLOR", "ROCA", "SOPA", "MESA", "VINO", "CAFE", "POLO",
    "RATA", "COCO", "FOCA", "LEON", "PERA", "KIWI", "LOBO", "MONO",
    "BUHO", "RANA", "FARO", "NAVE", "DADO", "DEDO", "LAVA", "COPA",
]

RoomAvailability = Literal["free", "recyclable", "busy"]


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def classify_room(
    data: dict | None,
    now: int,
    finished_grace_sec: int | None = None,
    inactive_sec: int | None = None,
    max_age_sec: int | None = None,
) -> RoomAvailability:
    if not data:
        return "free"

    finished_grace_ms = (finished_grace_sec if finished_grace_sec is not None else Config.FINISHED_GRACE_SEC) * 1000
    inactive_ms = (inactive_sec if inactive_sec is not None else Config.INACTIVE_SEC) * 1000
    max_age_ms = (max_age_sec if max_age_sec is not None else Config.MAX_ROOM_AGE_SEC) * 1000

    created_at = int(data.get("createdAt") or 0)
    last_active = int(data.get("lastActive") or created_at)
    since_active = now - last_active
    finished = (data.get("gameState") or {}).get("status") == "PODIUM"

    if finished and since_active > finished_grace_ms:
        return "recyclable"
    if since_active > inactive_ms:
        return "recyclable"
    if now - created_at > max_age_ms:
        return "recyclable"
    return "busy"


def pick_room_code(
    existing: dict | None,
    now: int,
    words: list[str] | None = None,
    rng: random.Random | None = None,
) -> tuple[str, bool]:
    """Choose a code for a new TV. Returns ``(code, needs_reset)``.

    Prefers a code with no room, then a recyclable one, then the room that
    has been idle the longest.
    """
    words = words or ROOM_WORDS
    existing = existing or {}
    rng = rng or random

    free: list[str] = []
    recyclable: list[str] = []
    for word in words:
        availability = classify_room(existing.get(word), now)
        if availability == "free":
            free.append(word)
        elif availability == "recyclable":
            recyclable.append(word)

    if free:
        return rng.choice(free), False
    if recyclable:
        return rng.choice(recyclable), True

    oldest, oldest_time = words[0], None
    for word in words:
        room = existing.get(word) or {}
        t = room.get("lastActive") or room.get("createdAt") or now
        if oldest_time is None or t < oldest_time:
            oldest, oldest_time = word, t
    log.warning("every room is busy, forcing recycle of %s", oldest)
    return oldest, True


def allocate_room(store: StateStore, now: int | None = None, rng: random.Random | None = None) -> str:
    now = now_ms() if now is None else now
    rng = rng or random
    try:
        existing = read_retrying(store, "rooms")
    except StoreError:
        code = rng.choice(ROOM_WORDS)
        log.exception("could not list rooms, picking %s at random", code)
        return code

    code, needs_reset = pick_room_code(existing, now, rng=rng)
    if needs_reset:
        log.info("recycling room %s", code)
        # Deleting the tree evicts every client still attached to it.
        try:
            store.remove(room_path(code))
        except StoreError:
            log.exception("could not clear room %s", code)
    else:
        log.info("allocated free room %s", code)
    return code


def new_room(code: str, now: int, game_state: GameState | None = None) -> Room:
    return Room(
        id=code,
        created_at=now,
        last_active=now,
        game_state=game_state or initial_game_state(),
    )


def claim_room(store: StateStore, code: str, now: int | None = None) -> Room:
    """Create the room at ``code`` if missing, otherwise refresh its heartbeat.

    Only the TV role calls this; players never originate rooms.
    """
    now = now_ms() if now is None else now
    code = normalize_code(code)
    data = store.read(room_path(code))
    if not data:
        room = new_room(code, now)
        store.write(room_path(code), room.to_dict())
        log.info("created room %s", code)
        return room

    store.patch(room_path(code), {"lastActive": now})
    room = Room.from_dict(data)
    room.last_active = now
    return room


def heartbeat(store: StateStore, code: str, now: int | None = None) -> None:
    now = now_ms() if now is None else now
    store.patch(room_path(code), {"lastActive": now})


def close_room(store: StateStore, code: str) -> None:
    store.patch(room_path(code), {"isClosed": True})
    log.info("room %s closed", code)


def is_closed(data: dict | None) -> bool:
    """A missing room counts as closed."""
    return not data or bool(data.get("isClosed"))
