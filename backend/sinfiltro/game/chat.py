from __future__ import annotations

import logging
import uuid

from ..store import StateStore
from .errors import GameError
from .models import room_path
from .service import load_room, now_ms

log = logging.getLogger(__name__)

MAX_CHAT_LENGTH = 100
MAX_CHAT_MESSAGES = 50


def post_chat_message(store: StateStore, code: str, player_id: str, text: str, now: int | None = None) -> dict:
    now = now_ms() if now is None else now
    text = (text or "").strip()
    if not text or len(text) > MAX_CHAT_LENGTH:
        raise GameError("invalid_message")

    room = load_room(store, code)
    if room is None:
        raise GameError("room_not_found")
    player = room.players.get(player_id)
    if player is None:
        raise GameError("not_in_room")

    message = {
        "id": f"{now:013d}-{uuid.uuid4().hex[:6]}",
        "playerId": player_id,
        "name": player.name,
        "text": text,
        "timestamp": now,
    }

    def append(current):
        chat = dict(current or {})
        chat[message["id"]] = message
        if len(chat) > MAX_CHAT_MESSAGES:
            newest = sorted(chat.values(), key=lambda m: (m.get("timestamp", 0), m.get("id", "")))
            chat = {m["id"]: m for m in newest[-MAX_CHAT_MESSAGES:]}
        return chat

    store.atomic_update(f"{room_path(code)}/chat", append)
    return message
