from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Literal

from ..config import Config
from ..store import StateStore
from .avatars import avatar_for
from .errors import GameError
from .models import Player, room_path
from .service import load_room, now_ms

log = logging.getLogger(__name__)

LeaveOutcome = Literal["removed", "host_transferred", "room_closed", "not_in_room"]


@dataclass
class JoinResult:
    player_id: str
    is_host: bool
    is_spectator: bool
    reconnected: bool = False


def generate_player_id() -> str:
    return uuid.uuid4().hex[:12]


def validate_name(name: str, max_length: int | None = None) -> str:
    n = (name or "").strip()
    if not n:
        raise GameError("invalid_name", "name is required")
    if len(n) > (max_length or Config.MAX_NAME_LENGTH):
        raise GameError("invalid_name", "name is too long")
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        raise GameError("invalid_name", "name contains markup")
    for ch in n:
        if ord(ch) < 32:
            raise GameError("invalid_name", "name contains control characters")
    return n


def join_room(
    store: StateStore,
    code: str,
    player_id: str,
    name: str,
    character_id: str | None = None,
    now: int | None = None,
) -> JoinResult:
    """Admit a player, resolving reconnects and shared-session collisions."""
    now = now_ms() if now is None else now
    name = validate_name(name)

    room = load_room(store, code, retry=True)
    if room is None:
        raise GameError("room_not_found")
    if room.is_closed:
        raise GameError("room_closed")

    existing = room.players.get(player_id) if player_id else None
    if existing is not None:
        if existing.name == name:
            log.info("player %s reconnected to %s", player_id, code)
            return JoinResult(player_id, existing.is_host, existing.is_spectator, reconnected=True)
        # Same session id, different human: mint a fresh identity.
        player_id = generate_player_id()
    elif not player_id:
        player_id = generate_player_id()

    avatar = avatar_for(character_id)
    result: JoinResult | None = None
    refused: str | None = None

    def admit(current):
        # The room may have been closed or recycled since it was loaded.
        nonlocal result, refused
        result, refused = None, None
        if not current:
            refused = "room_not_found"
            return current
        if current.get("isClosed"):
            refused = "room_closed"
            return current

        players = current.get("players") or {}
        is_host = not players
        is_spectator = (current.get("gameState") or {}).get("status", "LOBBY") != "LOBBY"
        player = Player(
            id=player_id,
            name=name,
            avatar=avatar,
            is_host=is_host,
            is_spectator=is_spectator,
            joined_at=now,
        )
        players[player_id] = player.to_dict()
        current["players"] = players
        if is_host:
            current["hostId"] = player_id
        result = JoinResult(player_id, is_host, is_spectator)
        return current

    store.atomic_update(room_path(code), admit)
    if result is None:
        raise GameError(refused or "room_not_found")

    log.info("player %s joined %s (host=%s, spectator=%s)", player_id, code, result.is_host, result.is_spectator)
    return result


def leave_room(store: StateStore, code: str, player_id: str) -> LeaveOutcome:
    room = load_room(store, code)
    if room is None or player_id not in room.players:
        return "not_in_room"

    leaver = room.players[player_id]
    status = room.game_state.status

    if leaver.is_host and status == "LOBBY":
        successors = [p for p in room.eligible_players() if p.id != player_id]
        fields: dict = {f"players/{player_id}": None}
        if successors:
            new_host = successors[0].id
            fields["hostId"] = new_host
            fields[f"players/{new_host}/isHost"] = True
        else:
            fields["hostId"] = ""
        store.patch(room_path(code), fields)
        log.info("host %s left %s, host is now %r", player_id, code, fields["hostId"])
        return "host_transferred" if successors else "removed"

    if leaver.is_host and status == "PODIUM":
        # TV clients move on to a fresh room.
        store.patch(room_path(code), {"isClosed": True})
        log.info("host %s left finished room %s, closing it", player_id, code)
        return "room_closed"

    store.remove(f"{room_path(code)}/players/{player_id}")
    log.info("player %s left %s", player_id, code)
    return "removed"
