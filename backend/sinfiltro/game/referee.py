from __future__ import annotations

import logging
import random
from typing import Callable

from ..config import Config
from ..store import StateStore
from .autofill import AnswerGenerator
from .errors import GameError
from .libraries import get_library, increment_play_count
from .models import GameState, Room, Streak, room_path
from .modes import initial_game_state
from .prompts import distribute_prompts, get_prompts_for_game
from .rooms import heartbeat
from .service import load_room, now_ms
from .submissions import fill_missing_answers
from .voting import reveal_match, voting_complete

log = logging.getLogger(__name__)


def _deadline_passed(gs: GameState, now: int) -> bool:
    return gs.phase_end_time is not None and now >= gs.phase_end_time


def all_submitted(room: Room) -> bool:
    eligible = room.eligible_players()
    if not eligible:
        return False
    return all(p.submitted_round == room.game_state.current_round for p in eligible)


def _round_fields(
    store: StateStore,
    room: Room,
    gs: GameState,
    round_no: int,
    now: int,
    used_prompts: list[str],
    rng: random.Random | None = None,
) -> dict:
    """Fields that open INPUT for ``round_no`` with freshly paired matches."""
    eligible = room.eligible_players()

    library_prompts = None
    if room.custom_library:
        try:
            library_prompts = get_library(store, room.custom_library).prompts
        except GameError:
            log.warning("room %s: library %s is gone, using default prompts", room.id, room.custom_library)

    prompts = get_prompts_for_game(
        len(eligible),
        mode_id=gs.game_mode,
        category=gs.selected_category,
        library_prompts=library_prompts,
        exclude=used_prompts,
        rng=rng,
    )
    matches = distribute_prompts([p.id for p in eligible], prompts)

    fields: dict = {
        "matches": [m.to_dict() for m in matches],
        "prompts": list(used_prompts) + prompts,
        "gameState/status": "INPUT",
        "gameState/currentRound": round_no,
        "gameState/currentMatchIndex": 0,
        "gameState/phaseEndTime": now + gs.input_time_limit * 1000,
        "gameState/fillAt": None,
    }
    for p in eligible:
        fields[f"players/{p.id}/hasSubmitted"] = False
        fields[f"players/{p.id}/submittedRound"] = 0
    return fields


def _require_host(room: Room, requester_id: str) -> None:
    player = room.players.get(requester_id)
    if player is None or not (player.is_host or room.host_id == requester_id):
        raise GameError("only_host")


def start_game(
    store: StateStore,
    code: str,
    requester_id: str,
    mode: str | None = None,
    category: str | None = None,
    library_code: str | None = None,
    now: int | None = None,
    rng: random.Random | None = None,
) -> None:
    """LOBBY -> INPUT(round 1), requested by the host."""
    now = now_ms() if now is None else now
    room = load_room(store, code)
    if room is None:
        raise GameError("room_not_found")
    _require_host(room, requester_id)
    if room.game_state.status != "LOBBY":
        raise GameError("already_started")
    if len(room.eligible_players()) < Config.MIN_PLAYERS:
        raise GameError("not_enough_players")

    library_id = None
    if library_code:
        library_id = get_library(store, library_code).id

    gs = initial_game_state(mode or room.game_state.game_mode, category or room.game_state.selected_category)
    room.custom_library = library_id

    fields = {f"gameState/{k}": v for k, v in gs.to_dict().items()}
    fields["customLibrary"] = library_id
    fields["lastActive"] = now
    fields.update(_round_fields(store, room, gs, 1, now, [], rng))
    store.patch(room_path(code), fields)

    if library_id:
        increment_play_count(store, library_id)
    log.info("room %s: game started (%s, %d rounds)", code, gs.game_mode, gs.total_rounds)


def play_again(store: StateStore, code: str, requester_id: str) -> None:
    """PODIUM -> LOBBY: scores reset, spectators dropped, matches cleared."""
    room = load_room(store, code)
    if room is None:
        raise GameError("room_not_found")
    _require_host(room, requester_id)
    if room.game_state.status != "PODIUM":
        raise GameError("not_finished")

    fields: dict = {}
    for p in room.players.values():
        if p.is_spectator and p.id != room.host_id:
            fields[f"players/{p.id}"] = None
            continue
        base = f"players/{p.id}"
        fields[f"{base}/score"] = 0
        fields[f"{base}/hasSubmitted"] = False
        fields[f"{base}/submittedRound"] = 0
        fields[f"{base}/isSpectator"] = False
        fields[f"{base}/streak"] = Streak().to_dict()

    gs = initial_game_state(room.game_state.game_mode, room.game_state.selected_category)
    fields["gameState"] = gs.to_dict()
    fields["matches"] = []
    fields["prompts"] = []
    store.patch(room_path(code), fields)
    log.info("room %s: back to lobby", code)


def begin_voting(store: StateStore, room: Room, now: int, grace_sec: int | None = None) -> None:
    """First half of INPUT -> VOTING.

    Status flips right away so players still typing auto-submit; the fill
    sweep runs once the grace window has passed (see ``Referee.tick``).
    """
    grace = Config.FILL_GRACE_SEC if grace_sec is None else grace_sec
    gs = room.game_state
    store.patch(
        room_path(room.id),
        {
            "gameState/status": "VOTING",
            "gameState/currentMatchIndex": 0,
            "gameState/phaseEndTime": now + (gs.vote_time_limit + grace) * 1000,
            "gameState/fillAt": now + grace * 1000,
        },
    )
    log.info("room %s: round %d writing closed, voting opens", room.id, gs.current_round)


def advance_after_results(store: StateStore, room: Room, now: int, rng: random.Random | None = None) -> str:
    gs = room.game_state
    next_index = gs.current_match_index + 1

    if next_index < len(room.matches):
        store.patch(
            room_path(room.id),
            {
                "gameState/status": "VOTING",
                "gameState/currentMatchIndex": next_index,
                "gameState/phaseEndTime": now + gs.vote_time_limit * 1000,
            },
        )
        return "voting"

    if gs.current_round < gs.total_rounds and len(room.eligible_players()) >= 2:
        fields = _round_fields(store, room, gs, gs.current_round + 1, now, room.prompts, rng)
        store.patch(room_path(room.id), fields)
        log.info("room %s: round %d begins", room.id, gs.current_round + 1)
        return "input"

    store.patch(
        room_path(room.id),
        {
            "gameState/status": "PODIUM",
            "gameState/phaseEndTime": None,
            "lastActive": now,
        },
    )
    log.info("room %s: game over", room.id)
    return "podium"


def podium(room: Room) -> list[tuple[str, int]]:
    """Non-spectators by final score, highest first."""
    ranked = sorted(room.eligible_players(), key=lambda p: p.score, reverse=True)
    return [(p.id, p.score) for p in ranked]


class Referee:
    """Timer-driven transitions of one room, run on behalf of its TV.

    ``tick`` is called periodically; each call performs at most one
    transition and returns its name (or None). Deadlines live in the shared
    game state, so a referee that restarts picks up where the last one was.
    """

    def __init__(
        self,
        store: StateStore,
        code: str,
        generate: Callable[[str], str] | None = None,
        clock: Callable[[], int] = now_ms,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.code = code
        self.generate = generate or AnswerGenerator().generate
        self.clock = clock
        self.rng = rng
        self.visible = True
        self._last_heartbeat: int | None = None

    def _maybe_heartbeat(self, now: int) -> None:
        if not self.visible:
            return
        interval = Config.HEARTBEAT_INTERVAL_SEC * 1000
        if self._last_heartbeat is None or now - self._last_heartbeat >= interval:
            heartbeat(self.store, self.code, now)
            self._last_heartbeat = now

    def tick(self, now: int | None = None) -> str | None:
        now = self.clock() if now is None else now
        room = load_room(self.store, self.code)
        if room is None:
            return "missing"
        if room.is_closed:
            return "closed"

        self._maybe_heartbeat(now)
        gs = room.game_state

        if gs.status == "INPUT":
            if _deadline_passed(gs, now) or all_submitted(room):
                begin_voting(self.store, room, now)
                return "voting"

        elif gs.status == "VOTING":
            if gs.fill_at is not None:
                if now < gs.fill_at:
                    return None
                fill_missing_answers(self.store, self.code, self.generate)
                # Voters get a full window once the answers are actually there.
                filled_at = max(now, self.clock())
                deadline = max(gs.phase_end_time or 0, filled_at + gs.vote_time_limit * 1000)
                self.store.patch(
                    room_path(self.code),
                    {"gameState/fillAt": None, "gameState/phaseEndTime": deadline},
                )
                return "filled"
            if voting_complete(room) or _deadline_passed(gs, now):
                reveal_match(self.store, self.code, now)
                return "results"

        elif gs.status == "RESULTS":
            if _deadline_passed(gs, now):
                return advance_after_results(self.store, room, now, self.rng)

        return None
