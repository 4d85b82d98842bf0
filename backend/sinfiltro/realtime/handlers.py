from __future__ import annotations

import functools
import logging
from threading import RLock
from typing import Callable

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..config import Config
from ..game import service
from ..game.autofill import AnswerGenerator
from ..game.banter import host_line
from ..game.chat import post_chat_message
from ..game.errors import GameError
from ..game.models import Room, room_path
from ..game.players import join_room as join_game_room
from ..game.players import leave_room as leave_game_room
from ..game.referee import Referee, play_again, podium, start_game
from ..game.rooms import allocate_room, claim_room, close_room, normalize_code
from ..game.submissions import submit_answers
from ..game.voting import cast_vote, tally_votes
from ..store import StoreError

log = logging.getLogger(__name__)

_lock = RLock()
_room_tasks: dict[str, bool] = {}
_referees: dict[str, Referee] = {}
_tv_sids: dict[str, set[str]] = {}
# sid -> (room code, player id)
_sessions: dict[str, tuple[str, str]] = {}
_watchers: dict[str, Callable[[], None]] = {}
_last_status: dict[str, str] = {}


def reset_realtime_state() -> None:
    """Forget sessions, TVs and store watchers, e.g. after the store was swapped."""
    with _lock:
        for unsubscribe in _watchers.values():
            unsubscribe()
        _watchers.clear()
        _sessions.clear()
        _tv_sids.clear()
        _referees.clear()
        _last_status.clear()


def _release_room(room_code: str) -> bool:
    """Drop the watcher and referee of a room nobody is attached to anymore."""
    with _lock:
        if _tv_sids.get(room_code) or any(code == room_code for code, _ in _sessions.values()):
            return False
        unsubscribe = _watchers.pop(room_code, None)
        _tv_sids.pop(room_code, None)
        _referees.pop(room_code, None)
        _last_status.pop(room_code, None)
    if unsubscribe is not None:
        unsubscribe()
        log.info("released room %s", room_code)
    return True


def _fail(error: str) -> dict:
    emit("room:error", {"error": error})
    return {"ok": False, "error": error}


def _handles_errors(fn):
    @functools.wraps(fn)
    def wrapper(data=None):
        try:
            return fn(data or {})
        except GameError as e:
            return _fail(e.code)
        except StoreError:
            log.exception("store failure in %s", fn.__name__)
            return _fail("store_unavailable")

    return wrapper


def _banter_for(room: Room) -> str | None:
    gs = room.game_state
    if gs.status == "LOBBY":
        return host_line("lobby", count=len(room.players))
    if gs.status in ("INPUT", "VOTING"):
        return host_line(gs.status.lower())
    if gs.status == "RESULTS":
        match = room.current_match()
        if match is None:
            return host_line("results")
        tally = tally_votes(match, room.players)
        if tally.regular_a == tally.regular_b:
            return host_line("results")
        winner_id, loser_votes = (
            (match.player_a, tally.regular_b) if tally.regular_a > tally.regular_b else (match.player_b, tally.regular_a)
        )
        winner = room.players.get(winner_id)
        name = winner.name if winner else "Alguien"
        return host_line("quiplash" if loser_votes == 0 else "results", name=name)
    if gs.status == "PODIUM":
        ranking = podium(room)
        winner = room.players.get(ranking[0][0]) if ranking else None
        return host_line("podium", name=winner.name) if winner else host_line("podium")
    return None


def register_socketio_handlers(
    socketio: SocketIO,
    generate: Callable[[str], str] | None = None,
    referee_enabled: bool = True,
) -> None:
    reset_realtime_state()
    generate = generate or AnswerGenerator().generate

    def _sids_in_room(room_code: str) -> list[tuple[str, str]]:
        with _lock:
            return [(sid, pid) for sid, (code, pid) in _sessions.items() if code == room_code]

    def _broadcast_room_state(room_code: str) -> None:
        room = service.load_room(service.get_store(), room_code)
        if room is None or room.is_closed:
            socketio.emit("room:closed", {"roomCode": room_code}, to=room_code)
            return

        socketio.emit("room:state", service.room_public_state(room), to=room_code)

        if room.game_state.status == "INPUT":
            # Authors see their own drafts.
            for sid, pid in _sids_in_room(room_code):
                socketio.emit("room:state", service.room_public_state(room, viewer_id=pid), to=sid)

        status = room.game_state.status
        with _lock:
            changed = _last_status.get(room_code) != status
            _last_status[room_code] = status
            tvs = list(_tv_sids.get(room_code, ()))
        if changed and tvs:
            line = _banter_for(room)
            if line:
                for sid in tvs:
                    socketio.emit("host:line", {"roomCode": room_code, "status": status, "text": line}, to=sid)

    def _safe_broadcast_room_state(room_code: str) -> None:
        try:
            _broadcast_room_state(room_code)
        except Exception:
            log.exception("could not broadcast state of %s", room_code)

    def _watch_room(room_code: str) -> None:
        with _lock:
            if room_code in _watchers:
                return
            _watchers[room_code] = service.get_store().subscribe(
                room_path(room_code), lambda _value: _safe_broadcast_room_state(room_code)
            )

    def _ensure_room_task(room_code: str) -> None:
        if not referee_enabled:
            return
        with _lock:
            if _room_tasks.get(room_code):
                return
            _room_tasks[room_code] = True

        def _runner() -> None:
            try:
                while True:
                    with _lock:
                        referee = _referees.get(room_code)
                        if referee is None or not _tv_sids.get(room_code):
                            break
                    try:
                        outcome = referee.tick()
                    except StoreError as e:
                        log.warning("referee for %s: store unavailable (%s)", room_code, e)
                        outcome = None
                    except Exception:
                        log.exception("referee for %s failed a tick", room_code)
                        outcome = None
                    if outcome in ("missing", "closed"):
                        log.info("referee for %s stopping (%s)", room_code, outcome)
                        break
                    socketio.sleep(Config.REFEREE_TICK_SEC)
            finally:
                with _lock:
                    _room_tasks.pop(room_code, None)
                _release_room(room_code)

        socketio.start_background_task(_runner)

    def _resolve(payload: dict) -> tuple[str, str]:
        with _lock:
            session = _sessions.get(request.sid)
        if session:
            return session
        room_code = normalize_code(payload.get("roomCode"))
        player_id = str(payload.get("playerId", "")).strip()
        if not room_code or not player_id:
            raise GameError("not_in_room")
        return room_code, player_id

    @socketio.on("tv:claim")
    @_handles_errors
    def tv_claim(payload):
        store = service.get_store()
        room_code = normalize_code(payload.get("roomCode")) or allocate_room(store)
        room = claim_room(store, room_code)
        if room.is_closed:
            room_code = allocate_room(store)
            claim_room(store, room_code)

        join_room(room_code)
        with _lock:
            _tv_sids.setdefault(room_code, set()).add(request.sid)
            if room_code not in _referees:
                _referees[room_code] = Referee(store, room_code, generate=generate)
        _watch_room(room_code)
        _ensure_room_task(room_code)
        _safe_broadcast_room_state(room_code)
        log.info("tv %s claimed room %s", request.sid, room_code)
        return {"ok": True, "roomCode": room_code}

    @socketio.on("tv:visibility")
    @_handles_errors
    def tv_visibility(payload):
        visible = bool(payload.get("visible", True))
        with _lock:
            codes = [code for code, sids in _tv_sids.items() if request.sid in sids]
            for code in codes:
                referee = _referees.get(code)
                if referee is not None:
                    referee.visible = visible
        return {"ok": True}

    @socketio.on("room:join")
    @_handles_errors
    def room_join(payload):
        room_code = normalize_code(payload.get("roomCode"))
        if not room_code:
            return _fail("invalid_payload")

        result = join_game_room(
            service.get_store(),
            room_code,
            str(payload.get("playerId", "")).strip(),
            str(payload.get("name", "")),
            character_id=str(payload.get("characterId", "")).strip() or None,
        )

        join_room(room_code)
        with _lock:
            _sessions[request.sid] = (room_code, result.player_id)
        _watch_room(room_code)

        room = service.load_room(service.get_store(), room_code)
        if room is not None:
            emit("room:state", service.room_public_state(room, viewer_id=result.player_id))
        return {
            "ok": True,
            "roomCode": room_code,
            "playerId": result.player_id,
            "isHost": result.is_host,
            "isSpectator": result.is_spectator,
            "reconnected": result.reconnected,
        }

    @socketio.on("room:leave")
    @_handles_errors
    def room_leave(payload):
        room_code, player_id = _resolve(payload)
        outcome = leave_game_room(service.get_store(), room_code, player_id)
        leave_room(room_code)
        with _lock:
            _sessions.pop(request.sid, None)
        _release_room(room_code)
        return {"ok": True, "outcome": outcome}

    @socketio.on("room:close")
    @_handles_errors
    def room_close(payload):
        room_code = normalize_code(payload.get("roomCode"))
        with _lock:
            is_tv = request.sid in _tv_sids.get(room_code, ())
        if not is_tv:
            return _fail("only_tv")
        close_room(service.get_store(), room_code)
        return {"ok": True}

    @socketio.on("game:start")
    @_handles_errors
    def game_start(payload):
        room_code, player_id = _resolve(payload)
        start_game(
            service.get_store(),
            room_code,
            player_id,
            mode=payload.get("mode") or None,
            category=payload.get("category") or None,
            library_code=payload.get("libraryCode") or None,
        )
        return {"ok": True}

    @socketio.on("answers:submit")
    @_handles_errors
    def answers_submit(payload):
        room_code, player_id = _resolve(payload)
        accepted = submit_answers(service.get_store(), room_code, player_id, payload.get("answers") or {})
        return {"ok": True, "accepted": accepted}

    @socketio.on("answers:auto_submit")
    @_handles_errors
    def answers_auto_submit(payload):
        room_code, player_id = _resolve(payload)
        accepted = submit_answers(service.get_store(), room_code, player_id, payload.get("answers") or {}, auto=True)
        return {"ok": True, "accepted": accepted}

    @socketio.on("vote:cast")
    @_handles_errors
    def vote_cast(payload):
        room_code, player_id = _resolve(payload)
        recorded = cast_vote(service.get_store(), room_code, player_id, str(payload.get("choice", "")))
        return {"ok": True, "recorded": recorded}

    @socketio.on("game:play_again")
    @_handles_errors
    def game_play_again(payload):
        room_code, player_id = _resolve(payload)
        play_again(service.get_store(), room_code, player_id)
        return {"ok": True}

    @socketio.on("chat:message")
    @_handles_errors
    def chat_message(payload):
        room_code, player_id = _resolve(payload)
        message = post_chat_message(service.get_store(), room_code, player_id, str(payload.get("text", "")))
        return {"ok": True, "message": message}

    @socketio.on("disconnect")
    def on_disconnect(*_args):
        sid = request.sid
        with _lock:
            # Players keep their seat; they come back through room:join.
            session = _sessions.pop(sid, None)
            codes = {session[0]} if session else set()
            for code, sids in _tv_sids.items():
                if sid in sids:
                    sids.discard(sid)
                    codes.add(code)
        for code in codes:
            _release_room(code)
