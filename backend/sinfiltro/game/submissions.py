from __future__ import annotations

import logging
from typing import Callable, Mapping

from ..store import StateStore, StoreError, read_retrying
from .errors import GameError
from .models import Match, room_path
from .prompts import get_player_prompts
from .service import load_room

log = logging.getLogger(__name__)

MAX_ANSWER_LENGTH = 100

# Used when even the generator hands back nothing.
PLACEHOLDER_ANSWER = "¡Error de sistema! 🤖"


def fill_if_empty(store: StateStore, path: str, text: str) -> bool:
    """Write ``text`` at ``path`` unless a non-empty answer is already there."""
    wrote = False

    def fill(current):
        nonlocal wrote
        wrote = False
        if isinstance(current, str) and current.strip():
            return current
        wrote = True
        return text

    store.atomic_update(path, fill)
    return wrote


def _normalize_answers(answers: Mapping) -> dict[int, str]:
    out: dict[int, str] = {}
    for key, value in (answers or {}).items():
        try:
            idx = int(key)
        except (TypeError, ValueError):
            continue
        out[idx] = str(value or "").strip()[:MAX_ANSWER_LENGTH]
    return out


def submit_answers(
    store: StateStore,
    code: str,
    player_id: str,
    answers: Mapping,
    auto: bool = False,
) -> bool:
    """Write a player's answers and mark the round as done for them.

    A manual submit needs every assigned prompt answered; an auto submit
    (time ran out) sends whatever is there and skips empty drafts. Either way
    a player finalizes a round at most once: when ``submittedRound`` already
    equals the current round nothing is written and False is returned.
    """
    room = load_room(store, code)
    if room is None:
        raise GameError("room_not_found")
    player = room.players.get(player_id)
    if player is None:
        raise GameError("not_in_room")

    gs = room.game_state
    # Once voting opens only the timed-out drafts still land.
    if gs.status not in ("INPUT", "VOTING") or (gs.status == "VOTING" and not auto):
        raise GameError("not_accepting_answers")
    if player.submitted_round == gs.current_round:
        return False

    assigned = get_player_prompts(player_id, room.matches)
    drafts = _normalize_answers(answers)
    if not auto and any(not drafts.get(a.prompt_index) for a in assigned):
        raise GameError("unanswered_prompts")

    base = room_path(code)
    for a in assigned:
        text = drafts.get(a.prompt_index, "")
        if not text:
            continue
        if not fill_if_empty(store, f"{base}/matches/{a.prompt_index}/{a.field}", text):
            log.info("room %s: answer %d%s already filled, keeping it", code, a.prompt_index, a.field[-1])

    round_no = gs.current_round
    claimed = False

    def claim(current):
        nonlocal claimed
        claimed = False
        if current is None:
            # Record vanished (player left meanwhile).
            return None
        if int(current) == round_no:
            return current
        claimed = True
        return round_no

    player_path = f"{base}/players/{player_id}"
    store.atomic_update(f"{player_path}/submittedRound", claim)
    if claimed:
        store.patch(player_path, {"hasSubmitted": True})
        log.info("room %s: %s %s round %d", code, player_id, "auto-submitted" if auto else "submitted", round_no)
    return claimed


def fill_missing_answers(
    store: StateStore,
    code: str,
    generate: Callable[[str], str],
) -> int:
    """Fill every still-empty answer of the round; returns how many were filled.

    Fields that already hold text are never touched, so running this twice
    is harmless. A failure on one field does not stop the others.
    """
    raw = read_retrying(store, f"{room_path(code)}/matches") or []
    if isinstance(raw, dict):
        raw = [raw[k] for k in sorted(raw, key=int)]

    filled = 0
    for idx, data in enumerate(raw):
        if not data:
            continue
        match = Match.from_dict(data)
        for field, current in (("responseA", match.response_a), ("responseB", match.response_b)):
            if current.strip():
                continue
            try:
                text = generate(match.prompt_text)
            except Exception:
                log.exception("room %s: generator failed for match %d", code, idx)
                text = ""
            text = (text or "").strip() or PLACEHOLDER_ANSWER
            try:
                if fill_if_empty(store, f"{room_path(code)}/matches/{idx}/{field}", text):
                    filled += 1
            except StoreError:
                log.exception("room %s: could not fill %s of match %d", code, field, idx)

    if filled:
        log.info("room %s: auto-filled %d answer(s)", code, filled)
    return filled
