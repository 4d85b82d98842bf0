from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import Config
from ..store import StateStore
from .errors import GameError
from .models import Match, Player, Room, room_path
from .scoring import ScoreBreakdown, calculate_score, update_streak
from .service import load_room, now_ms

log = logging.getLogger(__name__)

NON_VOTER_PENALTY = 20


@dataclass(frozen=True)
class VoteTally:
    regular_a: int
    regular_b: int
    spectator_a: int
    spectator_b: int

    @property
    def regular_total(self) -> int:
        return self.regular_a + self.regular_b

    @property
    def spectator_tiebreak(self) -> str | None:
        """Side the spectators favour when the regular vote is tied."""
        if self.regular_a != self.regular_b or self.spectator_a == self.spectator_b:
            return None
        return "A" if self.spectator_a > self.spectator_b else "B"


@dataclass
class RevealSummary:
    match_index: int
    tally: VoteTally
    scores: dict[str, ScoreBreakdown] = field(default_factory=dict)
    penalized: list[str] = field(default_factory=list)


def eligible_voters(room: Room, match: Match) -> list[Player]:
    """Everyone but the match's two authors, spectators included."""
    return [p for p in room.players_in_order() if p.id not in match.authors()]


def voting_complete(room: Room) -> bool:
    match = room.current_match()
    if match is None:
        return False
    eligible = eligible_voters(room, match)
    if not eligible:
        return False
    return len(match.voters()) >= len(eligible)


def tally_votes(match: Match, players: dict[str, Player]) -> VoteTally:
    def is_spectator(pid: str) -> bool:
        p = players.get(pid)
        return bool(p and p.is_spectator)

    return VoteTally(
        regular_a=sum(1 for pid in match.votes_a if not is_spectator(pid)),
        regular_b=sum(1 for pid in match.votes_b if not is_spectator(pid)),
        spectator_a=sum(1 for pid in match.votes_a if is_spectator(pid)),
        spectator_b=sum(1 for pid in match.votes_b if is_spectator(pid)),
    )


def cast_vote(store: StateStore, code: str, voter_id: str, choice: str) -> bool:
    """Record one vote on the current match.

    Returns False when the voter had already voted on it. The append runs as a
    single atomic update on the match, so two devices voting at once cannot
    both win against an empty list, and nobody ends up in both lists.
    """
    choice = (choice or "").strip().upper()
    if choice not in ("A", "B"):
        raise GameError("invalid_choice")

    room = load_room(store, code)
    if room is None:
        raise GameError("room_not_found")
    if room.game_state.status != "VOTING":
        raise GameError("not_voting")
    match = room.current_match()
    if match is None:
        raise GameError("not_voting")
    if voter_id not in room.players:
        raise GameError("not_in_room")
    if voter_id in match.authors():
        raise GameError("cannot_vote_own")

    index = room.game_state.current_match_index
    recorded = False

    def append(current: dict | None) -> dict | None:
        nonlocal recorded
        recorded = False
        if not current:
            return current
        votes_a = list(current.get("votesA") or [])
        votes_b = list(current.get("votesB") or [])
        if voter_id in votes_a or voter_id in votes_b:
            return current
        (votes_a if choice == "A" else votes_b).append(voter_id)
        current["votesA"] = votes_a
        current["votesB"] = votes_b
        recorded = True
        return current

    store.atomic_update(f"{room_path(code)}/matches/{index}", append)
    if recorded:
        log.debug("vote %s by %s on %s match %d", choice, voter_id, code, index)
    return recorded


def build_reveal(room: Room, now: int | None = None, results_delay_sec: int | None = None) -> tuple[dict, RevealSummary]:
    """Fields that reveal the current match in one update.

    Scores of both authors, non-voter penalties, the match's revealed flag and
    the move to RESULTS are all part of the same patch.
    """
    now = now_ms() if now is None else now
    delay = Config.RESULTS_DELAY_SEC if results_delay_sec is None else results_delay_sec
    gs = room.game_state
    index = gs.current_match_index
    match = room.current_match()
    if match is None:
        raise GameError("not_voting")

    tally = tally_votes(match, room.players)
    summary = RevealSummary(match_index=index, tally=tally)
    fields: dict = {}

    if not match.revealed:
        is_last_round = gs.current_round >= gs.total_rounds
        results = (
            (match.player_a, tally.regular_a, tally.regular_b),
            (match.player_b, tally.regular_b, tally.regular_a),
        )
        for pid, mine, theirs in results:
            breakdown = calculate_score(mine, tally.regular_total, is_last_round)
            summary.scores[pid] = breakdown
            player = room.players.get(pid)
            if player is None:
                continue
            fields[f"players/{pid}/score"] = player.score + breakdown.total
            if mine != theirs:
                fields[f"players/{pid}/streak"] = update_streak(player.streak, mine > theirs).to_dict()

        voted = match.voters()
        for p in eligible_voters(room, match):
            if p.is_spectator or p.id in voted:
                continue
            fields[f"players/{p.id}/score"] = p.score - NON_VOTER_PENALTY
            summary.penalized.append(p.id)

        fields[f"matches/{index}/revealed"] = True

    fields["gameState/status"] = "RESULTS"
    fields["gameState/phaseEndTime"] = now + delay * 1000
    fields["gameState/fillAt"] = None
    return fields, summary


def reveal_match(store: StateStore, code: str, now: int | None = None) -> RevealSummary | None:
    room = load_room(store, code)
    if room is None or room.game_state.status != "VOTING" or room.current_match() is None:
        return None
    fields, summary = build_reveal(room, now)
    store.patch(room_path(code), fields)
    if summary.penalized:
        log.info("room %s: %d non-voter(s) penalized", code, len(summary.penalized))
    log.info(
        "room %s: revealed match %d (A=%d, B=%d)",
        code,
        summary.match_index,
        summary.tally.regular_a,
        summary.tally.regular_b,
    )
    return summary
