from __future__ import annotations

import math
from dataclasses import dataclass

from .models import Streak

POINTS_PER_VOTE = 100
QUIPLASH_BONUS = 500
LAST_ROUND_MULTIPLIER = 2

# Consecutive wins -> multiplier. Not applied by the live reveal.
STREAK_MULTIPLIERS: list[tuple[int, float, str]] = [
    (7, 2.5, "¡Legendario!"),
    (5, 2.0, "¡Imparable!"),
    (3, 1.5, "¡En Racha!"),
]


@dataclass(frozen=True)
class ScoreBreakdown:
    base_score: int
    quiplash_bonus: int
    multiplier: float
    streak_bonus: int
    total: int

    @property
    def is_quiplash(self) -> bool:
        return self.quiplash_bonus > 0


def streak_multiplier(win_streak: int) -> float:
    for wins, multiplier, _ in STREAK_MULTIPLIERS:
        if win_streak >= wins:
            return multiplier
    return 1.0


def streak_name(win_streak: int) -> str | None:
    for wins, _, name in STREAK_MULTIPLIERS:
        if win_streak >= wins:
            return name
    return None


def calculate_score(
    votes_received: int,
    total_voters: int,
    is_last_round: bool,
    current_win_streak: int = 0,
) -> ScoreBreakdown:
    """Points for one answer.

    ``total_voters`` counts regular (non-spectator) votes cast on the match;
    a quiplash is taking all of them when there was more than one.
    """
    base_score = votes_received * POINTS_PER_VOTE
    is_quiplash = votes_received == total_voters and total_voters > 1
    quiplash_bonus = QUIPLASH_BONUS if is_quiplash else 0
    round_multiplier = LAST_ROUND_MULTIPLIER if is_last_round else 1

    s_multiplier = streak_multiplier(current_win_streak)
    streak_bonus = math.floor(base_score * (s_multiplier - 1)) if s_multiplier > 1 else 0
    multiplier = round_multiplier * s_multiplier

    return ScoreBreakdown(
        base_score=base_score,
        quiplash_bonus=quiplash_bonus,
        multiplier=multiplier,
        streak_bonus=streak_bonus,
        total=math.floor((base_score + quiplash_bonus) * multiplier),
    )


def update_streak(streak: Streak, won: bool) -> Streak:
    if won:
        wins = streak.current_wins + 1
        return Streak(
            current_wins=wins,
            current_losses=0,
            longest_win_streak=max(streak.longest_win_streak, wins),
        )
    return Streak(
        current_wins=0,
        current_losses=streak.current_losses + 1,
        longest_win_streak=streak.longest_win_streak,
    )
