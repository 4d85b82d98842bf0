import pytest

from sinfiltro.game.models import Streak
from sinfiltro.game.scoring import calculate_score, streak_multiplier, streak_name, update_streak


def test_points_per_vote():
    score = calculate_score(1, 2, is_last_round=False)
    assert score.total == 100
    assert not score.is_quiplash


def test_quiplash_bonus_needs_every_vote_and_more_than_one():
    assert calculate_score(4, 4, is_last_round=False).total == 900
    assert calculate_score(3, 3, is_last_round=False).total == 300 + 500
    assert calculate_score(1, 1, is_last_round=False).total == 100
    assert calculate_score(0, 0, is_last_round=False).total == 0


def test_last_round_doubles_everything():
    assert calculate_score(2, 2, is_last_round=True).total == (200 + 500) * 2
    assert calculate_score(1, 3, is_last_round=True).total == 200


@pytest.mark.parametrize("wins, multiplier", [(0, 1.0), (2, 1.0), (3, 1.5), (5, 2.0), (6, 2.0), (9, 2.5)])
def test_streak_multiplier(wins, multiplier):
    assert streak_multiplier(wins) == multiplier


def test_streak_bonus_when_requested():
    score = calculate_score(2, 4, is_last_round=False, current_win_streak=3)
    assert score.streak_bonus == 100
    assert score.total == 300
    assert streak_name(3) == "¡En Racha!"
    assert streak_name(1) is None


def test_update_streak():
    streak = Streak()
    for _ in range(3):
        streak = update_streak(streak, won=True)
    assert (streak.current_wins, streak.longest_win_streak) == (3, 3)

    streak = update_streak(streak, won=False)
    assert (streak.current_wins, streak.current_losses, streak.longest_win_streak) == (0, 1, 3)
