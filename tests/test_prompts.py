import random
from collections import Counter

import pytest

from sinfiltro.game.errors import GameError
from sinfiltro.game.prompt_data import DEFAULT_PROMPTS
from sinfiltro.game.prompts import default_pool, distribute_prompts, get_player_prompts, get_prompts_for_game


@pytest.mark.parametrize("n", [2, 3, 4, 7])
def test_ring_pairing_gives_everyone_one_a_and_one_b(n):
    players = [f"p{i}" for i in range(n)]
    matches = distribute_prompts(players, [f"prompt {i}" for i in range(n)])

    assert len(matches) == n
    assert Counter(m.player_a for m in matches) == Counter(players)
    assert Counter(m.player_b for m in matches) == Counter(players)
    for i, m in enumerate(matches):
        assert m.prompt_index == i
        assert m.player_a != m.player_b
        assert (m.player_a, m.player_b) == (players[i], players[(i + 1) % n])


def test_three_players():
    matches = distribute_prompts(["ana", "beto", "cris"], ["P0", "P1", "P2"])

    assert [(m.player_a, m.player_b) for m in matches] == [
        ("ana", "beto"),
        ("beto", "cris"),
        ("cris", "ana"),
    ]
    assigned = get_player_prompts("ana", matches)
    assert [(a.prompt_index, a.field) for a in assigned] == [(0, "responseA"), (2, "responseB")]


@pytest.mark.parametrize(
    "players, prompts, code",
    [
        (["solo"], ["P0"], "not_enough_players"),
        (["a", "a", "b"], ["P0", "P1", "P2"], "invalid_players"),
        (["a", "b", "c"], ["P0", "P1"], "not_enough_prompts"),
    ],
)
def test_distribution_rejects_bad_input(players, prompts, code):
    with pytest.raises(GameError) as exc:
        distribute_prompts(players, prompts)
    assert exc.value.code == code


def test_spicy_prompts_stay_in_spicy_mode():
    spicy = set(DEFAULT_PROMPTS["spicy"])

    assert not spicy & set(default_pool("classic"))
    assert set(default_pool("spicy")) == spicy


def test_category_filter():
    assert set(default_pool("classic", "food")) == set(DEFAULT_PROMPTS["food"])


def test_prompts_are_distinct_and_avoid_used_ones():
    rng = random.Random(7)
    used = get_prompts_for_game(4, "classic", rng=rng)
    fresh = get_prompts_for_game(4, "classic", exclude=used, rng=rng)

    assert len(set(fresh)) == 4
    assert not set(fresh) & set(used)


def test_short_library_is_topped_up():
    library = ["¿Mi pregunta?", "¿Otra pregunta?"]
    picked = get_prompts_for_game(5, "classic", library_prompts=library, rng=random.Random(1))

    assert len(picked) == 5
    assert set(library) <= set(picked)


def test_library_replaces_the_default_pool():
    library = [f"Pregunta {i}" for i in range(10)]
    picked = get_prompts_for_game(4, library_prompts=library, rng=random.Random(2))

    assert set(picked) <= set(library)
