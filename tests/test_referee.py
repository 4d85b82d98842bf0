import pytest

from sinfiltro.game.errors import GameError
from sinfiltro.game.libraries import create_library
from sinfiltro.game.models import room_path
from sinfiltro.game.players import join_room
from sinfiltro.game.referee import Referee, all_submitted, play_again, podium, start_game
from sinfiltro.game.service import load_room
from sinfiltro.game.submissions import submit_answers
from sinfiltro.game.voting import cast_vote

from .conftest import answers_for


@pytest.fixture
def referee(store, clock, rng):
    return Referee(store, "BOLA", generate=lambda prompt: "respuesta de la IA", clock=clock, rng=rng)


def submit_everyone(store, code):
    room = load_room(store, code)
    for pid in room.players:
        submit_answers(store, code, pid, answers_for(room, pid))


def status(store, code="BOLA"):
    return store.read(f"{room_path(code)}/gameState/status")


def test_start_game_opens_round_one(store, make_room, clock, rng):
    code, _ = make_room()

    start_game(store, code, "p1", mode="quick", now=clock.now, rng=rng)

    room = load_room(store, code)
    gs = room.game_state
    assert (gs.status, gs.current_round, gs.total_rounds) == ("INPUT", 1, 1)
    assert gs.phase_end_time == clock.now + 60_000
    assert len(room.matches) == 3
    assert room.prompts == [m.prompt_text for m in room.matches]


@pytest.mark.parametrize(
    "names, requester, error",
    [
        (("Ana", "Beto", "Cris"), "p2", "only_host"),
        (("Ana", "Beto"), "p1", "not_enough_players"),
    ],
)
def test_start_game_validation(store, make_room, names, requester, error):
    code, _ = make_room(names=names)

    with pytest.raises(GameError) as exc:
        start_game(store, code, requester)
    assert exc.value.code == error
    assert status(store, code) == "LOBBY"


def test_game_cannot_start_twice(store, make_room, start):
    code, _ = make_room()
    start(code)

    with pytest.raises(GameError) as exc:
        start_game(store, code, "p1")
    assert exc.value.code == "already_started"


def test_start_with_a_custom_library(store, make_room, start):
    code, _ = make_room()
    library = create_library(store, "Oficina", ["¿A?", "¿B?", "¿C?", "¿D?"])

    room = start(code, library_code=library.id.lower())

    assert room.custom_library == library.id
    assert {m.prompt_text for m in room.matches} <= {"¿A?", "¿B?", "¿C?", "¿D?"}
    assert store.read(f"libraries/{library.id}/playCount") == 1


def test_start_with_an_unknown_library(store, make_room):
    code, _ = make_room()
    with pytest.raises(GameError) as exc:
        start_game(store, code, "p1", library_code="ZZZZZZ")
    assert exc.value.code == "library_not_found"


def test_full_single_round_game(store, make_room, start, clock, referee):
    code, _ = make_room()
    start(code, mode="quick")

    assert referee.tick() is None
    submit_everyone(store, code)
    assert all_submitted(load_room(store, code))

    assert referee.tick() == "voting"
    # Answers are swept only after the grace window.
    assert referee.tick() is None
    clock.advance(2)
    assert referee.tick() == "filled"
    assert referee.tick() is None

    # Match 0: Ana vs Beto, Cris votes.
    cast_vote(store, code, "p3", "A")
    assert referee.tick() == "results"
    assert status(store, code) == "RESULTS"
    clock.advance(10)
    assert referee.tick() == "voting"

    # Match 1: Beto vs Cris, Ana votes.
    cast_vote(store, code, "p1", "B")
    assert referee.tick() == "results"
    clock.advance(10)
    assert referee.tick() == "voting"

    # Match 2: Cris vs Ana, Beto never votes.
    clock.advance(14)
    assert referee.tick() is None
    clock.advance(2)
    assert referee.tick() == "results"
    clock.advance(10)
    assert referee.tick() == "podium"

    room = load_room(store, code)
    assert room.game_state.status == "PODIUM"
    assert {p.id: p.score for p in room.players.values()} == {"p1": 200, "p2": -20, "p3": 200}
    assert podium(room)[-1] == ("p2", -20)


def test_timer_closes_writing_and_fills_every_answer(store, make_room, start, clock, referee):
    code, _ = make_room()
    start(code)

    clock.advance(89)
    assert referee.tick() is None
    clock.advance(1)
    assert referee.tick() == "voting"
    clock.advance(2)
    assert referee.tick() == "filled"

    room = load_room(store, code)
    assert all(m.response_a == m.response_b == "respuesta de la IA" for m in room.matches)
    assert room.game_state.fill_at is None
    # The grace window is added to the first match's voting time.
    assert room.game_state.phase_end_time == clock.now + 20_000


def test_slow_fill_does_not_eat_the_voting_time(store, make_room, start, clock, rng):
    code, _ = make_room()
    start(code)

    def slow_generate(prompt):
        clock.advance(8)
        return "respuesta lenta"

    referee = Referee(store, code, generate=slow_generate, clock=clock, rng=rng)
    clock.advance(90)
    assert referee.tick() == "voting"
    clock.advance(2)
    assert referee.tick() == "filled"

    # Six answers at 8 s each: the old deadline is long gone.
    room = load_room(store, code)
    assert room.game_state.phase_end_time == clock.now + 20_000
    assert referee.tick() is None
    assert status(store, code) == "VOTING"
    assert {p.id: p.score for p in room.players.values()} == {"p1": 0, "p2": 0, "p3": 0}


def test_a_human_answer_landing_in_the_grace_window_is_kept(store, make_room, start, clock, referee):
    code, _ = make_room()
    room = start(code)

    clock.advance(90)
    assert referee.tick() == "voting"
    submit_answers(store, code, "p2", answers_for(room, "p2", "a tiempo"), auto=True)
    clock.advance(2)
    referee.tick()

    assert store.read(f"{room_path(code)}/matches/0/responseB") == "a tiempo p2 0"
    assert store.read(f"{room_path(code)}/matches/0/responseA") == "respuesta de la IA"


def test_second_round_gets_fresh_prompts(store, make_room, start, clock, referee):
    code, _ = make_room()
    first = start(code)
    round_one = {m.prompt_text for m in first.matches}
    store.patch(
        room_path(code),
        {
            "gameState/status": "RESULTS",
            "gameState/currentMatchIndex": 2,
            "gameState/phaseEndTime": clock.now,
            "players/p1/submittedRound": 1,
        },
    )

    assert referee.tick() == "input"

    room = load_room(store, code)
    assert room.game_state.current_round == 2
    assert room.game_state.status == "INPUT"
    assert not {m.prompt_text for m in room.matches} & round_one
    assert len(room.prompts) == 6
    assert room.players["p1"].submitted_round == 0


def test_heartbeat_only_while_visible(store, make_room, clock, referee):
    make_room()
    created = store.read("rooms/BOLA/lastActive")

    referee.visible = False
    clock.advance(300)
    referee.tick()
    assert store.read("rooms/BOLA/lastActive") == created

    referee.visible = True
    referee.tick()
    assert store.read("rooms/BOLA/lastActive") == clock.now


def test_referee_stops_for_closed_or_missing_rooms(store, make_room, referee):
    assert referee.tick() == "missing"
    make_room()
    store.patch("rooms/BOLA", {"isClosed": True})
    assert referee.tick() == "closed"


def test_play_again(store, make_room, start, clock):
    code, _ = make_room()
    start(code)
    join_room(store, code, "p9", "Zoe", now=clock.now)
    store.patch(room_path(code), {"gameState/status": "PODIUM", "players/p1/score": 900})

    with pytest.raises(GameError) as exc:
        play_again(store, code, "p2")
    assert exc.value.code == "only_host"

    play_again(store, code, "p1")

    room = load_room(store, code)
    assert room.game_state.status == "LOBBY"
    assert room.game_state.game_mode == "classic"
    assert room.matches == [] and room.prompts == []
    assert set(room.players) == {"p1", "p2", "p3"}
    assert all(p.score == 0 and p.submitted_round == 0 for p in room.players.values())


def test_play_again_needs_a_finished_game(store, make_room):
    code, _ = make_room()
    with pytest.raises(GameError) as exc:
        play_again(store, code, "p1")
    assert exc.value.code == "not_finished"
