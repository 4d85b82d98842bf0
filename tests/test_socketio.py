import pytest

from sinfiltro.game.models import room_path
from sinfiltro.game.service import load_room


def events(sio, name):
    return [msg["args"][0] for msg in sio.get_received() if msg["name"] == name]


@pytest.fixture
def tv(sio_client):
    c = sio_client()
    ack = c.emit("tv:claim", {}, callback=True)
    assert ack["ok"] is True
    c.room_code = ack["roomCode"]
    return c


@pytest.fixture
def players(sio_client, tv):
    joined = []
    for name in ("Ana", "Beto", "Cris"):
        c = sio_client()
        ack = c.emit("room:join", {"roomCode": tv.room_code, "name": name}, callback=True)
        assert ack["ok"] is True
        c.player_id = ack["playerId"]
        joined.append(c)
    return joined


def test_tv_claim_creates_a_room(store, tv):
    assert store.read(f"{room_path(tv.room_code)}/gameState/status") == "LOBBY"
    assert events(tv, "room:state")[-1]["code"] == tv.room_code


def test_tv_can_reclaim_its_room(sio_client, tv):
    other = sio_client()
    ack = other.emit("tv:claim", {"roomCode": tv.room_code}, callback=True)
    assert ack == {"ok": True, "roomCode": tv.room_code}


def test_join_and_broadcast(store, tv, players):
    ana, beto, _ = players
    room = load_room(store, tv.room_code)

    assert room.host_id == ana.player_id
    assert len(room.players) == 3
    latest = events(tv, "room:state")[-1]
    assert [p["name"] for p in latest["players"]] == ["Ana", "Beto", "Cris"]


def test_join_unknown_room(sio_client):
    c = sio_client()
    ack = c.emit("room:join", {"roomCode": "NADA", "name": "Ana"}, callback=True)

    assert ack == {"ok": False, "error": "room_not_found"}
    assert events(c, "room:error") == [{"error": "room_not_found"}]


def test_only_the_host_starts(store, tv, players):
    ana, beto, _ = players

    denied = beto.emit("game:start", {"mode": "quick"}, callback=True)
    assert denied == {"ok": False, "error": "only_host"}

    tv.get_received()
    assert ana.emit("game:start", {"mode": "quick"}, callback=True) == {"ok": True}
    assert store.read(f"{room_path(tv.room_code)}/gameState/status") == "INPUT"
    lines = events(tv, "host:line")
    assert lines and lines[-1]["status"] == "INPUT"


def test_players_only_see_their_own_answers(store, tv, players):
    ana, beto, _ = players
    ana.emit("game:start", {}, callback=True)
    room = load_room(store, tv.room_code)
    mine = {
        str(i): f"respuesta {i}"
        for i, m in enumerate(room.matches)
        if ana.player_id in (m.player_a, m.player_b)
    }
    beto.get_received()

    ack = ana.emit("answers:submit", {"answers": mine}, callback=True)

    assert ack == {"ok": True, "accepted": True}
    for state in events(beto, "room:state"):
        for m in state["matches"]:
            assert not m["responseA"].startswith("respuesta")
            assert not m["responseB"].startswith("respuesta")


def test_auto_submit_and_vote(store, tv, players):
    ana, beto, cris = players
    ana.emit("game:start", {}, callback=True)
    ana.emit("answers:auto_submit", {"answers": {}}, callback=True)
    store.patch(room_path(tv.room_code), {"gameState/status": "VOTING", "gameState/currentMatchIndex": 0})

    room = load_room(store, tv.room_code)
    match = room.matches[0]
    voter = next(c for c in players if c.player_id not in match.authors())
    author = next(c for c in players if c.player_id == match.player_a)

    assert voter.emit("vote:cast", {"choice": "A"}, callback=True) == {"ok": True, "recorded": True}
    assert voter.emit("vote:cast", {"choice": "B"}, callback=True) == {"ok": True, "recorded": False}
    assert author.emit("vote:cast", {"choice": "A"}, callback=True) == {"ok": False, "error": "cannot_vote_own"}


def test_chat(store, tv, players):
    ack = players[1].emit("chat:message", {"text": "¡Vamos!"}, callback=True)

    assert ack["ok"] is True
    assert events(tv, "room:state")[-1]["chat"][-1]["text"] == "¡Vamos!"


def test_leave(store, tv, players):
    ana = players[0]
    ack = ana.emit("room:leave", {}, callback=True)

    assert ack == {"ok": True, "outcome": "host_transferred"}
    assert load_room(store, tv.room_code).host_id == players[1].player_id


def test_only_the_tv_closes_the_room(store, tv, players):
    ana = players[0]
    assert ana.emit("room:close", {"roomCode": tv.room_code}, callback=True) == {"ok": False, "error": "only_tv"}

    ana.get_received()
    assert tv.emit("room:close", {"roomCode": tv.room_code}, callback=True) == {"ok": True}
    assert events(ana, "room:closed") == [{"roomCode": tv.room_code}]


def test_play_again_requires_the_podium(tv, players):
    ack = players[0].emit("game:play_again", {}, callback=True)
    assert ack == {"ok": False, "error": "not_finished"}


def test_actions_without_a_session(sio_client):
    c = sio_client()
    assert c.emit("vote:cast", {"choice": "A"}, callback=True) == {"ok": False, "error": "not_in_room"}


def test_room_watch_is_dropped_when_everyone_disconnects(store, tv, players):
    from sinfiltro.realtime import handlers

    code = tv.room_code
    tv.disconnect()
    # Players are still around, so the room keeps being watched.
    assert code in handlers._watchers
    assert len(store._hub) == 1

    for c in players:
        c.disconnect()

    assert code not in handlers._watchers
    assert code not in handlers._referees
    assert code not in handlers._last_status
    assert len(store._hub) == 0


def test_lone_tv_disconnect_releases_its_room(store, tv):
    from sinfiltro.realtime import handlers

    tv.disconnect()

    assert handlers._watchers == {}
    assert len(store._hub) == 0
