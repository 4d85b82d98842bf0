from __future__ import annotations

from flask import Blueprint, jsonify

from ..game import service
from ..game.rooms import allocate_room, claim_room, normalize_code
from ..store import StoreError

bp = Blueprint("rooms", __name__)


@bp.post("/rooms")
def create_room():
    # Only TVs create rooms; the socket tv:claim does the same on connect.
    store = service.get_store()
    try:
        code = allocate_room(store)
        claim_room(store, code)
    except StoreError:
        return jsonify({"error": "store_unavailable"}), 503
    return jsonify({"roomCode": code})


@bp.get("/rooms/<code>")
def get_room(code: str):
    try:
        room = service.load_room(service.get_store(), normalize_code(code), retry=True)
    except StoreError:
        return jsonify({"error": "store_unavailable"}), 503
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(service.room_public_state(room))
