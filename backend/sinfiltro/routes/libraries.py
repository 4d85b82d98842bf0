from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..game import service
from ..game.errors import GameError
from ..game.libraries import create_library, delete_library, get_library, update_library
from ..store import StoreError

bp = Blueprint("libraries", __name__)

_STATUS = {
    "library_not_found": 404,
    "wrong_password": 403,
    "invalid_library": 400,
}


def _error(e: GameError):
    return jsonify({"error": e.code}), _STATUS.get(e.code, 400)


@bp.errorhandler(StoreError)
def _store_unavailable(_e):
    return jsonify({"error": "store_unavailable"}), 503


@bp.post("/libraries")
def create():
    payload = request.get_json(silent=True) or {}
    try:
        library = create_library(
            service.get_store(),
            payload.get("name", ""),
            payload.get("prompts") or [],
            password=payload.get("password") or None,
        )
    except GameError as e:
        return _error(e)
    return jsonify(library.to_dict(public=True)), 201


@bp.get("/libraries/<code>")
def get(code: str):
    try:
        library = get_library(service.get_store(), code)
    except GameError as e:
        return _error(e)
    return jsonify(library.to_dict(public=True))


@bp.put("/libraries/<code>")
def update(code: str):
    payload = request.get_json(silent=True) or {}
    try:
        library = update_library(
            service.get_store(),
            code,
            password=payload.get("password") or None,
            name=payload.get("name"),
            prompts=payload.get("prompts"),
        )
    except GameError as e:
        return _error(e)
    return jsonify(library.to_dict(public=True))


@bp.delete("/libraries/<code>")
def delete(code: str):
    payload = request.get_json(silent=True) or {}
    password = payload.get("password") or request.args.get("password") or None
    try:
        delete_library(service.get_store(), code, password=password)
    except GameError as e:
        return _error(e)
    return jsonify({"ok": True})
