from __future__ import annotations

from flask import Blueprint, jsonify

from ..game import service
from ..store import StoreError

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    try:
        service.get_store().read("rooms/__health__")
    except StoreError:
        return jsonify({"ok": False, "store": "unavailable"}), 503
    return jsonify({"ok": True, "nowMs": service.now_ms()})
