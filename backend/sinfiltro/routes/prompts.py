from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..game.autofill import MAX_TOPIC_LENGTH, PromptGenerator
from ..game.errors import GameError
from ..game.modes import GAME_MODES
from ..game.prompt_data import PROMPT_CATEGORIES
from ..game.prompts import get_prompts_for_game

bp = Blueprint("prompts", __name__)


@bp.get("/prompts")
def get_prompts():
    try:
        count = int(request.args.get("count", "3"))
    except ValueError:
        count = 3
    count = max(1, min(count, 20))

    # Custom prompts: comma separated, or multiple prompts[] query params
    custom: list[str] = []
    if request.args.get("custom"):
        custom.extend([p.strip() for p in request.args.get("custom", "").split(",") if p.strip()])
    custom.extend([p.strip() for p in request.args.getlist("prompts[]") if p.strip()])

    try:
        prompts = get_prompts_for_game(
            count,
            mode_id=request.args.get("mode") or None,
            category=request.args.get("category") or None,
            library_prompts=custom or None,
        )
    except GameError as e:
        return jsonify({"error": e.code}), 400
    return jsonify({"prompts": prompts})


@bp.get("/modes")
def get_modes():
    modes = [
        {
            "id": m.id,
            "name": m.name,
            "description": m.description,
            "rounds": m.rounds,
            "inputTimeLimit": m.input_time_limit,
            "voteTimeLimit": m.vote_time_limit,
        }
        for m in GAME_MODES.values()
    ]
    return jsonify({"modes": modes, "categories": [{"id": k, "name": v} for k, v in PROMPT_CATEGORIES.items()]})


@bp.post("/prompts/generate")
def generate_prompts():
    data = request.get_json(silent=True) or {}
    topic = str(data.get("topic", "")).strip()
    if not topic or len(topic) > MAX_TOPIC_LENGTH:
        return jsonify({"error": "invalid_topic"}), 400

    generator = current_app.config.get("PROMPT_GENERATOR") or PromptGenerator()
    return jsonify({"success": True, "prompts": generator.generate_prompts(topic)})
