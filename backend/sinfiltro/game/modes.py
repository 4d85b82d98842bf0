from __future__ import annotations

from dataclasses import dataclass

from .models import GameState


@dataclass(frozen=True)
class GameMode:
    id: str
    name: str
    description: str
    rounds: int
    input_time_limit: int
    vote_time_limit: int
    # Restricts which prompt categories may be drawn.
    only_categories: tuple[str, ...] = ()
    excluded_categories: tuple[str, ...] = ()


GAME_MODES: dict[str, GameMode] = {
    "classic": GameMode("classic", "Clásico", "2 rondas, tiempo estándar. El modo original.", 2, 90, 20, excluded_categories=("spicy",)),
    "quick": GameMode("quick", "Modo Rápido", "1 ronda, 60 segundos. ¡Rápido y furioso!", 1, 60, 15, excluded_categories=("spicy",)),
    "epic": GameMode("epic", "Modo Épico", "5 rondas. La batalla definitiva.", 5, 90, 20, excluded_categories=("spicy",)),
    "spicy": GameMode("spicy", "Modo Picante", "Solo preguntas atrevidas. +18", 2, 90, 20, only_categories=("spicy",)),
    "family": GameMode("family", "Modo Familiar", "Preguntas aptas para toda la familia.", 2, 120, 25, excluded_categories=("spicy",)),
}

DEFAULT_MODE = "classic"


def get_mode(mode_id: str | None) -> GameMode:
    return GAME_MODES.get((mode_id or "").strip().lower(), GAME_MODES[DEFAULT_MODE])


def initial_game_state(mode_id: str | None = None, category: str | None = None) -> GameState:
    mode = get_mode(mode_id)
    return GameState(
        status="LOBBY",
        current_round=1,
        total_rounds=mode.rounds,
        current_match_index=0,
        input_time_limit=mode.input_time_limit,
        vote_time_limit=mode.vote_time_limit,
        game_mode=mode.id,
        selected_category=category or "all",
    )
