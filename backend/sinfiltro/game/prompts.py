from __future__ import annotations

import random
from dataclasses import dataclass

from .errors import GameError
from .models import Match
from .modes import get_mode
from .prompt_data import DEFAULT_PROMPTS


@dataclass
class AssignedPrompt:
    prompt_index: int
    prompt_text: str
    is_player_a: bool

    @property
    def field(self) -> str:
        return "responseA" if self.is_player_a else "responseB"


def distribute_prompts(player_ids: list[str], prompts: list[str]) -> list[Match]:
    """Pair players on a ring: match ``i`` is ``(p[i], p[i+1 mod n])``.

    Every player authors exactly two answers, once as A and once as B.
    """
    n = len(player_ids)
    if n < 2:
        raise GameError("not_enough_players", "need at least two players to pair")
    if len(set(player_ids)) != n:
        raise GameError("invalid_players", "player ids must be distinct")
    if len(prompts) < n:
        raise GameError("not_enough_prompts", f"need {n} prompts, got {len(prompts)}")

    return [
        Match(
            prompt_text=text,
            prompt_index=i,
            player_a=player_ids[i],
            player_b=player_ids[(i + 1) % n],
        )
        for i, text in enumerate(prompts[:n])
    ]


def get_player_prompts(player_id: str, matches: list[Match]) -> list[AssignedPrompt]:
    assigned = []
    for idx, m in enumerate(matches):
        if m.player_a == player_id:
            assigned.append(AssignedPrompt(idx, m.prompt_text, True))
        elif m.player_b == player_id:
            assigned.append(AssignedPrompt(idx, m.prompt_text, False))
    return assigned


def default_pool(mode_id: str | None = None, category: str | None = None) -> list[str]:
    mode = get_mode(mode_id)
    pool: list[str] = []
    for cat, prompts in DEFAULT_PROMPTS.items():
        if mode.only_categories and cat not in mode.only_categories:
            continue
        if cat in mode.excluded_categories:
            continue
        if category and category != "all" and not mode.only_categories and cat != category:
            continue
        pool.extend(prompts)
    return pool


def get_prompts_for_game(
    count: int,
    mode_id: str | None = None,
    category: str | None = None,
    library_prompts: list[str] | None = None,
    exclude: list[str] | None = None,
    rng: random.Random | None = None,
) -> list[str]:
    """Pick ``count`` distinct prompts.

    A custom library replaces the default pool; when it is too short it is
    topped up from the default pool. Prompts in ``exclude`` are only reused
    once everything else is exhausted.
    """
    rng = rng or random
    used = set(exclude or [])

    def shuffled(items: list[str]) -> list[str]:
        items = list(dict.fromkeys(p.strip() for p in items if p and p.strip()))
        rng.shuffle(items)
        fresh = [p for p in items if p not in used]
        stale = [p for p in items if p in used]
        return fresh + stale

    if library_prompts:
        picked = shuffled(library_prompts)[:count]
    else:
        picked = []

    if len(picked) < count:
        pool = default_pool(mode_id, category)
        if len(pool) < count:
            pool = default_pool(mode_id)
        for p in shuffled(pool):
            if len(picked) >= count:
                break
            if p not in picked:
                picked.append(p)

    if len(picked) < count:
        raise GameError("not_enough_prompts", f"only {len(picked)} prompts available")
    return picked
