from __future__ import annotations

import random

# Lines the TV host reads out on phase changes. Placeholders: {name}, {count}.
HOST_LINES: dict[str, list[str]] = {
    "lobby": [
        "¡Bienvenidos a Sin Filtro! Entrad con el código de la pantalla.",
        "Llevamos {count} valientes. ¿Quién más se atreve?",
        "{name} acaba de llegar. Que alguien le explique las reglas.",
    ],
    "input": [
        "¡A escribir! Que no os tiemble el pulso.",
        "Recordad: lo gracioso gana, lo correcto da igual.",
        "Ronda nueva, vergüenza nueva.",
    ],
    "voting": [
        "¡Hora de votar! Elegid con el corazón... o con rencor.",
        "Dos respuestas entran, una sale.",
        "Votad rápido, que el reloj no perdona.",
    ],
    "results": [
        "¡{name} se lleva la ronda!",
        "El público ha hablado. Y ha hablado fuerte.",
        "Eso ha dolido. Siguiente.",
    ],
    "quiplash": [
        "¡QUIPLASH! {name} se lo ha llevado todo.",
        "Unanimidad total para {name}. Nadie se atrevió a llevar la contraria.",
    ],
    "podium": [
        "¡{name} gana la partida! Aplausos, o al menos no abucheos.",
        "Se acabó. Los demás, a practicar.",
    ],
}


def host_line(tag: str, rng: random.Random | None = None, **values) -> str | None:
    templates = HOST_LINES.get(tag)
    if not templates:
        return None
    line = (rng or random).choice(templates)
    try:
        return line.format(**values)
    except (KeyError, IndexError):
        # Caller didn't have what this template needs; fall back to one that doesn't.
        plain = [t for t in templates if "{" not in t]
        return (rng or random).choice(plain) if plain else None
