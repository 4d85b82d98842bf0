from __future__ import annotations

import random

from .models import Avatar


AVATAR_CHARACTERS: list[tuple[str, str]] = [
    ("banana-resbalon", 'Banana "Resbalón"'),
    ("aguacate-el-fit", 'Aguacate "El Fit"'),
    ("don-limon", "Don Limón"),
    ("pina-punky", "Piña Punky"),
    ("coco-loco", "Coco Loco"),
    ("fresa-la-influencer", "Fresa La Influencer"),
    ("sandia-la-bomba", 'Sandía "La Bomba"'),
    ("cereza-gemela", "Cereza Gemela"),
    ("pera-fecto", "Pera-Fecto"),
    ("naranja-mecanica", "Naranja Mecánica"),
    ("arandano-el-azul", 'Arándano "El Azul"'),
    ("granada-explosiva", "Granada Explosiva"),
    ("pitaya-mistica", "Pitaya Mística"),
    ("higo-el-viejo", "Higo El Viejo"),
    ("melocoton-terciopelo", "Melocotón Terciopelo"),
    ("durian-el-pestes", "Durian El Pestes"),
    ("paco-manzana", "Paco Manzana"),
    ("uva-el-peque", 'Uva "El Peque"'),
    ("kiko-kiwi", "Kiko Kiwi"),
    ("china-mandarina", "China Mandarina"),
]


def _avatar(character_id: str, name: str) -> Avatar:
    return Avatar(character_id=character_id, character_name=name, image_url=f"/avatars/{character_id}.png")


def avatar_for(character_id: str | None, rng: random.Random | None = None) -> Avatar:
    """Catalog avatar for ``character_id``; unknown ids get a random one."""
    for cid, name in AVATAR_CHARACTERS:
        if cid == character_id:
            return _avatar(cid, name)
    return random_avatar(rng)


def random_avatar(rng: random.Random | None = None) -> Avatar:
    cid, name = (rng or random).choice(AVATAR_CHARACTERS)
    return _avatar(cid, name)
