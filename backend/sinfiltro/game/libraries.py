from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field

from werkzeug.security import check_password_hash, generate_password_hash

from ..store import StateStore
from .errors import GameError
from .service import now_ms

log = logging.getLogger(__name__)

# No 0/O or 1/I: codes get read aloud.
LIBRARY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
LIBRARY_CODE_LENGTH = 6
MAX_LIBRARY_NAME = 60
MAX_LIBRARY_PROMPTS = 500
MAX_PROMPT_LENGTH = 200


@dataclass
class PromptLibrary:
    id: str
    name: str
    prompts: list[str] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0
    play_count: int = 0
    password_hash: str | None = None

    @property
    def protected(self) -> bool:
        return bool(self.password_hash)

    def to_dict(self, public: bool = False) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "prompts": list(self.prompts),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "playCount": self.play_count,
        }
        if public:
            d["protected"] = self.protected
        else:
            d["passwordHash"] = self.password_hash
        return d

    @classmethod
    def from_dict(cls, data: dict) -> PromptLibrary:
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            prompts=list(data.get("prompts") or []),
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
            play_count=int(data.get("playCount") or 0),
            password_hash=data.get("passwordHash") or None,
        )


def library_path(code: str) -> str:
    return f"libraries/{(code or '').strip().upper()}"


def generate_library_code() -> str:
    return "".join(secrets.choice(LIBRARY_CODE_ALPHABET) for _ in range(LIBRARY_CODE_LENGTH))


def _clean_name(name: str) -> str:
    n = (name or "").strip()
    if not n or len(n) > MAX_LIBRARY_NAME:
        raise GameError("invalid_library", "library name is required (max 60 chars)")
    return n


def _clean_prompts(prompts: list[str]) -> list[str]:
    if not isinstance(prompts, list):
        raise GameError("invalid_library", "prompts must be a list")
    cleaned = [str(p).strip()[:MAX_PROMPT_LENGTH] for p in prompts if isinstance(p, str) and p.strip()]
    if not cleaned:
        raise GameError("invalid_library", "a library needs at least one prompt")
    if len(cleaned) > MAX_LIBRARY_PROMPTS:
        raise GameError("invalid_library", f"at most {MAX_LIBRARY_PROMPTS} prompts")
    return cleaned


def _check_password(library: PromptLibrary, password: str | None) -> None:
    if library.password_hash and not (password and check_password_hash(library.password_hash, password)):
        raise GameError("wrong_password")


def create_library(
    store: StateStore,
    name: str,
    prompts: list[str],
    password: str | None = None,
    now: int | None = None,
) -> PromptLibrary:
    now = now_ms() if now is None else now
    library = PromptLibrary(
        id="",
        name=_clean_name(name),
        prompts=_clean_prompts(prompts),
        created_at=now,
        updated_at=now,
        password_hash=generate_password_hash(password) if password else None,
    )

    for _ in range(10):
        code = generate_library_code()
        if store.read(library_path(code)) is None:
            break
    else:
        raise GameError("invalid_library", "could not allocate a library code")

    library.id = code
    store.write(library_path(code), library.to_dict())
    log.info("created prompt library %s (%d prompts)", code, len(library.prompts))
    return library


def get_library(store: StateStore, code: str) -> PromptLibrary:
    data = store.read(library_path(code)) if (code or "").strip() else None
    if not data:
        raise GameError("library_not_found")
    return PromptLibrary.from_dict(data)


def update_library(
    store: StateStore,
    code: str,
    password: str | None = None,
    name: str | None = None,
    prompts: list[str] | None = None,
    now: int | None = None,
) -> PromptLibrary:
    library = get_library(store, code)
    _check_password(library, password)

    fields: dict = {"updatedAt": now_ms() if now is None else now}
    if name is not None:
        fields["name"] = _clean_name(name)
    if prompts is not None:
        fields["prompts"] = _clean_prompts(prompts)
    store.patch(library_path(code), fields)
    return get_library(store, code)


def delete_library(store: StateStore, code: str, password: str | None = None) -> None:
    library = get_library(store, code)
    _check_password(library, password)
    store.remove(library_path(code))
    log.info("deleted prompt library %s", library.id)


def increment_play_count(store: StateStore, code: str) -> None:
    def bump(current):
        return int(current or 0) + 1

    store.atomic_update(f"{library_path(code)}/playCount", bump)
