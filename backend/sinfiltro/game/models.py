from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


GameStatus = Literal["LOBBY", "INPUT", "VOTING", "RESULTS", "PODIUM"]

STATUSES: tuple[str, ...] = ("LOBBY", "INPUT", "VOTING", "RESULTS", "PODIUM")


def room_path(code: str) -> str:
    return f"rooms/{code}"


@dataclass
class Avatar:
    character_id: str
    character_name: str
    image_url: str

    def to_dict(self) -> dict:
        return {
            "characterId": self.character_id,
            "characterName": self.character_name,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> Avatar | None:
        if not data:
            return None
        return cls(
            character_id=data.get("characterId", ""),
            character_name=data.get("characterName", ""),
            image_url=data.get("imageUrl", ""),
        )


@dataclass
class Streak:
    current_wins: int = 0
    current_losses: int = 0
    longest_win_streak: int = 0

    def to_dict(self) -> dict:
        return {
            "currentWins": self.current_wins,
            "currentLosses": self.current_losses,
            "longestWinStreak": self.longest_win_streak,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> Streak:
        data = data or {}
        return cls(
            current_wins=int(data.get("currentWins", 0)),
            current_losses=int(data.get("currentLosses", 0)),
            longest_win_streak=int(data.get("longestWinStreak", 0)),
        )


@dataclass
class Player:
    id: str
    name: str
    avatar: Avatar | None = None
    score: int = 0
    is_host: bool = False
    is_spectator: bool = False
    has_submitted: bool = False
    # 0 means "never submitted"; rounds are 1-indexed.
    submitted_round: int = 0
    joined_at: int = 0
    streak: Streak = field(default_factory=Streak)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar.to_dict() if self.avatar else None,
            "score": self.score,
            "isHost": self.is_host,
            "isSpectator": self.is_spectator,
            "hasSubmitted": self.has_submitted,
            "submittedRound": self.submitted_round,
            "joinedAt": self.joined_at,
            "streak": self.streak.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict, player_id: str = "") -> Player:
        return cls(
            id=data.get("id") or player_id,
            name=data.get("name", ""),
            avatar=Avatar.from_dict(data.get("avatar")),
            score=int(data.get("score") or 0),
            is_host=bool(data.get("isHost", False)),
            is_spectator=bool(data.get("isSpectator", False)),
            has_submitted=bool(data.get("hasSubmitted", False)),
            submitted_round=int(data.get("submittedRound") or 0),
            joined_at=int(data.get("joinedAt") or 0),
            streak=Streak.from_dict(data.get("streak")),
        )


@dataclass
class Match:
    prompt_text: str
    prompt_index: int
    player_a: str
    player_b: str
    response_a: str = ""
    response_b: str = ""
    votes_a: list[str] = field(default_factory=list)
    votes_b: list[str] = field(default_factory=list)
    revealed: bool = False

    def authors(self) -> tuple[str, str]:
        return self.player_a, self.player_b

    def voters(self) -> set[str]:
        return set(self.votes_a) | set(self.votes_b)

    def to_dict(self) -> dict:
        return {
            "promptText": self.prompt_text,
            "promptIndex": self.prompt_index,
            "playerA": self.player_a,
            "playerB": self.player_b,
            "responseA": self.response_a,
            "responseB": self.response_b,
            "votesA": list(self.votes_a),
            "votesB": list(self.votes_b),
            "revealed": self.revealed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Match:
        return cls(
            prompt_text=data.get("promptText", ""),
            prompt_index=int(data.get("promptIndex") or 0),
            player_a=data.get("playerA", ""),
            player_b=data.get("playerB", ""),
            response_a=data.get("responseA") or "",
            response_b=data.get("responseB") or "",
            votes_a=list(data.get("votesA") or []),
            votes_b=list(data.get("votesB") or []),
            revealed=bool(data.get("revealed", False)),
        )


@dataclass
class GameState:
    status: GameStatus = "LOBBY"
    current_round: int = 1
    total_rounds: int = 2
    current_match_index: int = 0
    input_time_limit: int = 90
    vote_time_limit: int = 20
    # Absolute wall-clock deadline (ms) of the running phase.
    phase_end_time: int | None = None
    # When set, the post-grace auto-fill sweep is due at this time (ms).
    fill_at: int | None = None
    game_mode: str = "classic"
    selected_category: str = "all"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "currentRound": self.current_round,
            "totalRounds": self.total_rounds,
            "currentMatchIndex": self.current_match_index,
            "inputTimeLimit": self.input_time_limit,
            "voteTimeLimit": self.vote_time_limit,
            "phaseEndTime": self.phase_end_time,
            "fillAt": self.fill_at,
            "gameMode": self.game_mode,
            "selectedCategory": self.selected_category,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> GameState:
        data = data or {}
        status = data.get("status", "LOBBY")
        return cls(
            status=status if status in STATUSES else "LOBBY",
            current_round=int(data.get("currentRound") or 1),
            total_rounds=int(data.get("totalRounds") or 2),
            current_match_index=int(data.get("currentMatchIndex") or 0),
            input_time_limit=int(data.get("inputTimeLimit") or 90),
            vote_time_limit=int(data.get("voteTimeLimit") or 20),
            phase_end_time=data.get("phaseEndTime"),
            fill_at=data.get("fillAt"),
            game_mode=data.get("gameMode") or "classic",
            selected_category=data.get("selectedCategory") or "all",
        )


@dataclass
class Room:
    id: str
    created_at: int
    last_active: int
    host_id: str = ""
    is_closed: bool = False
    game_state: GameState = field(default_factory=GameState)
    players: dict[str, Player] = field(default_factory=dict)
    matches: list[Match] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    custom_library: str | None = None
    chat: dict[str, dict] = field(default_factory=dict)

    def players_in_order(self) -> list[Player]:
        """Players in join order (stable for equal join times)."""
        return sorted(self.players.values(), key=lambda p: p.joined_at)

    def eligible_players(self) -> list[Player]:
        return [p for p in self.players_in_order() if not p.is_spectator]

    def current_match(self) -> Match | None:
        idx = self.game_state.current_match_index
        if 0 <= idx < len(self.matches):
            return self.matches[idx]
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "lastActive": self.last_active,
            "hostId": self.host_id,
            "isClosed": self.is_closed,
            "gameState": self.game_state.to_dict(),
            "players": {pid: p.to_dict() for pid, p in self.players.items()},
            "matches": [m.to_dict() for m in self.matches],
            "prompts": list(self.prompts),
            "customLibrary": self.custom_library,
            "chat": dict(self.chat),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Room:
        raw_matches: Any = data.get("matches") or []
        if isinstance(raw_matches, dict):
            raw_matches = [raw_matches[k] for k in sorted(raw_matches, key=int)]
        return cls(
            id=data.get("id", ""),
            created_at=int(data.get("createdAt") or 0),
            last_active=int(data.get("lastActive") or data.get("createdAt") or 0),
            host_id=data.get("hostId") or "",
            is_closed=bool(data.get("isClosed", False)),
            game_state=GameState.from_dict(data.get("gameState")),
            players={pid: Player.from_dict(p, pid) for pid, p in (data.get("players") or {}).items()},
            matches=[Match.from_dict(m) for m in raw_matches if m],
            prompts=list(data.get("prompts") or []),
            custom_library=data.get("customLibrary"),
            chat=dict(data.get("chat") or {}),
        )
