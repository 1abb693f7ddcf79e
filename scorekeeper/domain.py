"""Immutable value types for the scorekeeping session."""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple


class GameType(Enum):
    FREE_FORM = 'FREE_FORM'
    INCREMENTAL = 'INCREMENTAL'
    TEAM = 'TEAM'

    @property
    def max_players(self) -> int:
        return _RULES[self][0]

    @property
    def is_team_game(self) -> bool:
        return _RULES[self][1]

    def max_teams(self) -> int:
        return 2 if self.is_team_game else 0

    def effective_limit(self) -> int:
        # Team games cap the roster at two entries, one per team
        return self.max_teams() if self.is_team_game else self.max_players

    def can_add_player(self, current_count: int) -> bool:
        return current_count < self.effective_limit()

    def limit_message(self) -> str:
        if self.is_team_game:
            return f"Maximum {self.max_teams()} teams ({self.max_players} players total)"
        return f"Maximum {self.max_players} players"


# game type -> (max_players, is_team_game)
_RULES = {
    GameType.FREE_FORM: (4, False),
    GameType.INCREMENTAL: (4, False),
    GameType.TEAM: (4, True),
}


def new_player_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    score: int = 0
    round: int = 1

    @classmethod
    def create(cls, name: str, round: int = 1) -> 'Player':
        return cls(id=new_player_id(), name=name, score=0, round=round)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'round': self.round,
        }

    @classmethod
    def from_dict(cls, data) -> 'Player':
        return cls(
            id=str(data['id']),
            name=data['name'],
            score=int(data.get('score') or 0),
            round=int(data.get('round') or 1),
        )


@dataclass(frozen=True)
class GameSession:
    round: int = 1
    game_type: GameType = GameType.FREE_FORM
    players: Tuple[Player, ...] = ()

    def with_players(self, players) -> 'GameSession':
        # Only players of the session's round are visible through it
        return replace(self, players=tuple(p for p in players if p.round == self.round))

    def find_player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def find_player_by_name(self, name: str) -> Optional[Player]:
        for p in self.players:
            if p.name == name:
                return p
        return None

    @property
    def has_players(self) -> bool:
        return bool(self.players)

    @property
    def has_scores(self) -> bool:
        return any(p.score != 0 for p in self.players)

    def to_dict(self):
        return {
            'round': self.round,
            'game_type': self.game_type.value,
            'players': [p.to_dict() for p in self.players],
        }


@dataclass(frozen=True)
class ScoreRecord:
    player_id: str
    round: int
    score: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'round': self.round,
            'score': self.score,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class RoundRecord:
    round: int
    game_type: GameType
    timestamp: float = field(default_factory=time.time)

    def to_dict(self):
        return {
            'round': self.round,
            'game_type': self.game_type.value,
            'timestamp': self.timestamp,
        }
