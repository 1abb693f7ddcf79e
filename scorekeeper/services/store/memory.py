from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from scorekeeper.domain import GameSession, Player, RoundRecord, ScoreRecord
from .base import SessionStore


class MemorySessionStore(SessionStore):
    """Volatile store holding the whole session as one in-process value.

    A transaction snapshots the value on entry and restores it on rollback.
    """

    def __init__(self, lock_timeout: float = 5.0):
        super().__init__(lock_timeout=lock_timeout)
        self._session: Optional[GameSession] = None
        self._players: Dict[str, Player] = {}
        self._scores: Dict[Tuple[str, int], ScoreRecord] = {}
        self._rounds: List[RoundRecord] = []
        self._snapshot = None

    def _begin(self):
        self._snapshot = (self._session, dict(self._players), dict(self._scores), list(self._rounds))

    def _commit(self):
        self._snapshot = None

    def _rollback(self):
        if self._snapshot is not None:
            self._session, self._players, self._scores, self._rounds = self._snapshot
            self._snapshot = None

    def _load_session(self):
        return self._session

    def _save_session(self, session):
        # Players live in their own table; the session row holds round and type only
        self._session = GameSession(round=session.round, game_type=session.game_type)

    def _all_players(self):
        return list(self._players.values())

    def _get_player(self, player_id):
        return self._players.get(player_id)

    def _upsert_player(self, player):
        self._players[player.id] = player

    def _update_player(self, player_id, **changes):
        player = replace(self._players[player_id], **changes)
        self._players[player_id] = player
        return player

    def _delete_player(self, player_id):
        return self._players.pop(player_id, None) is not None

    def _delete_all_players(self):
        self._players.clear()

    def _upsert_score_record(self, record):
        self._scores[(record.player_id, record.round)] = record
        return record

    def _list_score_records(self, player_id, round):
        records = [
            r for r in self._scores.values()
            if (player_id is None or r.player_id == player_id) and (round is None or r.round == round)
        ]
        return sorted(records, key=lambda r: (r.round, r.player_id))

    def _clear_score_records(self):
        self._scores.clear()

    def _append_round_record(self, record):
        self._rounds.append(record)
        return record

    def _list_round_records(self):
        return list(self._rounds)

    def _clear_round_records(self):
        self._rounds.clear()
