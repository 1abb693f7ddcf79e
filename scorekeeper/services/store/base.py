import abc
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from scorekeeper.domain import GameSession, GameType, Player, RoundRecord, ScoreRecord
from scorekeeper.errors import PersistenceError

logger = logging.getLogger(__name__)


class SessionStore(abc.ABC):
    """Persistence contract for the single active game session.

    Public operations are each their own unit of work. Wrap several in
    ``transaction()`` to commit them together; readers block on the same
    writer lock, so they never see a half-applied block.

    Backends implement the underscored primitives plus ``_begin``,
    ``_commit`` and ``_rollback``.
    """

    def __init__(self, lock_timeout: float = 5.0):
        self._lock = threading.RLock()
        self._lock_timeout = lock_timeout
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator['SessionStore']:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise PersistenceError(f"Session store busy (waited {self._lock_timeout}s)")
        self._depth += 1
        outermost = self._depth == 1
        try:
            if outermost:
                self._begin()
            yield self
            if outermost:
                self._commit()
        except Exception as exc:
            if outermost:
                self._rollback()
            translated = self._translate_error(exc)
            if translated is not None:
                logger.warning(f"[store-error] {type(exc).__name__}: {exc}")
                raise translated from exc
            raise
        finally:
            self._depth -= 1
            self._lock.release()

    def _translate_error(self, exc: Exception) -> Optional[PersistenceError]:
        return None

    # ---- contract ----

    def load(self) -> Optional[GameSession]:
        with self.transaction():
            session = self._load_session()
            if session is None:
                return None
            return session.with_players(self._list_players(session.round))

    def save(self, session: GameSession) -> None:
        with self.transaction():
            self._save_session(session)

    def list_players(self, round: int) -> List[Player]:
        with self.transaction():
            return self._list_players(round)

    def get_player(self, player_id: str) -> Optional[Player]:
        with self.transaction():
            return self._get_player(player_id)

    def upsert_player(self, player: Player) -> None:
        with self.transaction():
            self._upsert_player(player)

    def delete_player(self, player_id: str) -> bool:
        with self.transaction():
            return self._delete_player(player_id)

    def delete_all_players(self) -> None:
        with self.transaction():
            self._delete_all_players()

    def add_to_player_score(self, player_id: str, delta: int) -> Optional[Player]:
        with self.transaction():
            player = self._get_player(player_id)
            if player is None:
                return None
            return self._update_player(player_id, score=player.score + delta)

    def set_player_score(self, player_id: str, value: int) -> Optional[Player]:
        with self.transaction():
            if self._get_player(player_id) is None:
                return None
            return self._update_player(player_id, score=value)

    def rename_player(self, player_id: str, name: str) -> Optional[Player]:
        with self.transaction():
            if self._get_player(player_id) is None:
                return None
            return self._update_player(player_id, name=name)

    def append_score_record(self, player_id: str, round: int, score: int) -> ScoreRecord:
        with self.transaction():
            return self._upsert_score_record(ScoreRecord(player_id=player_id, round=round, score=score))

    def list_score_records(self, player_id: Optional[str] = None, round: Optional[int] = None) -> List[ScoreRecord]:
        with self.transaction():
            return self._list_score_records(player_id, round)

    def clear_score_records(self) -> None:
        with self.transaction():
            self._clear_score_records()

    def append_round_record(self, round: int, game_type: GameType) -> RoundRecord:
        with self.transaction():
            return self._append_round_record(RoundRecord(round=round, game_type=game_type))

    def list_round_records(self) -> List[RoundRecord]:
        with self.transaction():
            return self._list_round_records()

    def clear_round_records(self) -> None:
        with self.transaction():
            self._clear_round_records()

    def reset_all_scores_for_round(self, round: int) -> None:
        with self.transaction():
            for player in self._list_players(round):
                self._update_player(player.id, score=0)

    def reset_all_scores(self) -> None:
        with self.transaction():
            for player in self._all_players():
                self._update_player(player.id, score=0)

    def advance_all_players_to_round(self, new_round: int) -> None:
        with self.transaction():
            for player in self._all_players():
                self._update_player(player.id, round=new_round)

    # ---- backend primitives ----

    @abc.abstractmethod
    def _begin(self) -> None: ...

    @abc.abstractmethod
    def _commit(self) -> None: ...

    @abc.abstractmethod
    def _rollback(self) -> None: ...

    @abc.abstractmethod
    def _load_session(self) -> Optional[GameSession]: ...

    @abc.abstractmethod
    def _save_session(self, session: GameSession) -> None: ...

    @abc.abstractmethod
    def _all_players(self) -> List[Player]: ...

    def _list_players(self, round: int) -> List[Player]:
        return [p for p in self._all_players() if p.round == round]

    @abc.abstractmethod
    def _get_player(self, player_id: str) -> Optional[Player]: ...

    @abc.abstractmethod
    def _upsert_player(self, player: Player) -> None: ...

    @abc.abstractmethod
    def _update_player(self, player_id: str, **changes) -> Player: ...

    @abc.abstractmethod
    def _delete_player(self, player_id: str) -> bool: ...

    @abc.abstractmethod
    def _delete_all_players(self) -> None: ...

    @abc.abstractmethod
    def _upsert_score_record(self, record: ScoreRecord) -> ScoreRecord: ...

    @abc.abstractmethod
    def _list_score_records(self, player_id: Optional[str], round: Optional[int]) -> List[ScoreRecord]: ...

    @abc.abstractmethod
    def _clear_score_records(self) -> None: ...

    @abc.abstractmethod
    def _append_round_record(self, record: RoundRecord) -> RoundRecord: ...

    @abc.abstractmethod
    def _list_round_records(self) -> List[RoundRecord]: ...

    @abc.abstractmethod
    def _clear_round_records(self) -> None: ...
