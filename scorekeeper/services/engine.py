"""Game engine: validates intents against the active session and applies
them through the session store.

Validation and not-found failures come back inside ``EngineResult.error``;
``PersistenceError`` from the store propagates to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from scorekeeper.domain import GameSession, GameType, Player, RoundRecord, ScoreRecord
from scorekeeper.errors import PlayerNotFound, RosterLimitExceeded, ScorekeeperError
from .store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineResult:
    session: GameSession
    error: Optional[ScorekeeperError] = None
    # For intent-only operations: whether the caller must confirm first
    requires_confirmation: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class GameEngine:
    def __init__(self, store: SessionStore):
        self.store = store

    # ---- session ----

    def load_session(self) -> GameSession:
        """Return the active session, persisting the default one if missing."""
        with self.store.transaction():
            return self._ensure_session()

    def _ensure_session(self) -> GameSession:
        session = self.store.load()
        if session is None:
            session = GameSession()
            self.store.save(session)
            logger.info(f"[session-init] created default session type={session.game_type.value}")
        return session

    def _result(self, error=None, requires_confirmation=False) -> EngineResult:
        return EngineResult(
            session=self.store.load(),
            error=error,
            requires_confirmation=requires_confirmation,
        )

    # ---- roster ----

    def add_player(self, name: str) -> EngineResult:
        with self.store.transaction():
            session = self._ensure_session()
            if not session.game_type.can_add_player(len(session.players)):
                logger.info(f"[add_player] rejected name={name!r} type={session.game_type.value} count={len(session.players)}")
                return self._result(RosterLimitExceeded(session.game_type))
            player = Player.create(name, round=session.round)
            self.store.upsert_player(player)
            logger.info(f"[add_player] id={player.id} name={name!r} round={session.round}")
            return self._result()

    def rename_player(self, player_id: str, name: str) -> EngineResult:
        with self.store.transaction():
            self._ensure_session()
            if self.store.rename_player(player_id, name) is None:
                return self._result(PlayerNotFound(player_id))
            return self._result()

    def edit_player(self, player_id: str, name: str, score: int) -> EngineResult:
        with self.store.transaction():
            session = self._ensure_session()
            if self.store.get_player(player_id) is None:
                return self._result(PlayerNotFound(player_id))
            self.store.rename_player(player_id, name)
            self.store.set_player_score(player_id, score)
            self.store.append_score_record(player_id, session.round, score)
            return self._result()

    def delete_player(self, player_id: str) -> EngineResult:
        with self.store.transaction():
            self._ensure_session()
            if not self.store.delete_player(player_id):
                return self._result(PlayerNotFound(player_id))
            logger.info(f"[delete_player] id={player_id}")
            return self._result()

    def restore_player(self, player: Player) -> EngineResult:
        """Undo a delete.

        If the roster already holds a player with the same name, that
        player's score is overwritten instead of inserting a duplicate.
        """
        with self.store.transaction():
            session = self._ensure_session()
            existing = session.find_player_by_name(player.name)
            if existing is not None:
                self.store.set_player_score(existing.id, player.score)
                self.store.append_score_record(existing.id, session.round, player.score)
                logger.info(f"[restore_player] merged into id={existing.id} score={player.score}")
                return self._result()
            if session.find_player(player.id) is None and not session.game_type.can_add_player(len(session.players)):
                return self._result(RosterLimitExceeded(session.game_type))
            self.store.upsert_player(Player(id=player.id, name=player.name, score=player.score, round=session.round))
            if player.score != 0:
                self.store.append_score_record(player.id, session.round, player.score)
            logger.info(f"[restore_player] id={player.id} score={player.score}")
            return self._result()

    # ---- scoring ----

    def adjust_score(self, player_id: str, delta: int) -> EngineResult:
        with self.store.transaction():
            session = self._ensure_session()
            updated = self.store.add_to_player_score(player_id, delta)
            if updated is None:
                return self._result(PlayerNotFound(player_id))
            # Per-round upsert: the record always holds the round's running total
            self.store.append_score_record(player_id, session.round, updated.score)
            return self._result()

    def set_score(self, player_id: str, value: int) -> EngineResult:
        with self.store.transaction():
            session = self._ensure_session()
            if self.store.set_player_score(player_id, value) is None:
                return self._result(PlayerNotFound(player_id))
            self.store.append_score_record(player_id, session.round, value)
            return self._result()

    # ---- game type ----

    def set_game_type(self, game_type: GameType) -> EngineResult:
        """Register the intent only; the switch happens on confirmation."""
        session = self.load_session()
        requires_confirmation = session.has_players or session.has_scores
        logger.debug(f"[game_type-intent] {session.game_type.value} -> {game_type.value} confirm={requires_confirmation}")
        return EngineResult(session=session, requires_confirmation=requires_confirmation)

    def confirm_game_type_change(self, game_type: GameType) -> EngineResult:
        with self.store.transaction():
            previous = self._ensure_session()
            self.store.delete_all_players()
            self.store.save(GameSession(round=1, game_type=game_type))
            logger.info(f"[game_type] {previous.game_type.value} -> {game_type.value}, roster cleared")
            return self._result()

    def cancel_game_type_change(self) -> None:
        """Nothing was applied at intent time, so there is nothing to undo."""

    # ---- rounds ----

    def next_round(self) -> EngineResult:
        session = self.load_session()
        return EngineResult(session=session, requires_confirmation=session.has_scores)

    def confirm_next_round(self) -> EngineResult:
        with self.store.transaction():
            session = self._ensure_session()
            current = session.round
            new_round = current + 1
            archived = 0
            for player in session.players:
                # Negative totals are already on record from the per-round upserts
                if player.score > 0:
                    self.store.append_score_record(player.id, current, player.score)
                    archived += 1
            self.store.append_round_record(current, session.game_type)
            self.store.save(GameSession(round=new_round, game_type=session.game_type))
            self.store.reset_all_scores()
            self.store.advance_all_players_to_round(new_round)
            logger.info(f"[next_round] round {current} -> {new_round} archived={archived}")
            return self._result()

    def cancel_next_round(self) -> None:
        pass

    def reset_game(self) -> EngineResult:
        with self.store.transaction():
            session = self._ensure_session()
            self.store.reset_all_scores_for_round(session.round)
            self.store.delete_all_players()
            self.store.clear_score_records()
            self.store.clear_round_records()
            self.store.save(GameSession(round=1, game_type=session.game_type))
            logger.info(f"[reset] game reset, type={session.game_type.value} kept")
            return self._result()

    # ---- history ----

    def score_history(self, player_id: str) -> List[ScoreRecord]:
        """Player's per-round records, newest round first."""
        records = self.store.list_score_records(player_id=player_id)
        return sorted(records, key=lambda r: r.round, reverse=True)

    def history(self) -> List[ScoreRecord]:
        return self.store.list_score_records()

    def round_scores(self, round: int) -> List[ScoreRecord]:
        return self.store.list_score_records(round=round)

    def total_score(self, player_id: str) -> int:
        return sum(r.score for r in self.store.list_score_records(player_id=player_id))

    def standings(self) -> List[Dict]:
        """Cumulative totals for the current roster, highest first.

        Closed rounds come from history; the open round uses the live score.
        """
        with self.store.transaction():
            session = self._ensure_session()
            records = self.store.list_score_records()
        closed = {}
        for record in records:
            if record.round != session.round:
                closed[record.player_id] = closed.get(record.player_id, 0) + record.score
        rows = [
            {
                'player_id': player.id,
                'name': player.name,
                'round_score': player.score,
                'total': closed.get(player.id, 0) + player.score,
            }
            for player in session.players
        ]
        return sorted(rows, key=lambda r: r['total'], reverse=True)

    def round_log(self) -> List[RoundRecord]:
        return self.store.list_round_records()
