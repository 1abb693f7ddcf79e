"""Session controller: the boundary the UI collaborator talks to.

Translates intents into engine calls and publishes one immutable
``ControllerState`` snapshot to subscribed observers.
"""

import functools
import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple, Union

from scorekeeper.domain import GameSession, GameType, Player
from scorekeeper.errors import (
    NotFoundError,
    PersistenceError,
    PromptPending,
    RosterLimitExceeded,
    ValidationError,
)
from .engine import EngineResult, GameEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterLimit:
    game_type: GameType
    kind = 'roster_limit'

    def to_dict(self):
        return {'kind': self.kind, 'game_type': self.game_type.value, 'message': self.game_type.limit_message()}


@dataclass(frozen=True)
class GameTypeChange:
    game_type: GameType
    kind = 'game_type_change'
    label = 'game type change'

    def to_dict(self):
        return {'kind': self.kind, 'game_type': self.game_type.value}


@dataclass(frozen=True)
class NextRoundPending:
    kind = 'next_round'
    label = 'next round'

    def to_dict(self):
        return {'kind': self.kind}


Pending = Union[RosterLimit, GameTypeChange, NextRoundPending]

# Prompts that gate a destructive intent; these may replace a roster-limit notice
_CONFIRMATIONS = (GameTypeChange, NextRoundPending)


def _error_kind(error) -> str:
    if isinstance(error, ValidationError):
        return 'validation'
    if isinstance(error, NotFoundError):
        return 'not_found'
    return 'persistence'


@dataclass(frozen=True)
class ControllerState:
    players: Tuple[Player, ...] = ()
    session: GameSession = GameSession()
    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None
    pending: Optional[Pending] = None
    recently_deleted: Optional[Player] = None

    @property
    def current_round(self) -> int:
        return self.session.round

    @property
    def current_game_type(self) -> GameType:
        return self.session.game_type

    @property
    def has_players(self) -> bool:
        return bool(self.players)

    @property
    def has_scores(self) -> bool:
        return any(p.score != 0 for p in self.players)

    @property
    def player_limit_message(self) -> Optional[GameType]:
        return self.pending.game_type if isinstance(self.pending, RosterLimit) else None

    @property
    def game_type_change(self) -> Optional[GameType]:
        return self.pending.game_type if isinstance(self.pending, GameTypeChange) else None

    @property
    def next_round_confirmation(self) -> bool:
        return isinstance(self.pending, NextRoundPending)

    def to_dict(self):
        return {
            'players': [p.to_dict() for p in self.players],
            'session': {'round': self.session.round, 'game_type': self.session.game_type.value},
            'loading': self.loading,
            'error': self.error,
            'error_kind': self.error_kind,
            'pending': self.pending.to_dict() if self.pending else None,
            'recently_deleted': self.recently_deleted.to_dict() if self.recently_deleted else None,
            'has_players': self.has_players,
            'has_scores': self.has_scores,
        }


Observer = Callable[[ControllerState], None]


def _intent(method):
    """Run the whole intent, engine call to final publish, under the intent lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._intent_lock:
            return method(self, *args, **kwargs)
    return wrapper


class SessionController:
    def __init__(self, engine: GameEngine):
        self.engine = engine
        # Guards the snapshot and observer list
        self._lock = threading.RLock()
        # Serializes intents so snapshots are published in store order
        self._intent_lock = threading.RLock()
        self._state = ControllerState()
        self._observers: List[Observer] = []
        self._last_presented: Optional[Pending] = None
        self._loaded = False

    @property
    def state(self) -> ControllerState:
        return self._state

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        with self._lock:
            self._observers.append(observer)

        def unsubscribe():
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)
        return unsubscribe

    def _publish(self, **changes) -> ControllerState:
        with self._lock:
            self._state = replace(self._state, **changes)
            state = self._state
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(state)
            except Exception:
                logger.exception("[publish] observer failed")
        return state

    def _run(self, intent: str, op: Callable[[], EngineResult], **on_success) -> EngineResult:
        self._publish(loading=True)
        try:
            result = op()
        except PersistenceError as exc:
            logger.warning(f"[intent-failed] {intent}: {exc}")
            self._publish(loading=False, error=str(exc), error_kind='persistence')
            return EngineResult(session=self._state.session, error=exc)
        if not result.ok:
            changes = {'loading': False, 'error': str(result.error), 'error_kind': _error_kind(result.error)}
            if isinstance(result.error, RosterLimitExceeded):
                prompt = RosterLimit(result.error.game_type)
                if self._blocking_prompt(prompt) is None:
                    changes['pending'] = prompt
            self._publish(**changes)
            return result
        self._loaded = True
        self._publish(
            loading=False,
            error=None,
            error_kind=None,
            session=result.session,
            players=result.session.players,
            **on_success,
        )
        return result

    # ---- prompts ----

    def _blocking_prompt(self, prompt: Pending) -> Optional[Pending]:
        """Return the open prompt that ``prompt`` may not replace, if any."""
        current = self._state.pending
        if current is None or type(current) is type(prompt):
            return None
        if isinstance(prompt, _CONFIRMATIONS) and isinstance(current, RosterLimit):
            return None
        return current

    def _raise_prompt(self, prompt: Pending, result: EngineResult) -> EngineResult:
        blocking = self._blocking_prompt(prompt)
        if blocking is not None:
            error = PromptPending(blocking.label)
            logger.info(f"[prompt] {prompt.kind} refused, {blocking.kind} still open")
            self._publish(error=str(error), error_kind='validation')
            return EngineResult(session=result.session, error=error)
        self._publish(pending=prompt)
        return result

    def _clear_prompt(self, kind) -> None:
        with self._lock:
            pending = self._state.pending
            if isinstance(pending, kind):
                pending = None
                self._last_presented = None
        self._publish(loading=False, pending=pending)

    def _dismiss(self, intent: str, kind, op: Optional[Callable[[], None]] = None) -> None:
        self._publish(loading=True)
        if op is not None:
            op()
        logger.debug(f"[{intent}] prompt dismissed")
        self._clear_prompt(kind)

    def take_prompt(self) -> Optional[Pending]:
        """Return the pending prompt if it has not been presented yet."""
        with self._lock:
            pending = self._state.pending
            if pending is None or pending == self._last_presented:
                return None
            self._last_presented = pending
            return pending

    # ---- intents ----

    @_intent
    def refresh(self) -> EngineResult:
        return self._run('refresh', lambda: EngineResult(session=self.engine.load_session()))

    @_intent
    def ensure_loaded(self) -> ControllerState:
        if not self._loaded:
            self.refresh()
        return self._state

    @_intent
    def add_player(self, name: str):
        return self._run('add_player', lambda: self.engine.add_player(name))

    @_intent
    def adjust_score(self, player_id: str, delta: int):
        return self._run('adjust_score', lambda: self.engine.adjust_score(player_id, delta))

    @_intent
    def set_score(self, player_id: str, value: int):
        return self._run('set_score', lambda: self.engine.set_score(player_id, value))

    @_intent
    def rename_player(self, player_id: str, name: str):
        return self._run('rename_player', lambda: self.engine.rename_player(player_id, name))

    @_intent
    def edit_player(self, player_id: str, name: str, score: int):
        return self._run('edit_player', lambda: self.engine.edit_player(player_id, name, score))

    @_intent
    def delete_player(self, player_id: str):
        deleted = self.ensure_loaded().session.find_player(player_id)
        return self._run(
            'delete_player',
            lambda: self.engine.delete_player(player_id),
            recently_deleted=deleted,
        )

    @_intent
    def restore_player(self, player: Optional[Player] = None):
        player = player or self._state.recently_deleted
        if player is None:
            return None
        return self._run(
            'restore_player',
            lambda: self.engine.restore_player(player),
            recently_deleted=None,
        )

    @_intent
    def set_game_type(self, game_type: GameType):
        result = self._run('set_game_type', lambda: self.engine.set_game_type(game_type))
        if not result.ok:
            return result
        if result.requires_confirmation:
            return self._raise_prompt(GameTypeChange(game_type), result)
        # Empty, scoreless roster: nothing to lose, switch directly
        return self.confirm_game_type_change(game_type)

    @_intent
    def confirm_game_type_change(self, game_type: Optional[GameType] = None):
        if game_type is None:
            game_type = self._state.game_type_change
        if game_type is None:
            return None
        result = self._run('confirm_game_type_change', lambda: self.engine.confirm_game_type_change(game_type))
        if result.ok:
            self._clear_prompt(GameTypeChange)
        return result

    @_intent
    def cancel_game_type_change(self):
        self._dismiss('cancel_game_type_change', GameTypeChange, self.engine.cancel_game_type_change)

    @_intent
    def next_round(self):
        result = self._run('next_round', self.engine.next_round)
        if not result.ok:
            return result
        if result.requires_confirmation:
            return self._raise_prompt(NextRoundPending(), result)
        return self.confirm_next_round()

    @_intent
    def confirm_next_round(self):
        result = self._run('confirm_next_round', self.engine.confirm_next_round)
        if result.ok:
            self._clear_prompt(NextRoundPending)
        return result

    @_intent
    def cancel_next_round(self):
        self._dismiss('cancel_next_round', NextRoundPending, self.engine.cancel_next_round)

    @_intent
    def reset_game(self):
        return self._run('reset_game', self.engine.reset_game, recently_deleted=None)

    @_intent
    def clear_limit_message(self):
        self._dismiss('clear_limit_message', RosterLimit)
