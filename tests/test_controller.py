import threading
import time

from conftest import failing_store
from scorekeeper.domain import GameType
from scorekeeper.services.controller import (
    GameTypeChange,
    NextRoundPending,
    RosterLimit,
    SessionController,
)
from scorekeeper.services.engine import GameEngine
from scorekeeper.services.store import MemorySessionStore


def _ids(controller):
    return {p.name: p.id for p in controller.state.players}


def test_every_intent_publishes_loading_then_result(controller):
    seen = []
    controller.subscribe(seen.append)
    controller.add_player('Ann')
    assert seen[0].loading is True
    assert seen[-1].loading is False
    assert [p.name for p in seen[-1].players] == ['Ann']
    assert seen[-1].error is None


def test_unsubscribe_stops_notifications(controller):
    seen = []
    unsubscribe = controller.subscribe(seen.append)
    unsubscribe()
    controller.refresh()
    assert seen == []


def test_failing_observer_does_not_break_intent(controller):
    def broken(state):
        raise RuntimeError('socket gone')

    controller.subscribe(broken)
    controller.add_player('Ann')
    assert len(controller.state.players) == 1


def test_roster_limit_raises_prompt_and_keeps_roster(controller):
    controller.set_game_type(GameType.TEAM)
    controller.add_player('Reds')
    controller.add_player('Blues')
    before = controller.state.players
    result = controller.add_player('Greens')
    state = controller.state
    assert not result.ok
    assert state.error_kind == 'validation'
    assert state.error == 'Maximum 2 teams (4 players total)'
    assert state.pending == RosterLimit(GameType.TEAM)
    assert state.player_limit_message is GameType.TEAM
    assert state.players == before


def test_prompt_is_presented_once(controller):
    for name in 'ABCD':
        controller.add_player(name)
    controller.add_player('E')
    assert controller.take_prompt() == RosterLimit(GameType.FREE_FORM)
    assert controller.take_prompt() is None
    # Same failure again while the prompt is still open: not re-presented
    controller.add_player('F')
    assert controller.take_prompt() is None
    controller.clear_limit_message()
    assert controller.state.pending is None
    controller.add_player('G')
    assert controller.take_prompt() == RosterLimit(GameType.FREE_FORM)


def test_prompt_survives_unrelated_intents(controller):
    controller.add_player('A')
    controller.next_round()
    controller.adjust_score(_ids(controller)['A'], 3)
    controller.next_round()
    assert controller.state.next_round_confirmation
    controller.add_player('B')
    controller.refresh()
    assert controller.state.pending == NextRoundPending()


def test_other_prompt_is_not_displaced_by_roster_limit(controller):
    for name in 'ABCD':
        controller.add_player(name)
    controller.set_game_type(GameType.TEAM)
    controller.add_player('E')
    assert controller.state.pending == GameTypeChange(GameType.TEAM)
    assert controller.state.error_kind == 'validation'


def test_game_type_switches_directly_when_roster_is_empty(controller):
    controller.set_game_type(GameType.INCREMENTAL)
    assert controller.state.pending is None
    assert controller.state.current_game_type is GameType.INCREMENTAL


def test_game_type_change_is_confirm_gated(controller):
    controller.add_player('A')
    controller.adjust_score(_ids(controller)['A'], 4)
    controller.set_game_type(GameType.TEAM)
    assert controller.state.game_type_change is GameType.TEAM
    assert controller.state.current_game_type is GameType.FREE_FORM
    assert len(controller.state.players) == 1

    controller.confirm_game_type_change()
    state = controller.state
    assert state.pending is None
    assert state.current_game_type is GameType.TEAM
    assert state.current_round == 1
    assert state.players == ()


def test_cancel_game_type_change_keeps_game(controller):
    controller.add_player('A')
    controller.set_game_type(GameType.TEAM)
    controller.cancel_game_type_change()
    assert controller.state.pending is None
    assert controller.state.current_game_type is GameType.FREE_FORM
    assert len(controller.state.players) == 1
    assert controller.confirm_game_type_change() is None


def test_next_round_is_confirm_gated_on_scores(controller):
    controller.add_player('A')
    controller.next_round()
    assert controller.state.current_round == 2

    controller.adjust_score(_ids(controller)['A'], 5)
    controller.next_round()
    assert controller.state.pending == NextRoundPending()
    assert controller.state.current_round == 2
    controller.cancel_next_round()
    assert controller.state.pending is None
    assert controller.state.players[0].score == 5

    controller.next_round()
    controller.confirm_next_round()
    state = controller.state
    assert state.pending is None
    assert state.current_round == 3
    assert state.players[0].score == 0
    assert not state.has_scores


def test_delete_then_restore_recently_deleted(controller):
    controller.add_player('A')
    controller.add_player('B')
    b = _ids(controller)['B']
    controller.set_score(b, 7)
    controller.delete_player(b)
    assert controller.state.recently_deleted.id == b
    assert [p.name for p in controller.state.players] == ['A']

    controller.restore_player()
    state = controller.state
    assert state.recently_deleted is None
    assert [(p.id, p.score) for p in state.players if p.name == 'B'] == [(b, 7)]
    assert controller.restore_player() is None


def test_edit_and_rename(controller):
    controller.add_player('A')
    pid = _ids(controller)['A']
    controller.edit_player(pid, 'Ann', 9)
    controller.rename_player(pid, 'Annie')
    assert [(p.name, p.score) for p in controller.state.players] == [('Annie', 9)]


def test_not_found_is_reported(controller):
    controller.add_player('A')
    before = controller.state.players
    result = controller.adjust_score('ghost', 1)
    assert not result.ok
    assert controller.state.error_kind == 'not_found'
    assert 'ghost' in controller.state.error
    assert controller.state.players == before
    controller.adjust_score(before[0].id, 1)
    assert controller.state.error is None


def test_persistence_failure_keeps_prior_state():
    store = failing_store(MemorySessionStore, fail_on='insert')()
    controller = SessionController(GameEngine(store))
    controller.refresh()
    before = controller.state
    result = controller.add_player('A')
    state = controller.state
    assert not result.ok
    assert state.error_kind == 'persistence'
    assert state.error == 'disk unplugged'
    assert state.loading is False
    assert state.players == before.players
    assert state.session == before.session


def test_reset_keeps_game_type(controller):
    controller.set_game_type(GameType.INCREMENTAL)
    controller.add_player('A')
    controller.reset_game()
    state = controller.state
    assert state.current_game_type is GameType.INCREMENTAL
    assert state.players == ()
    assert state.current_round == 1


def test_snapshot_serializes(controller):
    controller.add_player('A')
    controller.add_player('B')
    data = controller.state.to_dict()
    assert data['session'] == {'round': 1, 'game_type': 'FREE_FORM'}
    assert [p['name'] for p in data['players']] == ['A', 'B']
    assert data['pending'] is None
    assert data['loading'] is False


def test_dismiss_intents_publish_loading_then_result(controller):
    controller.add_player('A')
    controller.adjust_score(_ids(controller)['A'], 2)
    steps = [
        (lambda: controller.set_game_type(GameType.TEAM), controller.cancel_game_type_change),
        (controller.next_round, controller.cancel_next_round),
    ]
    for open_prompt, dismiss in steps:
        open_prompt()
        seen = []
        unsubscribe = controller.subscribe(seen.append)
        dismiss()
        unsubscribe()
        assert [s.loading for s in seen] == [True, False]
        assert seen[-1].pending is None

    for name in 'BCDE':
        controller.add_player(name)
    assert controller.state.player_limit_message is GameType.FREE_FORM
    seen = []
    controller.subscribe(seen.append)
    controller.clear_limit_message()
    assert [s.loading for s in seen] == [True, False]
    assert seen[-1].pending is None


def test_confirmation_replaces_roster_limit_notice(controller):
    for name in 'ABCDE':
        controller.add_player(name)
    assert controller.take_prompt() == RosterLimit(GameType.FREE_FORM)
    controller.adjust_score(_ids(controller)['A'], 5)

    result = controller.next_round()
    assert result.ok
    assert controller.state.pending == NextRoundPending()
    assert controller.take_prompt() == NextRoundPending()
    controller.confirm_next_round()
    assert controller.state.current_round == 2


def test_game_type_change_replaces_roster_limit_notice(controller):
    for name in 'ABCDE':
        controller.add_player(name)
    controller.set_game_type(GameType.TEAM)
    assert controller.state.pending == GameTypeChange(GameType.TEAM)

    result = controller.confirm_game_type_change()
    assert result.ok
    assert controller.state.current_game_type is GameType.TEAM
    assert controller.state.players == ()


def test_open_confirmation_refuses_another(controller):
    controller.add_player('A')
    controller.adjust_score(_ids(controller)['A'], 5)
    controller.next_round()

    result = controller.set_game_type(GameType.TEAM)
    state = controller.state
    assert not result.ok
    assert state.error_kind == 'validation'
    assert 'next round' in state.error
    assert state.pending == NextRoundPending()
    assert state.current_game_type is GameType.FREE_FORM

    controller.cancel_next_round()
    result = controller.set_game_type(GameType.TEAM)
    assert result.ok
    assert controller.state.pending == GameTypeChange(GameType.TEAM)
    assert controller.state.error is None


def test_concurrent_intents_publish_in_store_order(controller, monkeypatch):
    engine = controller.engine
    original_add = engine.add_player

    def slow_add(name):
        result = original_add(name)
        if name == 'A':
            # Committed, but not yet published
            time.sleep(0.3)
        return result

    monkeypatch.setattr(engine, 'add_player', slow_add)
    worker = threading.Thread(target=controller.add_player, args=('A',))
    worker.start()
    time.sleep(0.1)
    controller.add_player('B')
    worker.join()

    stored = engine.load_session().players
    assert [p.name for p in controller.state.players] == ['A', 'B']
    assert controller.state.players == stored
