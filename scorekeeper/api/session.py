from flask import Blueprint, jsonify, request
from scorekeeper import get_controller
from scorekeeper.domain import GameType, Player
from scorekeeper.errors import PersistenceError


session_api = Blueprint('session', __name__)

_ERROR_STATUS = {
    'validation': 400,
    'not_found': 404,
    'persistence': 503,
}


@session_api.errorhandler(PersistenceError)
def handle_persistence_error(error):
    return jsonify({'error': str(error)}), 503


def _respond(result, success_status=200):
    """Answer with the published snapshot; map a failed intent to a status."""
    state = get_controller().state
    status = success_status
    if result is not None and not result.ok:
        status = _ERROR_STATUS.get(state.error_kind, 400)
    return jsonify(state.to_dict()), status


def _parse_game_type(data):
    raw = (data or {}).get('game_type')
    if not raw:
        return None
    try:
        return GameType(str(raw).upper())
    except ValueError:
        return None


def _parse_int(data, key):
    try:
        return int((data or {})[key])
    except (KeyError, TypeError, ValueError):
        return None


@session_api.route('/state', methods=['GET'])
def get_state():
    return jsonify(get_controller().ensure_loaded().to_dict())


@session_api.route('/players', methods=['POST'])
def add_player():
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    if not name:
        return jsonify({'error': 'Player name is required'}), 400
    return _respond(get_controller().add_player(name), success_status=201)


@session_api.route('/players/<string:player_id>/score', methods=['POST'])
def adjust_score(player_id):
    delta = _parse_int(request.get_json(silent=True), 'delta')
    if delta is None:
        return jsonify({'error': 'Integer delta is required'}), 400
    return _respond(get_controller().adjust_score(player_id, delta))


@session_api.route('/players/<string:player_id>', methods=['PUT'])
def edit_player(player_id):
    data = request.get_json(silent=True) or {}
    name = data.get('name')
    score = _parse_int(data, 'score')
    if 'score' in data and score is None:
        return jsonify({'error': 'Score must be an integer'}), 400
    controller = get_controller()
    if name and score is not None:
        return _respond(controller.edit_player(player_id, name, score))
    if name:
        return _respond(controller.rename_player(player_id, name))
    if score is not None:
        return _respond(controller.set_score(player_id, score))
    return jsonify({'error': 'Name or score is required'}), 400


@session_api.route('/players/<string:player_id>', methods=['DELETE'])
def delete_player(player_id):
    return _respond(get_controller().delete_player(player_id))


@session_api.route('/players/restore', methods=['POST'])
def restore_player():
    data = request.get_json(silent=True) or {}
    player = None
    if data.get('id') and data.get('name'):
        try:
            player = Player.from_dict(data)
        except (TypeError, ValueError):
            return jsonify({'error': 'Invalid player payload'}), 400
    result = get_controller().restore_player(player)
    if result is None:
        return jsonify({'error': 'Nothing to restore'}), 400
    return _respond(result)


@session_api.route('/game-type', methods=['POST'])
def set_game_type():
    game_type = _parse_game_type(request.get_json(silent=True))
    if game_type is None:
        return jsonify({'error': 'Valid game_type is required'}), 400
    return _respond(get_controller().set_game_type(game_type))


@session_api.route('/game-type/confirm', methods=['POST'])
def confirm_game_type_change():
    data = request.get_json(silent=True) or {}
    game_type = _parse_game_type(data)
    if data.get('game_type') and game_type is None:
        return jsonify({'error': 'Valid game_type is required'}), 400
    result = get_controller().confirm_game_type_change(game_type)
    if result is None:
        return jsonify({'error': 'No game type change pending'}), 400
    return _respond(result)


@session_api.route('/game-type/cancel', methods=['POST'])
def cancel_game_type_change():
    get_controller().cancel_game_type_change()
    return _respond(None)


@session_api.route('/next-round', methods=['POST'])
def next_round():
    return _respond(get_controller().next_round())


@session_api.route('/next-round/confirm', methods=['POST'])
def confirm_next_round():
    return _respond(get_controller().confirm_next_round())


@session_api.route('/next-round/cancel', methods=['POST'])
def cancel_next_round():
    get_controller().cancel_next_round()
    return _respond(None)


@session_api.route('/reset', methods=['POST'])
def reset_game():
    return _respond(get_controller().reset_game())


@session_api.route('/limit-message/clear', methods=['POST'])
def clear_limit_message():
    get_controller().clear_limit_message()
    return _respond(None)


@session_api.route('/history', methods=['GET'])
def get_history():
    engine = get_controller().engine
    round_number = request.args.get('round', type=int)
    records = engine.round_scores(round_number) if round_number is not None else engine.history()
    return jsonify([r.to_dict() for r in records])


@session_api.route('/players/<string:player_id>/history', methods=['GET'])
def get_player_history(player_id):
    engine = get_controller().engine
    return jsonify({
        'player_id': player_id,
        'total': engine.total_score(player_id),
        'rounds': [r.to_dict() for r in engine.score_history(player_id)],
    })


@session_api.route('/standings', methods=['GET'])
def get_standings():
    return jsonify(get_controller().engine.standings())


@session_api.route('/rounds', methods=['GET'])
def get_rounds():
    return jsonify([r.to_dict() for r in get_controller().engine.round_log()])
