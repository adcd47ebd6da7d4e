from flask import Blueprint, jsonify, request, current_app
from truth_hunters.models import Game
from truth_hunters.services.claims import GAME_DIFFICULTIES, ANSWERS, ClaimsLoadError
from truth_hunters.services.moderation import validate_name, is_content_appropriate, sanitize_input
from truth_hunters.services.games import rounds
from truth_hunters.services.games.rounds import GameFlowError
from truth_hunters.services.games.scoring import InvalidInput
import time


games = Blueprint('games', __name__)

_last_controller_action: dict[str, float] = {}


def _debounced(action: str, game_code: str) -> bool:
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{action}:{game_code.upper()}"
    now = time.time() * 1000.0
    last = _last_controller_action.get(key, 0)
    if now - last < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False


def _forget_controller_actions(game_code: str) -> None:
    suffix = f":{game_code.upper()}"
    for key in [k for k in _last_controller_action if k.endswith(suffix)]:
        _last_controller_action.pop(key, None)


def _game_payload(game: Game) -> dict:
    payload = game.to_dict()
    claim = rounds.claims_by_id().get(game.current_claim_id)
    # Hide the verdict while the round is being played
    reveal = game.stage != 'playing'
    payload['current_claim'] = claim.to_dict(reveal=reveal) if claim else None
    runtime = rounds.runtimes().get(game.game_code)
    payload['runtime'] = runtime.to_dict() if runtime else None
    payload['round_duration'] = int(current_app.config.get('ROUND_DURATION_SEC', 60))
    return payload


def _parse_players(raw):
    if not isinstance(raw, list) or not raw:
        return None, 'At least one player is required'
    players = []
    for entry in raw:
        entry = entry or {}
        check = validate_name(entry.get('first_name'))
        if not check.is_valid:
            return None, check.error
        initial = (entry.get('last_initial') or '').strip()[:1]
        if not initial.isalpha():
            return None, 'Last initial must be a letter'
        players.append((check.cleaned, initial.upper()))
    return players, None


@games.route('/create', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}

    team = validate_name(data.get('team_name'))
    if not team.is_valid:
        return jsonify({'error': team.error}), 400

    players, error = _parse_players(data.get('players'))
    if error:
        return jsonify({'error': error}), 400

    difficulty = data.get('difficulty') or 'mixed'
    if difficulty not in GAME_DIFFICULTIES:
        return jsonify({'error': f"Difficulty must be one of {', '.join(GAME_DIFFICULTIES)}"}), 400

    try:
        total_rounds = int(data.get('rounds') or current_app.config.get('DEFAULT_ROUNDS', 5))
    except (TypeError, ValueError):
        return jsonify({'error': 'Rounds must be a number'}), 400
    max_rounds = int(current_app.config.get('MAX_ROUNDS', 20))
    if not 1 <= total_rounds <= max_rounds:
        return jsonify({'error': f'Rounds must be between 1 and {max_rounds}'}), 400

    class_code = data.get('class_code')
    if class_code is not None:
        if not isinstance(class_code, str) or not is_content_appropriate(class_code):
            return jsonify({'error': 'Invalid class code'}), 400
        class_code = sanitize_input(class_code, max_length=32) or None

    try:
        game = rounds.create_game(team.cleaned, players, total_rounds, difficulty, class_code)
    except ClaimsLoadError as exc:
        current_app.logger.warning(f"[game-create] claims unavailable: {exc}")
        return jsonify({'error': str(exc)}), 503

    return jsonify(_game_payload(game)), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    return jsonify(_game_payload(game))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    if _debounced('start', game_code):
        return jsonify({'message': 'debounced'}), 202
    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    try:
        rounds.start_game(game)
    except GameFlowError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(_game_payload(game))


@games.route('/<string:game_code>/answer', methods=['POST'])
def submit_answer(game_code):
    data = request.get_json(silent=True) or {}
    verdict = data.get('verdict')
    if verdict not in ANSWERS:
        return jsonify({'error': f"Verdict must be one of {', '.join(ANSWERS)}"}), 400

    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    try:
        record, claim = rounds.submit_answer(game, verdict, data.get('confidence'))
    except InvalidInput as exc:
        return jsonify({'error': str(exc)}), 400
    except GameFlowError as exc:
        return jsonify({'error': str(exc)}), 409

    payload = _game_payload(game)
    payload['round_result'] = record.to_dict()
    payload['claim'] = claim.to_dict() if claim else None
    return jsonify(payload), 201


@games.route('/<string:game_code>/visibility', methods=['POST'])
def visibility_change(game_code):
    data = request.get_json(silent=True) or {}
    hidden = data.get('hidden')
    if not isinstance(hidden, bool):
        return jsonify({'error': 'hidden must be a boolean'}), 400
    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    runtime = rounds.handle_visibility(game, hidden)
    if runtime is None:
        return jsonify({'error': 'Game has no active round'}), 409
    return jsonify(_game_payload(game))


@games.route('/<string:game_code>/advance', methods=['POST'])
def advance_round(game_code):
    if _debounced('advance', game_code):
        return jsonify({'message': 'debounced'}), 202
    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    try:
        rounds.advance_round(game)
    except GameFlowError as exc:
        return jsonify({'error': str(exc)}), 409
    return jsonify(_game_payload(game))


@games.route('/<string:game_code>/finish', methods=['POST'])
def finish_game(game_code):
    data = request.get_json(silent=True) or {}
    predicted = data.get('predicted_score')
    if isinstance(predicted, bool) or not isinstance(predicted, int):
        return jsonify({'error': 'predicted_score must be an integer'}), 400

    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    if game.status == 'finished':
        # Idempotent finish: stats were computed already
        return jsonify(_game_payload(game))
    try:
        stats, earned = rounds.finish_game(game, predicted)
    except GameFlowError as exc:
        return jsonify({'error': str(exc)}), 409

    _forget_controller_actions(game.game_code)
    payload = _game_payload(game)
    payload['stats'] = stats.to_dict()
    payload['earned_achievements'] = earned
    return jsonify(payload)


@games.route('/<string:game_code>', methods=['DELETE'])
def abandon_game(game_code):
    game = Game.query.filter_by(game_code=game_code.upper()).first_or_404()
    rounds.abandon_game(game)
    _forget_controller_actions(game_code)
    return jsonify({'message': 'Game abandoned'}), 200
