from flask import Blueprint, jsonify, request, current_app


saved = Blueprint('saved', __name__)


def _store():
    return current_app.extensions['game_state_store']


@saved.route('/<string:key>', methods=['GET'])
def load_state(key):
    state = _store().load(key)
    if state is None:
        return jsonify({'error': 'No saved game'}), 404
    return jsonify(state)


@saved.route('/<string:key>/summary', methods=['GET'])
def state_summary(key):
    summary = _store().summary(key)
    if summary is None:
        return jsonify({'error': 'No saved game'}), 404
    return jsonify(summary)


@saved.route('/<string:key>', methods=['PUT'])
def save_state(key):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'State must be a JSON object'}), 400
    if not _store().save(key, data):
        return jsonify({'success': False}), 500
    return jsonify({'success': True})


@saved.route('/<string:key>', methods=['DELETE'])
def clear_state(key):
    _store().clear(key)
    return jsonify({'success': True})
