from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Truth Hunters game server!'})


@main.route('/health')
def health():
    catalog = current_app.extensions['claims_catalog']
    return jsonify({
        'status': 'ok',
        'claims_loaded': catalog.is_loaded,
        'active_games': len(current_app.extensions['round_runtimes']),
    })
