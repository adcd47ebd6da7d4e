from flask import Blueprint, jsonify, request, current_app
from truth_hunters.services.leaderboard import finished_game_records, top_players, top_teams


leaderboard = Blueprint('leaderboard', __name__)


def _limit():
    default = int(current_app.config.get('LEADERBOARD_LIMIT', 10))
    try:
        limit = int(request.args.get('limit', default))
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, 100))


@leaderboard.route('/teams', methods=['GET'])
def get_top_teams():
    class_code = request.args.get('class_code')
    return jsonify(top_teams(limit=_limit(), class_code=class_code))


@leaderboard.route('/players', methods=['GET'])
def get_top_players():
    class_code = request.args.get('class_code')
    return jsonify(top_players(finished_game_records(class_code), limit=_limit()))
