from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from truth_hunters import socketio
from truth_hunters.models import Game
from truth_hunters.services.games import rounds
from truth_hunters.services.leaderboard import top_teams
from typing import Dict, Any


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*_args):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    current_app.logger.info(f"[ws-disconnect] game={ctx.get('game_code')}")


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = f"game:{game_code.upper()}"
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'game_code': game_code.upper()}
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = f"game:{game_code.upper()}"
    leave_room(room)
    _sid_to_ctx.pop(_get_sid(), None)
    emit('left', {'room': room})


def handle_visibility_change(data):
    data = data or {}
    game_code = data.get('game_code') or (_sid_to_ctx.get(_get_sid()) or {}).get('game_code')
    hidden = data.get('hidden')
    if not game_code or not isinstance(hidden, bool):
        emit('error', {'message': 'game_code and boolean hidden are required'})
        return
    game = Game.query.filter_by(game_code=game_code.upper()).first()
    if not game:
        emit('error', {'message': 'Game not found'})
        return
    runtime = rounds.handle_visibility(game, hidden)
    if runtime is not None:
        emit('integrity_update', runtime)


def handle_subscribe_leaderboard(data=None):
    class_code = (data or {}).get('class_code')
    join_room('leaderboard')
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 10))
    emit('leaderboard_snapshot', {'teams': top_teams(limit=limit, class_code=class_code)})


def handle_unsubscribe_leaderboard(data=None):
    leave_room('leaderboard')
    emit('left', {'room': 'leaderboard'})


def handle_ping(data):
    emit('pong', data or {})


_HANDLERS = (
    ('connect', handle_connect),
    ('disconnect', handle_disconnect),
    ('join_game', handle_join_game),
    ('leave_game', handle_leave_game),
    ('visibility_change', handle_visibility_change),
    ('subscribe_leaderboard', handle_subscribe_leaderboard),
    ('unsubscribe_leaderboard', handle_unsubscribe_leaderboard),
    ('ping', handle_ping),
)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for event, handler in _HANDLERS:
        socketio.on_event(event, handler, namespace='/ws')

    if testing:
        for event, handler in _HANDLERS:
            socketio.on_event(event, handler, namespace='/')
