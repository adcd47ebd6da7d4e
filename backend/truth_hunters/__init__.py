from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    init_game_services(flask_app)

    # Import and register blueprints here
    from truth_hunters.main import main
    flask_app.register_blueprint(main)

    from truth_hunters.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from truth_hunters.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    from truth_hunters.api.claims import claims
    flask_app.register_blueprint(claims, url_prefix='/api/claims')

    from truth_hunters.api.saved import saved
    flask_app.register_blueprint(saved, url_prefix='/api/saved')

    from truth_hunters.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @flask_app.errorhandler(404)
    def not_found(_exc):
        return jsonify({'error': 'Not found'}), 404

    return flask_app


def init_game_services(flask_app):
    """Attach the app-owned claims cache, per-game runtimes and leaderboard feed."""
    import threading
    from truth_hunters.services.claims import ClaimsCatalog
    from truth_hunters.services.leaderboard import LeaderboardFeed
    from truth_hunters.services.persistence import GameStateStore
    from truth_hunters.services.games.scheduler import ManualScheduler, SocketIOScheduler
    from truth_hunters.services.games.runtime import RuntimeRegistry
    from truth_hunters.services.games import rounds

    lock = threading.RLock()
    if flask_app.config.get('TESTING'):
        # Tests drive time explicitly through scheduler.advance()
        scheduler = ManualScheduler()
    else:
        scheduler = SocketIOScheduler(socketio, lock=lock)

    feed = LeaderboardFeed()
    flask_app.extensions['scheduler'] = scheduler
    flask_app.extensions['claims_catalog'] = ClaimsCatalog(flask_app.config.get('CLAIMS_PATH'))
    flask_app.extensions['leaderboard_feed'] = feed
    flask_app.extensions['game_state_store'] = GameStateStore(
        max_age_hours=flask_app.config.get('SAVED_GAME_MAX_AGE_HOURS', 24)
    )
    flask_app.extensions['round_runtimes'] = RuntimeRegistry(
        flask_app,
        scheduler,
        on_timeout=rounds.close_round_timeout,
        on_forfeit=rounds.close_round_forfeit,
        on_tab_switch=rounds.notify_tab_switch,
        lock=lock,
    )

    def _push_leaderboard(summary):
        socketio.emit('leaderboard_update', summary, to='leaderboard', namespace='/ws')

    feed.subscribe(_push_leaderboard)
