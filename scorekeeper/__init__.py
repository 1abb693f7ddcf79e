from flask import Flask, current_app, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

EXTENSION_KEY = 'scorekeeper'


def get_controller(flask_app=None):
    """Return the session controller bound to the (current) app."""
    if flask_app is None:
        flask_app = current_app
    return flask_app.extensions[EXTENSION_KEY]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Models must be imported before tables are created or migrated
    from scorekeeper import models  # noqa: F401
    from scorekeeper.services.store import build_store
    from scorekeeper.services.engine import GameEngine
    from scorekeeper.services.controller import SessionController

    store = build_store(flask_app.config)
    controller = SessionController(GameEngine(store))
    flask_app.extensions[EXTENSION_KEY] = controller

    from scorekeeper.socketio_events import broadcast_state, register_socketio_handlers
    controller.subscribe(broadcast_state)
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from scorekeeper.api.session import session_api
    flask_app.register_blueprint(session_api, url_prefix='/api/session')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Welcome to the scorekeeper server!'})

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database, leaving an empty default session."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            get_controller(flask_app).refresh()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
