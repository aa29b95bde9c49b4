from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Ensure models are imported so the tables exist before rooms load state
    from studyroom import models  # noqa: F401
    if flask_app.config.get('ROOM_PERSISTENCE') == 'database':
        with flask_app.app_context():
            db.create_all()

    from studyroom.services.rooms import build_registry
    flask_app.extensions['room_registry'] = build_registry(flask_app)

    # Import and register blueprints here
    from studyroom.main import main
    flask_app.register_blueprint(main)

    from studyroom.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    from studyroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    @click.command('rooms-reset')
    def rooms_reset_command():
        """Drops all persisted room timers and scores."""
        from studyroom.models import RoomTimer, RoomScore
        with flask_app.app_context():
            RoomScore.query.delete()
            RoomTimer.query.delete()
            db.session.commit()
            print('Persisted room state has been cleared!')

    flask_app.cli.add_command(rooms_reset_command)

    return flask_app
