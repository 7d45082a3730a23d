from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config, room_store=None, identity_verifier=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Live room state lives on the app, not in module globals
    from pokerledger.hub import EXTENSION_KEY, RoomHub
    from pokerledger.services.identity import SignedTokenVerifier
    from pokerledger.services.rooms import Presence, RoomStore
    if room_store is None:
        room_store = RoomStore(
            code_length=flask_app.config.get('ROOM_CODE_LENGTH', 6),
            max_code_attempts=flask_app.config.get('ROOM_CODE_MAX_ATTEMPTS', 100),
        )
    if identity_verifier is None:
        identity_verifier = SignedTokenVerifier(
            flask_app.config['SECRET_KEY'],
            max_age=flask_app.config.get('IDENTITY_TOKEN_MAX_AGE_SEC', 3600),
        )
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    flask_app.extensions[EXTENSION_KEY] = RoomHub(
        store=room_store,
        presence=Presence(),
        verifier=identity_verifier,
        namespace=namespace,
        currency_symbol=flask_app.config.get('CURRENCY_SYMBOL', '₪'),
        session_ttl_sec=flask_app.config.get('SESSION_TTL_SEC', 30 * 24 * 3600),
    )

    # Import and register blueprints here
    from pokerledger.main import main
    flask_app.register_blueprint(main)

    from pokerledger.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Register Socket.IO event handlers
    from pokerledger.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    # Flask-Login: sessions are presented as bearer tokens
    from pokerledger.models import User
    from pokerledger.services.identity import purge_expired_sessions, resolve_session

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(req):
        header = req.headers.get('Authorization', '')
        if header.startswith('Bearer '):
            return resolve_session(header[len('Bearer '):].strip())
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('purge-sessions')
    def purge_sessions_command():
        """Deletes login sessions past their expiry."""
        with flask_app.app_context():
            removed = purge_expired_sessions()
            print(f'Removed {removed} expired session(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(purge_sessions_command)

    return flask_app
