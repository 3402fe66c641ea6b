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

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from promptwars.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Handlers bind to the initialized socketio instance
    from promptwars.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    @click.option('--seed/--no-seed', default=True, help='Create a demo game with two teams.')
    def db_reset_command(seed):
        """Drops, recreates, and optionally seeds the database."""
        from promptwars.store import GameStore
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            if seed:
                store = GameStore()
                game = store.create()
                for name in ('The Innovators', 'Prompt Pirates'):
                    store.add_team(game, name)
                click.echo(f'Demo game: {game.game_code}')
            click.echo('Database has been reset!')

    @click.command('export-round')
    @click.argument('game_code')
    def export_round_command(game_code):
        """Print the current round of a game as CSV."""
        from promptwars.store import GameStore
        from promptwars.services.games.export import export_game_round
        with flask_app.app_context():
            game = GameStore().get(game_code)
            if not game:
                raise click.ClickException(f'Game {game_code} not found')
            click.echo(export_game_round(GameStore(), game), nl=False)

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(export_round_command)

    return flask_app
