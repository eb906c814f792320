from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def build_vote_service(flask_app, relay=None):
    """Wire the vote service from the app config."""
    from voteboard.services.votes import VoteService, VotifierRelay, create_stores

    cfg = flask_app.config
    ledgers, leaderboard = create_stores(cfg['STORE_BACKEND'], cfg.get('DATA_DIR'))
    if relay is None:
        relay = VotifierRelay(
            cfg['VOTIFIER_HOST'],
            cfg['VOTIFIER_PORT'],
            cfg['VOTIFIER_TOKEN'],
            timeout_ms=cfg.get('RELAY_TIMEOUT_MS', 5000),
        )
    return VoteService(
        ledgers,
        leaderboard,
        relay,
        categories=cfg['VOTE_CATEGORIES'],
        service_name=cfg['SERVER_NAME_TAG'],
        allow_dots=cfg.get('ALLOW_DOTTED_NAMES', True),
    )


def create_app(config_class=Config, relay=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Models must be imported before create_all / migrations see the metadata
    from voteboard import models  # noqa: F401

    flask_app.extensions['vote_service'] = build_vote_service(flask_app, relay=relay)

    from voteboard.routes import main
    flask_app.register_blueprint(main)

    @flask_app.errorhandler(404)
    def not_found(_err):
        return jsonify({'error': 'Page not found'}), 404

    @flask_app.errorhandler(500)
    def server_error(err):
        flask_app.logger.error(f"[http-500] {err}")
        return jsonify({'error': 'Something went wrong! Please try again later.'}), 500

    @click.command('leaderboard')
    @click.option('--limit', default=10, show_default=True, help='Number of entries to show.')
    def leaderboard_command(limit):
        """Prints the top voters."""
        with flask_app.app_context():
            service = flask_app.extensions['vote_service']
            entries = service.top_leaderboard(limit)
            if not entries:
                click.echo('No votes recorded yet.')
            for position, (username, total) in enumerate(entries, start=1):
                click.echo(f'{position:>3}. {username:<16} {total}')

    @click.command('init-db')
    def init_db_command():
        """Creates the vote tables used by the sql store backend."""
        with flask_app.app_context():
            db.create_all()
            click.echo('Vote tables created.')

    flask_app.cli.add_command(leaderboard_command)
    flask_app.cli.add_command(init_db_command)

    return flask_app
