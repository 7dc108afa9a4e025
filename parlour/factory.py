"""Application factory for the parlour service."""

import logging

import click
from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException

from . import seed
from .app_logging import setup_logger
from .auth import guard, ledger
from .routes import blueprint
from .services import catalog, datastore, identity


def create_web_app() -> Flask:
    """Initialize and configure the parlour application."""
    app = Flask('parlour')
    app.config.from_pyfile('config.py')

    if app.config.get('LOG_JSON'):
        setup_logger(app.config.get('LOGLEVEL', logging.INFO))

    datastore.init_app(app)
    ledger.init_app(app)
    guard.init_app(app)
    identity.init_app(app)
    catalog.init_app(app)

    app.register_blueprint(blueprint)
    register_error_handlers(app)

    @app.cli.command('seed')
    @click.option('--replace/--keep', default=True,
                  help='Overwrite unowned records that already exist.')
    def seed_command(replace: bool) -> None:
        """Load the initial customers and stock."""
        count = seed.populate(replace=replace)
        click.echo(f'Seeded {count} records')

    return app


def register_error_handlers(app: Flask) -> None:
    """Render every HTTP error as JSON."""
    app.register_error_handler(HTTPException, jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response
