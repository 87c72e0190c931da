"""
Library Management System - Flask Application
Application factory, error handlers and management commands
"""
import logging
import sqlite3

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from library_api.config.config import Config
from library_api.errors import LibraryError
from library_api.extensions import cors, jwt
from library_api.models.database import close_db, init_db
from library_api.routes import auth_bp, book_bp, borrow_bp
from library_api.utils.converters import RowIdConverter

logger = logging.getLogger(__name__)


def create_app(config_object=None, **overrides) -> Flask:
    """Build the Flask application.

    Args:
        config_object: Config class to load (default: Config).
        **overrides: Individual config keys, e.g. DATABASE_PATH for tests.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    jwt.init_app(app)
    cors.init_app(app, resources={r'/api/*': {'origins': app.config['CORS_ORIGINS']}})

    # Must be registered before the blueprints add their rules
    app.url_map.converters['id'] = RowIdConverter

    app.register_blueprint(auth_bp)
    app.register_blueprint(book_bp)
    app.register_blueprint(borrow_bp)

    register_error_handlers(app)
    register_commands(app)

    # Close database connection
    app.teardown_appcontext(close_db)

    # Initialize database
    with app.app_context():
        init_db()

    return app


# ============= Error Handlers =============

def register_error_handlers(app: Flask) -> None:

    @app.errorhandler(LibraryError)
    def library_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        """404/405 and friends as JSON"""
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(sqlite3.Error)
    def database_error(error):
        logger.exception('Database failure: %s', error)
        return jsonify({'error': 'Unexpected error'}), 500


# ============= Commands =============

def register_commands(app: Flask) -> None:

    @app.cli.command('init-db')
    def init_db_command():
        """Create the database tables."""
        init_db()
        click.echo('Initialized the database.')

    @app.cli.command('create-admin')
    @click.option('--name', 'full_name', prompt='Full name')
    @click.option('--email', prompt=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_admin_command(full_name, email, password):
        """Create an administrator account."""
        from library_api.models.admin import Admin
        try:
            admin = Admin.create_admin(full_name, email, password)
        except LibraryError as e:
            raise click.ClickException(e.message)
        click.echo(f'Created admin {admin.email} (id {admin.id}).')


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=app.config['PORT'])
