"""
Kuppi Hub Platform - Application Factory
Faculty hierarchy editing + kuppi submission API

Run with:  flask --app app run   (or: python app.py)
Create tables and seed the hierarchy:  flask --app app init-db
"""
import os
import json
import logging
import click
from flask import Flask, jsonify
from flask_cors import CORS
from config import config_dict
from models import db, init_hierarchy
from auth import login_manager, StatelessSessionInterface
from api import api_bp, limiter

logger = logging.getLogger('KuppiHub')

# ==================== STRUCTURED LOGGING ====================

def setup_logging(app):
    """Configure structured logging for the application"""
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format=app.config['LOG_FORMAT'],
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logging.getLogger().setLevel(app.config['LOG_LEVEL'])
    return logger

# ==================== ERROR HANDLERS ====================

def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'error': f'Rate limit exceeded: {error.description}'}), 429

    @app.errorhandler(500)
    def internal_error(_error):
        db.session.rollback()
        return jsonify({'error': 'An unexpected error occurred'}), 500

# ==================== CLI ====================

def register_commands(app):
    @app.cli.command('init-db')
    @click.option('--seed', type=click.Path(exists=True, dir_okay=False),
                  help='JSON file holding the initial hierarchy document.')
    def init_db(seed):
        """Create tables and make sure a hierarchy document exists"""
        data = None
        if seed:
            with open(seed, encoding='utf-8') as f:
                data = json.load(f)
        db.create_all()
        document = init_hierarchy(db, data)
        click.echo(f'Database ready, hierarchy document id {document.id} at revision {document.revision}')

# ==================== APPLICATION FACTORY ====================

def create_app(config_name=None):
    config_name = config_name or os.environ.get('FLASK_CONFIG', 'default')

    app = Flask(__name__)
    app.config.from_object(config_dict[config_name])
    app.session_interface = StatelessSessionInterface()

    setup_logging(app)

    db.init_app(app)
    CORS(app, origins=app.config['CORS_ORIGINS'])
    limiter.init_app(app)
    login_manager.init_app(app)

    app.register_blueprint(api_bp, url_prefix='/api')

    register_error_handlers(app)
    register_commands(app)

    logger.info(f"Kuppi Hub started with '{config_name}' configuration")
    return app


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
        init_hierarchy(db)
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
