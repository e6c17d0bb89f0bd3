"""Application factory for the EventHub production portal."""

from __future__ import annotations

import os
from flask import Flask, flash, render_template, request, redirect, url_for

from eventhub.blueprints.admin import admin_bp
from eventhub.blueprints.api import api_bp
from eventhub.blueprints.auth import auth_bp
from eventhub.blueprints.client import client_bp
from eventhub.blueprints.functions import functions_bp
from eventhub.blueprints.storage import storage_bp
from eventhub.config import Config
from eventhub.extensions import (
    db,
    migrate,
    login_manager,
    csrf,
    limiter,
)
from eventhub.models import User
from eventhub.security import configure_security_headers, validate_input_length
from eventhub.services.change_feed import init_change_feed
from eventhub.services.notifications import drain_notifications, init_notifications
from eventhub.services.session import get_session_context, init_session

# Paths whose responses are not HTML pages and must not consume notifications
NON_PAGE_PREFIXES = ('/api/', '/functions/', '/storage/', '/static/')


def create_app(config_class=Config):
    """Create Flask application."""
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_object(config_class)

    # Initialize Flask extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    csrf.init_app(app)
    limiter.init_app(app)

    init_change_feed(app)
    init_notifications(app)
    init_session(app)

    configure_security_headers(app)
    validate_input_length(app)

    @login_manager.user_loader
    def load_user(user_id: str):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        return redirect(url_for('auth.login', next=request.url))

    @app.before_request
    def flash_notifications():
        if request.path.startswith(NON_PAGE_PREFIXES):
            return
        for message in drain_notifications(get_session_context().identity_id):
            flash(message, 'info')

    # Enable live reload and disable caching in development
    if os.getenv("FLASK_ENV") == "development":
        app.config["TEMPLATES_AUTO_RELOAD"] = True
        app.config["SEND_FILE_MAX_AGE_DEFAULT"] = 0
        app.jinja_env.auto_reload = True

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(client_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_bp, url_prefix='/api/v1')
    app.register_blueprint(functions_bp, url_prefix='/functions/v1')
    app.register_blueprint(storage_bp)

    @app.errorhandler(403)
    def forbidden(error):
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def not_found(error):
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        return render_template('errors/500.html'), 500

    # Register CLI commands
    from eventhub.commands import register_commands
    register_commands(app)

    return app
