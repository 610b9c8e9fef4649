from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf import CSRFProtect
from flask_babel import Babel
from sqlalchemy import event
from sqlalchemy.engine import Engine
from .config import Config

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
babel = Babel()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection
    module = type(dbapi_connection).__module__
    if module.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_locale():
    from flask import current_app, has_request_context, request, session

    # jobs run with an app context only and fall back to the default locale
    if not has_request_context():
        return None
    languages = current_app.config.get("LANGUAGES", ["en"])
    if session.get("lang") in languages:
        return session.get("lang")
    return request.accept_languages.best_match(languages)


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(config or Config)

    # Configure logging
    import logging
    app.logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter('[%(asctime)s] %(levelname)s in %(module)s: %(message)s')
    handler.setFormatter(formatter)
    app.logger.addHandler(handler)

    # If using a file-based SQLite URI, ensure the parent directory exists so the DB file can be created.
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if db_uri and db_uri.startswith("sqlite:") and "///" in db_uri and ":memory:" not in db_uri:
        from pathlib import Path
        parent = Path(db_uri.split("///", 1)[1]).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            app.logger.warning("Could not create SQLite directory %s", parent)

    db.init_app(app)
    import os
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(__file__), "..", "migrations"))
    login_manager.init_app(app)
    from .models import User

    @login_manager.user_loader
    def load_user(user_id: str):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "authentication required"}), 401

    csrf.init_app(app)
    babel.init_app(app, locale_selector=get_locale)

    @app.after_request
    def set_security_headers(response):
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    # readiness/liveness probe
    @app.route("/health", methods=["GET"])
    def health_check():
        return ("OK", 200)

    from .errors import register_error_handlers
    from .auth.routes import auth_bp
    from .organizations.routes import org_bp
    from .batches.routes import batches_bp
    from .records.routes import records_bp

    register_error_handlers(app)

    # JSON API authenticates with the session cookie; forms are submitted as JSON bodies
    for bp in (auth_bp, org_bp, batches_bp, records_bp):
        csrf.exempt(bp)
        app.register_blueprint(bp, url_prefix="/api/v1")

    from .cli import scheduler_cli, jobs_cli

    app.cli.add_command(scheduler_cli)
    app.cli.add_command(jobs_cli)

    return app
