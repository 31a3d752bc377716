import logging
import os
import secrets
from datetime import UTC
from logging.handlers import RotatingFileHandler
from pathlib import Path

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate, upgrade
from flask_wtf.csrf import CSRFProtect

from .config import config_by_name
from .models import db

# In-memory storage; counters reset on process restart. For multi-worker
# setups point RATELIMIT_STORAGE_URI at Redis.
limiter = Limiter(key_func=get_remote_address)
migrate = Migrate()
csrf = CSRFProtect()


def create_app(config_name=None):
    # Load .env so gunicorn (production) picks up env vars too
    from dotenv import load_dotenv

    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    config_cls = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_cls)
    if hasattr(config_cls, "init_app"):
        config_cls.init_app(app)

    if app.config.get("TRUST_PROXY"):
        from werkzeug.middleware.proxy_fix import ProxyFix

        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    _configure_logging(app)

    # Init extensions
    db.init_app(app)
    limiter.init_app(app)
    migrate.init_app(app, db, directory=str(Path(__file__).resolve().parent.parent / "migrations"))
    csrf.init_app(app)

    # Register blueprints
    from .posts.routes import posts_bp
    from .tags.routes import tags_bp

    app.register_blueprint(posts_bp)
    app.register_blueprint(tags_bp)

    # Register error handlers
    from .errors import register_error_handlers

    register_error_handlers(app)

    # CLI
    from .seeds import seed_command

    app.cli.add_command(seed_command)

    # Per-request CSP nonce
    @app.before_request
    def generate_csp_nonce():
        from flask import g

        g.csp_nonce = secrets.token_urlsafe(16)

    # Security headers
    @app.after_request
    def set_security_headers(response):
        from flask import g

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not app.debug:
            nonce = getattr(g, "csp_nonce", "")
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                f"script-src 'self' 'nonce-{nonce}'; "
                f"style-src 'self' 'nonce-{nonce}'; "
                "img-src 'self' data:; "
                "frame-ancestors 'self'; "
                "object-src 'none'; "
                "base-uri 'self'; "
                "form-action 'self'"
            )
        return response

    # Health check endpoints
    @app.route("/ping")
    def ping():
        from datetime import datetime

        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
        }, 200

    @app.route("/health")
    def health():
        from datetime import datetime

        result = {"timestamp": datetime.now(UTC).isoformat()}

        try:
            db.session.execute(db.text("SELECT 1"))
            result["database"] = {"status": "ok"}
        except Exception:
            app.logger.exception("Health check database probe failed.")
            result["database"] = {"status": "error", "error": "unavailable"}

        db_ok = result["database"]["status"] == "ok"
        result["status"] = "ok" if db_ok else "degraded"
        return result, 200 if db_ok else 503

    # Apply pending Alembic migrations
    with app.app_context():
        upgrade()

    return app


def _configure_logging(app):
    """Set up file-based logging with rotation for production."""
    if app.debug or app.testing:
        return

    log_dir = Path(app.root_path).parent / "logs"
    log_dir.mkdir(exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / "tagboard.log",
        maxBytes=5 * 1024 * 1024,  # 5 MB
        backupCount=5,
    )
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
