import os
import logging
import traceback
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request

from database import db
from database import models
from engine.match_engine import MatchScoringEngine
from engine.standings import StandingsEngine
from routes.match_routes import register_match_routes
from routes.tournament_routes import register_tournament_routes
from utils.helpers import load_config

PROJECT_ROOT = os.path.abspath(os.path.dirname(__file__))


def _configure_logging(app, config):
    """Log to a rotating file under logs/ and to the terminal."""
    log_config = config.get("logging", {}) or {}
    log_dir = log_config.get("dir", "logs")
    if not os.path.isabs(log_dir):
        log_dir = os.path.join(PROJECT_ROOT, log_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "execution.log")
    level = getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO)

    # Clear existing handlers to avoid duplicates
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    # File handler for persistent logging
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(level)

    # Console handler for terminal visibility
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[file_handler, console_handler])

    app.logger = logging.getLogger("CricketAdmin")
    app.logger.setLevel(level)


def _database_uri(config):
    uri = os.getenv("CRICKADMIN_DB_URI") or (config.get("database", {}) or {}).get("uri")
    if not uri:
        uri = f"sqlite:///{os.path.join(PROJECT_ROOT, 'data', 'cricket_admin.db')}"
    if uri.startswith("sqlite:///") and not uri.startswith("sqlite:////") and ":memory:" not in uri:
        # Relative sqlite paths are resolved against the project root
        db_path = os.path.join(PROJECT_ROOT, uri[len("sqlite:///"):])
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        uri = f"sqlite:///{db_path}"
    return uri


# ────── App Factory ──────
def create_app():
    # --- Flask setup ---
    app = Flask(__name__)
    config = load_config()

    # --- Secret key setup ---
    secret = None
    try:
        secret = config.get("app", {}).get("secret_key", None)
        if not secret or not isinstance(secret, str):
            raise ValueError("Invalid secret_key in config")
    except Exception as e:
        print(f"[WARN] Could not read secret_key from config.yaml: {e}")

    if not secret:
        secret = os.getenv("FLASK_SECRET_KEY", None)
        if not secret:
            secret = os.urandom(24).hex()
            print("[WARN] Using random Flask SECRET_KEY—sessions won't persist across restarts")

    app.config["SECRET_KEY"] = secret
    app.json.sort_keys = False

    # --- Logging setup (logs to file + terminal) ---
    _configure_logging(app, config)

    # --- Database setup ---
    app.config["SQLALCHEMY_DATABASE_URI"] = _database_uri(config)
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    db.init_app(app)
    with app.app_context():
        db.create_all()

    # --- Request logging ---
    @app.before_request
    def log_request():
        app.logger.info(f"{request.remote_addr} {request.method} {request.path}")

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    scoring_engine = MatchScoringEngine()
    app.extensions["scoring_engine"] = scoring_engine

    register_tournament_routes(
        app,
        db=db,
        standings_engine=StandingsEngine(),
        Tournament=models.Tournament,
        Group=models.Group,
        Team=models.Team,
    )
    register_match_routes(
        app,
        db=db,
        scoring_engine=scoring_engine,
        Match=models.Match,
        Team=models.Team,
        Tournament=models.Tournament,
    )

    app.logger.info(f"[Startup] Database: {app.config['SQLALCHEMY_DATABASE_URI']}")
    return app

# ────── Run Server ──────
if __name__ == "__main__":
    try:
        app = create_app()

        HOST = "127.0.0.1"
        PORT = 5000

        print("✅ Cricket tournament admin API is up and running!")
        print(f"🌐 Access the API at: http://{HOST}:{PORT}")
        print("🔐 Press Ctrl+C to stop the server.\n")

        app.run(host=HOST, port=PORT, debug=True, use_reloader=False)

    except Exception as e:
        print("❌ Failed to start the server:")
        traceback.print_exc()
