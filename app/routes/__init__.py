from flask import jsonify

from app.helpers.errors import CompError
from .competitions import competitions_bp
from .boulders import boulders_bp
from .attempts import attempts_bp
from .validation import validation_bp
from .leaderboard import leaderboard_bp
from .admin import admin_bp


def handle_comp_error(err: CompError):
    return jsonify({"ok": False, "error": err.message}), err.status_code


def register_blueprints(app):
    app.register_blueprint(competitions_bp)
    app.register_blueprint(boulders_bp)
    app.register_blueprint(attempts_bp)
    app.register_blueprint(validation_bp)
    app.register_blueprint(leaderboard_bp)
    app.register_blueprint(admin_bp)

    app.register_error_handler(CompError, handle_comp_error)
