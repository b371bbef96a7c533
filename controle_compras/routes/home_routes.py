import platform
import time

from flask import Blueprint, current_app, jsonify, render_template

from controle_compras.errors import utc_timestamp


home_bp = Blueprint("home", __name__)

_STARTED_AT = time.monotonic()


@home_bp.route("/")
def home():
    return render_template("index.html")


@home_bp.route("/info")
def info():
    return jsonify(
        {
            "name": current_app.config.get("APP_NAME"),
            "version": current_app.config.get("APP_VERSION"),
            "environment": current_app.config.get("ENV"),
            "python_version": platform.python_version(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "timestamp": utc_timestamp(),
        }
    )
