import logging

from flask import Flask, jsonify

from config import config
from courier.extensions import db


def create_app(config_name='default', clock=None, backend=None):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO)

    # Extensions
    db.init_app(app)

    from courier.escape import models  # noqa: F401  (register tables)
    with app.app_context():
        try:
            db.create_all()
        except Exception as exc:
            app.logger.warning("[escape] create_all skipped: %s", exc)

    # Blueprints
    from courier.escape import create_escape_bp
    from courier.escape.core import init_escape, schedule_clock_tick

    init_escape(app, clock=clock, backend=backend)
    app.register_blueprint(create_escape_bp(), url_prefix="/escape")

    @app.route("/healthz")
    def healthz():
        return jsonify({"ok": True})

    # ---- Start background work AFTER app is created ----
    if app.config.get("ESCAPE_CLOCK_TICK"):
        schedule_clock_tick(app)

    return app
