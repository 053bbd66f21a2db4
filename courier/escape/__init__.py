# courier/escape/__init__.py
# -*- coding: utf-8 -*-
"""
Redstone Courier Protocol - Blueprint Factory

This module exposes `create_escape_bp()` which:
- Creates the Flask blueprint for the Escape feature.
- Attaches route handlers from routes.py.

Usage (in your app factory):
    from courier.escape import create_escape_bp
    from courier.escape.core import init_escape
    init_escape(app)
    app.register_blueprint(create_escape_bp(), url_prefix="/escape")

Optionally start the one-second clock (once per process):
    from courier.escape.core import schedule_clock_tick
    schedule_clock_tick(app)
"""

from __future__ import annotations
from flask import Blueprint


def create_escape_bp() -> Blueprint:
    """Create and return the blueprint for the Escape module."""
    bp = Blueprint("escape", __name__)

    # Attach routes
    from .routes import init_routes
    init_routes(bp)

    return bp
