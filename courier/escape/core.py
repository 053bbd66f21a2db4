# courier/escape/core.py
# -*- coding: utf-8 -*-
"""
Escape wiring: builds one EscapeEngine per Flask app and drives its clock.

    init_escape(app)             -> engine stored in app.extensions["escape_engine"]
    get_engine()                 -> engine for current_app
    schedule_clock_tick(app)     -> APScheduler job calling engine.tick() every second
"""

from __future__ import annotations

import logging
from typing import Optional

import pytz
from flask import Flask, current_app

from .clock import Clock
from .engine import EscapeEngine
from .settings import EscapeSettings
from .storage import DatabaseStorage, ProgressStore

logger = logging.getLogger(__name__)

ENGINE_KEY = "escape_engine"
TICK_SECONDS = 1


def init_escape(app: Flask, clock: Optional[Clock] = None, backend=None) -> EscapeEngine:
    settings = EscapeSettings.from_mapping(app.config)
    store = ProgressStore(backend or DatabaseStorage(), key=settings.storage_key)
    with app.app_context():
        engine = EscapeEngine(settings, store, clock=clock)
    app.extensions[ENGINE_KEY] = engine
    app.logger.info(
        "[escape] engine ready (deadline %s, phase %s)",
        settings.deadline.astimezone(settings.tz).isoformat(),
        engine.record.current_phase,
    )
    return engine


def get_engine() -> EscapeEngine:
    engine = current_app.extensions.get(ENGINE_KEY)
    if engine is None:
        raise RuntimeError("escape engine not initialised; call init_escape(app) first")
    return engine


# ───────────────────────── Scheduler ─────────────────────────

_scheduler_started = False


def schedule_clock_tick(app: Flask) -> None:
    global _scheduler_started
    if _scheduler_started:
        app.logger.info("[escape] clock already started; skipping.")
        return
    _scheduler_started = True

    from apscheduler.schedulers.background import BackgroundScheduler

    engine = app.extensions[ENGINE_KEY]
    scheduler = BackgroundScheduler(timezone=pytz.timezone(engine.settings.timezone))

    def job():
        with app.app_context():
            try:
                engine.tick()
            except Exception as e:
                app.logger.error(f"[escape] clock tick failed: {e}")

    scheduler.add_job(job, "interval", seconds=TICK_SECONDS, id="escape_clock_tick", replace_existing=True)
    scheduler.start()
    app.logger.info("[escape] clock started (every %ss).", TICK_SECONDS)
