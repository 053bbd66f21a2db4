# courier/escape/models.py
# -*- coding: utf-8 -*-

from __future__ import annotations

import datetime as dt

from courier.extensions import db


class EscapeProgress(db.Model):
    __tablename__ = "escape_progress"
    __table_args__ = {"extend_existing": True}

    storage_key = db.Column(db.String(64), primary_key=True)
    blob = db.Column(db.Text, nullable=False)  # serialized progress record (JSON text)
    updated_at = db.Column(db.DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<EscapeProgress {self.storage_key} {len(self.blob or '')}b>"
