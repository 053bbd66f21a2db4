# courier/escape/storage.py
# -*- coding: utf-8 -*-
"""
Persisted Progress Store.

Backends expose a localStorage-shaped API (get_item / set_item /
remove_item over text blobs) and are allowed to raise. ProgressStore wraps
one backend and never lets a storage problem escape:

- load():  missing blob -> defaults; unparseable blob -> discarded, defaults
- save():  any failure is logged and reported as False; the caller keeps
           its in-memory record as the source of truth
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .progress import ProgressRecord

logger = logging.getLogger(__name__)


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class DatabaseStorage:
    """One escape_progress row per key. Needs an active app context."""

    def get_item(self, key: str) -> Optional[str]:
        from courier.extensions import db
        from .models import EscapeProgress

        row = db.session.get(EscapeProgress, key)
        return row.blob if row else None

    def set_item(self, key: str, value: str) -> None:
        from courier.extensions import db
        from .models import EscapeProgress

        try:
            row = db.session.get(EscapeProgress, key)
            if row is None:
                row = EscapeProgress(storage_key=key, blob=value)
                db.session.add(row)
            else:
                row.blob = value
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def remove_item(self, key: str) -> None:
        from courier.extensions import db
        from .models import EscapeProgress

        try:
            row = db.session.get(EscapeProgress, key)
            if row is not None:
                db.session.delete(row)
                db.session.commit()
        except Exception:
            db.session.rollback()
            raise


class ProgressStore:
    def __init__(self, backend, key: str = "rcp_state"):
        self.backend = backend
        self.key = key

    def load(self) -> ProgressRecord:
        try:
            saved = self.backend.get_item(self.key)
        except Exception as e:
            logger.warning("[escape] progress storage unavailable on load: %s", e)
            return ProgressRecord()
        if not saved:
            return ProgressRecord()
        try:
            return ProgressRecord.loads(saved)
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error("[escape] discarding unreadable progress blob: %s", e)
            return ProgressRecord()

    def save(self, record: ProgressRecord) -> bool:
        try:
            self.backend.set_item(self.key, record.dumps())
            return True
        except Exception as e:
            logger.warning("[escape] failed to save progress: %s", e)
            return False

    def reset(self) -> ProgressRecord:
        record = ProgressRecord()
        self.save(record)
        return record
