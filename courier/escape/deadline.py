# courier/escape/deadline.py
"""
Deadline freeze.

poll() is cheap and safe to call on every tick and before every handler.
The side effect (frozen flag + one activity entry) fires only on the first
poll that sees the deadline passed; later polls are no-ops. Freezing never
touches progress, it only blocks new submissions.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Tuple

from .activity import LogCategory, append_entry
from .clock import is_expired
from .progress import ProgressRecord

logger = logging.getLogger(__name__)

EXPIRY_MESSAGE = "AUTHORIZATION WINDOW CLOSED"


class FreezeMonitor:
    def __init__(self, deadline: dt.datetime):
        self.deadline = deadline
        self.frozen = False

    def poll(self, record: ProgressRecord, now: dt.datetime, tz) -> Tuple[ProgressRecord, bool]:
        """Returns (record, changed). changed is True only on the freezing poll."""
        if self.frozen or not is_expired(now, self.deadline):
            return record, False
        self.frozen = True
        logger.info("deadline %s passed; submissions frozen", self.deadline.isoformat())
        return append_entry(record, EXPIRY_MESSAGE, LogCategory.WARNING, now, tz), True
