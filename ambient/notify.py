"""
Toast-style notification feed: the only user feedback channel of the subsystem.
"""
from __future__ import annotations
from collections import deque
from typing import Deque, List
import itertools
import logging
import time

from ambient.models import Notification

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

class Notifier:
    """Bounded in-memory feed of short human-readable notifications."""
    def __init__(self, limit: int = 50):
        self._feed: Deque[Notification] = deque(maxlen=max(1, int(limit)))
        self._ids = itertools.count(1)

    def push(self, level: str, message: str) -> Notification:
        note = Notification(id=next(self._ids), level=level, message=message, ts=time.time())
        self._feed.append(note)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), f"[notify] {level}: {message}")
        return note

    def success(self, message: str) -> Notification:
        return self.push("success", message)

    def info(self, message: str) -> Notification:
        return self.push("info", message)

    def warning(self, message: str) -> Notification:
        return self.push("warning", message)

    def error(self, message: str) -> Notification:
        return self.push("error", message)

    def since(self, after_id: int = 0) -> List[Notification]:
        return [n for n in self._feed if n.id > after_id]

    def latest(self) -> Notification | None:
        return self._feed[-1] if self._feed else None
