# server/challenge.py
from __future__ import annotations

import logging
import threading
from typing import Any, Dict

from server.intents import GenerateImage, Intent

log = logging.getLogger(__name__)


class DailyChallenge:
    """
    One-shot bonus for asking for a picture containing `phrase`.

    Lives for the whole process on app.state: created at startup, completed at
    most once, never persisted and never reset. Request handlers run on worker
    threads, so completion is taken under a lock.
    """

    def __init__(
        self,
        title: str = "Generate a pic of a 'Space Pizza'! 🍕",
        points: int = 50,
        phrase: str = "space pizza",
    ):
        self.title = title
        self.points = points
        self.phrase = phrase.lower()
        self.completed = False
        self.bonus_stars = 0
        self._lock = threading.Lock()

    def register(self, intent: Intent, text: str) -> int:
        """Returns the points awarded by this message (0 unless it completes the challenge)."""
        if not isinstance(intent, GenerateImage) or self.phrase not in text.lower():
            return 0
        with self._lock:
            if self.completed:
                return 0
            self.completed = True
            self.bonus_stars += self.points
        log.info("[challenge] completed %r, +%d stars", self.title, self.points)
        return self.points

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "title": self.title,
                "points": self.points,
                "completed": self.completed,
                "bonus_stars": self.bonus_stars,
            }
