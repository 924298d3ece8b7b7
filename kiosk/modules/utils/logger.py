"""
Logging setup and the kiosk event log.
"""

import os
import time
import logging
import logging.handlers
from collections import deque


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure the root logger: compact console output plus an optional rotating file."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-40s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    # aiohttp and mediapipe are chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    return root_logger


class KioskEventLogger:
    """Bounded history of visitor-facing events, logged on ``kiosk_events``."""

    def __init__(self, max_history: int = 200):
        self.logger = logging.getLogger("kiosk_events")
        self._history = deque(maxlen=max_history)

    def _record(self, kind: str, **fields):
        entry = {"timestamp": time.time(), "kind": kind}
        entry.update(fields)
        self._history.append(entry)
        return entry

    def log_trigger(self, distance: float):
        self._record("trigger", distance=distance)
        self.logger.info("Trigger:  distance %.2f", distance)

    def log_profile(self, visitors: int, display: dict):
        self._record("profile", visitors=visitors, display=display)
        self.logger.info("Profile:  %d visitor(s) | age %s | %s | %s",
                         visitors, display.get("age"), display.get("gender"),
                         display.get("expression"))

    def log_gesture(self, gesture_name: str, target=None, accepted: bool = True):
        self._record("gesture", gesture=gesture_name, target=target, accepted=accepted)
        self.logger.info("Gesture:  %-12s | -> %-8s | %s", gesture_name,
                         target or "none", "accepted" if accepted else "locked")

    def log_recommendation(self, item_ids, featured=None):
        self._record("recommendation", items=list(item_ids), featured=featured)
        self.logger.info("Picks:    %s | featured: %s", ", ".join(item_ids) or "-",
                         featured or "-")

    def log_reset(self, generation: int):
        self._record("reset", generation=generation)
        self.logger.info("Reset:    session generation %d", generation)

    def get_history(self, last_n=None, kind=None):
        entries = [e for e in self._history if kind is None or e["kind"] == kind]
        if last_n:
            return entries[-last_n:]
        return entries

    @property
    def total_events(self) -> int:
        return len(self._history)
