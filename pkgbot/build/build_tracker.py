"""
Build Tracker Module - Tracks per-run counters and the failed-items list
"""

import time
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


class BuildTracker:
    """Checked / updated / skipped / failed bookkeeping for one run"""

    def __init__(self):
        self.checked = 0
        self.updated: List[str] = []
        self.skipped: List[str] = []
        self.failed: List[str] = []

        self.start_time = time.time()

    def record_checked(self, name: str):
        self.checked += 1

    def record_updated(self, name: str, version: str = ""):
        self.updated.append(name)
        logger.info(f"RUN_UPDATED pkg={name} ver={version or '-'}")

    def record_skipped(self, name: str, reason: str = ""):
        self.skipped.append(name)
        logger.debug(f"RUN_SKIPPED pkg={name} reason={reason or '-'}")

    def record_failed(self, name: str, reason: str = ""):
        if name not in self.failed:
            self.failed.append(name)
        logger.warning(f"⚠️ Continuing after failure in: {name}" + (f" ({reason})" if reason else ""))

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def get_elapsed_time(self) -> float:
        return time.time() - self.start_time

    def get_summary(self) -> Dict:
        return {
            "checked": self.checked,
            "updated": len(self.updated),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "failed_items": list(self.failed),
            "elapsed": round(self.get_elapsed_time(), 2),
        }

    def summary_line(self) -> str:
        return f"Checked: {self.checked} | Updated/acted: {len(self.updated)} | Failed: {len(self.failed)}"
