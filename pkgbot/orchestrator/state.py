"""
Advisory run report

Statuses are recomputed on every run and never read back from here; the file
is an audit trail for humans and other tools.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class BuildState:
    """Collects per-package rows and writes them as one JSON document"""

    def __init__(self, state_file=None):
        self.state_file = Path(state_file) if state_file else None
        self.rows: List[Dict[str, Any]] = []
        self.started = datetime.now().isoformat()

    def record(self, name: str, **fields):
        row = {'name': name}
        row.update(fields)
        self.rows.append(row)

    def to_dict(self, summary: Dict[str, Any] = None) -> Dict[str, Any]:
        return {
            'started': self.started,
            'finished': datetime.now().isoformat(),
            'packages': list(self.rows),
            'summary': summary or {},
        }

    def save_state(self, summary: Dict[str, Any] = None):
        """Write the report if a file was configured"""
        if not self.state_file:
            return

        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_file, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(summary), f, indent=2)
            logger.info(f"Run report written to {self.state_file}")
        except OSError as e:
            # Advisory only; the run result does not depend on it
            logger.warning(f"Could not write run report {self.state_file}: {e}")
