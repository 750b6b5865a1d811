"""JSONL event log written alongside each run when a log root is configured."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)


class RunEventLog:
    """Writes one JSON line per processed step."""

    def __init__(self, run_id: str, path: Path) -> None:
        self.run_id = run_id
        self.path = path
        self._events_file = path.open("a", encoding="utf-8")

    def log_event(
        self,
        *,
        step_index: int,
        step_type: str,
        outcome: str,
        detail: str = "",
    ) -> None:
        payload = {
            "ts": time.time(),
            "run_id": self.run_id,
            "step": step_index + 1,
            "type": step_type,
            "outcome": outcome,
            "detail": detail,
        }
        self._events_file.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self._events_file.flush()

    def close(self) -> None:
        try:
            self._events_file.close()
        except OSError as exc:
            log.debug("Failed to close event log %s: %s", self.path, exc)


def prepare_event_log(run_id: str, log_root: Optional[Path]) -> Optional[RunEventLog]:
    if log_root is None:
        return None
    base_dir = log_root / run_id
    base_dir.mkdir(parents=True, exist_ok=True)
    return RunEventLog(run_id, base_dir / "events.jsonl")
