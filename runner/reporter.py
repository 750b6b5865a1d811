"""Accumulates per-step evidence and turns it into the run result."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from .structured_logging import RunEventLog

ScreenshotStatus = Literal["success", "warning", "failed"]
RunStatus = Literal["success", "failed"]


@dataclass(slots=True)
class ScreenshotRecord:
    step_index: int
    image: bytes
    status: ScreenshotStatus

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stepIndex": self.step_index,
            "image": "data:image/png;base64," + base64.b64encode(self.image).decode("ascii"),
            "status": self.status,
        }


@dataclass(slots=True)
class RunResult:
    """Structured payload returned to the caller of ``/run``."""

    status: RunStatus
    logs: List[str]
    screenshots: List[ScreenshotRecord]
    message: Optional[str] = None
    note: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "logs": list(self.logs),
            "screenshots": [shot.as_dict() for shot in self.screenshots],
        }
        if self.message is not None:
            payload["message"] = self.message
        if self.note is not None:
            payload["note"] = self.note
        return payload


class RunReporter:
    """Append-only log and screenshot store for a single run.

    Screenshots carry their step index explicitly, so a step whose capture
    failed simply has no entry.
    """

    def __init__(self, event_log: Optional[RunEventLog] = None) -> None:
        self._logs: List[str] = []
        self._screenshots: List[ScreenshotRecord] = []
        self._failure: Optional[str] = None
        self.has_assertion_failure = False
        self.last_failure_message: Optional[str] = None
        self._event_log = event_log

    @property
    def logs(self) -> List[str]:
        return list(self._logs)

    @property
    def screenshots(self) -> List[ScreenshotRecord]:
        return list(self._screenshots)

    @property
    def failed(self) -> bool:
        return self._failure is not None

    def log_step(self, step_index: int, step_type: str, outcome: str, detail: str = "") -> str:
        line = f"Step {step_index + 1} [{step_type}] {outcome}"
        if detail:
            line = f"{line}: {detail}"
        self._logs.append(line)
        if self._event_log is not None:
            self._event_log.log_event(step_index=step_index, step_type=step_type, outcome=outcome, detail=detail)
        return line

    def add_screenshot(self, step_index: int, image: bytes, status: ScreenshotStatus) -> None:
        self._screenshots.append(ScreenshotRecord(step_index=step_index, image=image, status=status))

    def mark_lenient(self, message: str) -> None:
        self.has_assertion_failure = True
        self.last_failure_message = message

    def fail(self, message: str) -> None:
        if self._failure is None:
            self._failure = message

    def snapshot(self) -> RunResult:
        if self._failure is not None:
            return RunResult(
                status="failed",
                logs=self.logs,
                screenshots=self.screenshots,
                message=self._failure,
            )
        note = None
        if self.has_assertion_failure:
            note = f"Final step assertion mismatch ignored: {self.last_failure_message}"
        return RunResult(status="success", logs=self.logs, screenshots=self.screenshots, note=note)
