"""Execution history and test-case result persistence."""

from __future__ import annotations

import json
import logging
import shutil
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .reporter import RunResult

log = logging.getLogger(__name__)

TEST_CASES = "testCases"
EXECUTIONS = "executions"


@dataclass(slots=True)
class ExecutionRecord:
    test_case_id: str
    status: str
    duration: float
    logs: List[str] = field(default_factory=list)
    executed_by: Optional[str] = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "testCaseId": self.test_case_id,
            "status": self.status,
            "duration": self.duration,
            "logs": list(self.logs),
            "executedBy": self.executed_by,
            "timestamp": self.timestamp,
        }


class DataStoreClient(Protocol):
    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def update_document(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None: ...

    def add_document(self, collection: str, document: Dict[str, Any]) -> str: ...

    def list_documents(self, collection: str) -> List[Dict[str, Any]]: ...


def build_test_case_update(result: RunResult, current_round: int) -> Dict[str, Any]:
    """Fields written to a test case once its automation run has finished."""

    if result.ok:
        summary = f"Automation passed: {len(result.logs)} step(s) completed."
        if result.note:
            summary = f"{summary} {result.note}"
        return {
            "status": "Passed",
            "round": current_round + 1,
            "screenshots": [shot.as_dict() for shot in result.screenshots],
            "actualResult": summary,
        }
    return {
        "status": "Failed",
        "actualResult": f"Automation failed: {result.message}",
    }


def record_run(
    store: DataStoreClient,
    *,
    test_case_id: str,
    result: RunResult,
    duration: float,
    executed_by: Optional[str] = None,
) -> ExecutionRecord:
    """Persist the outcome of a run against a test case.

    The execution record is appended even when the test case document is
    missing.
    """

    current = store.get_document(TEST_CASES, test_case_id)
    if current is None:
        log.warning("Test case %s not found in store; only recording execution", test_case_id)
    else:
        try:
            current_round = int(current.get("round") or 1)
        except (TypeError, ValueError):
            current_round = 1
        store.update_document(TEST_CASES, test_case_id, build_test_case_update(result, current_round))

    record = ExecutionRecord(
        test_case_id=test_case_id,
        status="Passed" if result.ok else "Failed",
        duration=round(duration, 3),
        logs=list(result.logs),
        executed_by=executed_by,
    )
    store.add_document(EXECUTIONS, record.as_dict())
    return record


class JsonFileStore:
    """Tiny document store persisted as a single JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        if not self.path.exists():
            return {}
        content = self.path.read_text(encoding="utf-8").strip()
        if not content:
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            backup = self.path.with_name(self.path.name + ".corrupted.bak")
            log.error("Data store %s is not valid JSON (%s); moving it to %s", self.path, exc, backup)
            shutil.move(str(self.path), str(backup))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.path.with_name(self.path.name + ".tmp")
        with temp_file.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
        shutil.move(str(temp_file), str(self.path))

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            document = self._load().get(collection, {}).get(doc_id)
        return dict(document) if document is not None else None

    def update_document(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            data = self._load()
            documents = data.setdefault(collection, {})
            document = documents.setdefault(doc_id, {})
            document.update(fields)
            document["timestamp"] = int(time.time() * 1000)
            self._save(data)

    def add_document(self, collection: str, document: Dict[str, Any]) -> str:
        with self._lock:
            data = self._load()
            documents = data.setdefault(collection, {})
            doc_id = f"{collection[:3].upper()}-{int(time.time() * 1000)}-{len(documents) + 1}"
            documents[doc_id] = dict(document)
            self._save(data)
        return doc_id

    def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            documents = self._load().get(collection, {})
        return [dict(doc, id=doc_id) for doc_id, doc in documents.items()]
