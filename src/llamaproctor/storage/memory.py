"""In-memory student store.

Keeps documents in plain dicts. Used for dry runs and tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from llamaproctor.domain.models import StudentRecord
from llamaproctor.storage.base import StorageError, StudentStore

logger = logging.getLogger(__name__)


class InMemoryStudentStore(StudentStore):
    """Dict-backed store with the same upsert semantics as MongoDB."""

    def __init__(self, assignments: dict[str, str] | None = None) -> None:
        self._students: dict[str, dict] = {}
        self._assignments: dict[str, str] = dict(assignments or {})
        self._connected = False

    @property
    def documents(self) -> dict[str, dict]:
        return {k: dict(v) for k, v in self._students.items()}

    async def connect(self) -> None:
        self._connected = True
        logger.info("Using in-memory student store")

    async def disconnect(self) -> None:
        self._connected = False

    def set_assignment(self, classroom: str, description: str) -> None:
        self._assignments[classroom] = description

    async def get_student(self, student_id: str) -> StudentRecord | None:
        self._check_connected()
        document = self._students.get(student_id)
        if document is None:
            return None
        return StudentRecord.from_document(document)

    async def upsert_student(self, record: StudentRecord) -> None:
        self._check_connected()
        self._students[record.id] = record.to_document()
        logger.debug("Upserted student %s (focusScore=%d)", record.id, record.focus_score)

    async def set_active(self, student_id: str, active: bool) -> bool:
        self._check_connected()
        document = self._students.get(student_id)
        if document is None:
            return False
        document["active"] = active
        document["lastUpdated"] = datetime.now(timezone.utc)
        return True

    async def get_assignment(self, classroom: str) -> str | None:
        self._check_connected()
        return self._assignments.get(classroom)

    def _check_connected(self) -> None:
        if not self._connected:
            raise StorageError("In-memory store is not connected", backend="memory")
