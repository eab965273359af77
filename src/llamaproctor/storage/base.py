"""Abstract base class for the student document store.

The store keeps one document per student, keyed by the student id, and
the current assignment of each classroom. Implementations translate
these operations to a concrete backend (MongoDB, in-memory).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from llamaproctor.domain.models import StudentRecord

logger = logging.getLogger(__name__)


class StudentStore(ABC):
    """Abstract interface for persisting student focus records.

    Example usage::

        async with MongoStudentStore(uri) as store:
            record = await store.get_student("1")
            await store.upsert_student(record)
    """

    @abstractmethod
    async def connect(self) -> None:
        """Establish the connection to the backend.

        Raises:
            StorageError: If the backend cannot be reached.
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend connection. Safe to call multiple times."""
        ...

    @abstractmethod
    async def get_student(self, student_id: str) -> StudentRecord | None:
        """Look up a student's record; ``None`` when none was stored yet."""
        ...

    @abstractmethod
    async def upsert_student(self, record: StudentRecord) -> None:
        """Insert the record, or fully replace the one with the same id.

        Raises:
            StorageError: If the write fails or cannot be verified.
        """
        ...

    @abstractmethod
    async def set_active(self, student_id: str, active: bool) -> bool:
        """Update only the liveness flag and timestamp of a student.

        Returns:
            True if a stored record was updated.
        """
        ...

    @abstractmethod
    async def get_assignment(self, classroom: str) -> str | None:
        """Return the current task description for a classroom, if any."""
        ...

    async def __aenter__(self) -> StudentStore:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()


class StorageError(Exception):
    """Raised when a store operation fails.

    ``transient`` marks failures (network, timeouts) where retrying the
    same operation may succeed.
    """

    def __init__(self, message: str, backend: str = "", transient: bool = False) -> None:
        super().__init__(message)
        self.backend = backend
        self.transient = transient
