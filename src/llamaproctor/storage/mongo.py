"""MongoDB student store.

Stores one document per student in the ``students`` collection (keyed
by the ``id`` field, not ``_id``) and reads classroom tasks from the
``assignments`` collection. pymongo is blocking, so every call runs in
the default thread pool executor.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ExecutionTimeout, PyMongoError, WTimeoutError

from llamaproctor.domain.models import StudentRecord
from llamaproctor.storage.base import StorageError, StudentStore
from llamaproctor.utils.logging import mask_credentials

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (ConnectionFailure, ExecutionTimeout, WTimeoutError)


class MongoStudentStore(StudentStore):
    """Student store backed by a MongoDB (Atlas) deployment."""

    def __init__(
        self,
        uri: str,
        database: str = "LlamaProctorDB",
        students_collection: str = "students",
        assignments_collection: str = "assignments",
        timeout_ms: int = 5000,
        client_factory: Callable[..., Any] = MongoClient,
    ) -> None:
        self._uri = uri
        self._database_name = database
        self._students_name = students_collection
        self._assignments_name = assignments_collection
        self._timeout_ms = timeout_ms
        self._client_factory = client_factory
        self._client = None
        self._students = None
        self._assignments = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Create the client and verify the deployment answers a ping."""
        if self._client is not None:
            return
        logger.info("Connecting to MongoDB at %s", mask_credentials(self._uri))
        client = self._client_factory(
            self._uri,
            serverSelectionTimeoutMS=self._timeout_ms,
            tz_aware=True,
        )
        try:
            await self._run(client.admin.command, "ping")
        except StorageError:
            client.close()
            raise
        database = client[self._database_name]
        self._client = client
        self._students = database[self._students_name]
        self._assignments = database[self._assignments_name]
        logger.info(
            "MongoDB connection established (database=%s, collection=%s)",
            self._database_name, self._students_name,
        )

    async def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("Disconnected from MongoDB")
        self._client = None
        self._students = None
        self._assignments = None

    async def get_student(self, student_id: str) -> StudentRecord | None:
        collection = self._require(self._students)
        document = await self._run(collection.find_one, {"id": student_id})
        if document is None:
            logger.debug("No stored document for student %s", student_id)
            return None
        try:
            return StudentRecord.from_document(document)
        except ValidationError as e:
            raise StorageError(
                f"Stored document for student {student_id} is invalid: {e}",
                backend="mongodb",
            ) from e

    async def upsert_student(self, record: StudentRecord) -> None:
        collection = self._require(self._students)
        document = record.to_document()
        result = await self._run(
            partial(collection.replace_one, {"id": record.id}, document, upsert=True)
        )
        logger.debug(
            "Upserted student %s (matched=%d, modified=%d, upserted_id=%s)",
            record.id, result.matched_count, result.modified_count, result.upserted_id,
        )

        # Read back to confirm the write is visible
        found = await self._run(collection.find_one, {"id": record.id}, {"_id": 1})
        if found is None:
            raise StorageError(
                f"Document verification failed after upsert of student {record.id}",
                backend="mongodb",
            )

    async def set_active(self, student_id: str, active: bool) -> bool:
        collection = self._require(self._students)
        update = {"$set": {"active": active, "lastUpdated": datetime.now(timezone.utc)}}
        result = await self._run(collection.update_one, {"id": student_id}, update)
        if result.matched_count == 0:
            logger.warning("No stored document for student %s, active flag not set", student_id)
            return False
        logger.info("Student %s marked %s", student_id, "active" if active else "inactive")
        return True

    async def get_assignment(self, classroom: str) -> str | None:
        collection = self._require(self._assignments)
        document = await self._run(collection.find_one, {"classroom": classroom})
        if document is None:
            return None
        description = document.get("description")
        if not isinstance(description, str):
            raise StorageError(
                f"Assignment for classroom {classroom} has no description field",
                backend="mongodb",
            )
        return description

    def _require(self, collection: Any) -> Any:
        if collection is None:
            raise StorageError("MongoDB collection not available", backend="mongodb")
        return collection

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking pymongo call in the executor, mapping its errors."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except _TRANSIENT_ERRORS as e:
            raise StorageError(
                f"MongoDB unavailable: {e}", backend="mongodb", transient=True
            ) from e
        except PyMongoError as e:
            raise StorageError(f"MongoDB operation failed: {e}", backend="mongodb") from e
