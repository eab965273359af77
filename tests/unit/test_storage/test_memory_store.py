"""Tests for the in-memory student store."""

from __future__ import annotations

import pytest

from llamaproctor.domain.models import StudentRecord
from llamaproctor.storage.base import StorageError, StudentStore
from llamaproctor.storage.memory import InMemoryStudentStore


class TestStudentStoreInterface:
    def test_cannot_instantiate_abstract_class(self) -> None:
        with pytest.raises(TypeError):
            StudentStore()  # type: ignore[abstract]

    def test_storage_error_metadata(self) -> None:
        error = StorageError("down", backend="mongodb", transient=True)
        assert error.backend == "mongodb"
        assert error.transient is True
        assert StorageError("x").transient is False


class TestInMemoryStudentStore:
    @pytest.mark.asyncio
    async def test_requires_connection(self) -> None:
        store = InMemoryStudentStore()
        with pytest.raises(StorageError, match="not connected"):
            await store.get_student("1")

    @pytest.mark.asyncio
    async def test_missing_student_is_none(self, memory_store: InMemoryStudentStore) -> None:
        assert await memory_store.get_student("nobody") is None

    @pytest.mark.asyncio
    async def test_upsert_inserts_then_replaces(
        self, memory_store: InMemoryStudentStore, stored_record: StudentRecord
    ) -> None:
        await memory_store.upsert_student(stored_record)
        replacement = StudentRecord(id=stored_record.id, focus_score=2, history=["Gaming"])
        await memory_store.upsert_student(replacement)

        loaded = await memory_store.get_student(stored_record.id)
        assert loaded.focus_score == 2
        assert loaded.history == ["Gaming"]
        # Full replace: fields of the old document are gone
        assert loaded.name == ""
        assert len(memory_store.documents) == 1

    @pytest.mark.asyncio
    async def test_set_active(
        self, memory_store: InMemoryStudentStore, stored_record: StudentRecord
    ) -> None:
        assert await memory_store.set_active("1", True) is False
        await memory_store.upsert_student(stored_record)
        assert await memory_store.set_active("1", True) is True
        loaded = await memory_store.get_student("1")
        assert loaded.active is True
        assert loaded.focus_score == stored_record.focus_score

    @pytest.mark.asyncio
    async def test_assignments(self, memory_store: InMemoryStudentStore) -> None:
        assert await memory_store.get_assignment("1") == "Read chapter 3 of the biology textbook"
        assert await memory_store.get_assignment("2") is None
        memory_store.set_assignment("2", "Finish the worksheet")
        assert await memory_store.get_assignment("2") == "Finish the worksheet"

    @pytest.mark.asyncio
    async def test_async_context_manager(self) -> None:
        async with InMemoryStudentStore() as store:
            assert await store.get_student("1") is None
        with pytest.raises(StorageError):
            await store.get_student("1")
