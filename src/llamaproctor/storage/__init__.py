"""Student document storage for llamaproctor.

Public API:
    StudentStore -- Abstract base class
    StorageError -- Raised on backend failures
    InMemoryStudentStore -- Dict-backed store
    MongoStudentStore -- pymongo implementation
"""

from llamaproctor.storage.base import StorageError, StudentStore
from llamaproctor.storage.memory import InMemoryStudentStore

__all__ = ["InMemoryStudentStore", "MongoStudentStore", "StorageError", "StudentStore"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "MongoStudentStore":
        from llamaproctor.storage.mongo import MongoStudentStore
        return MongoStudentStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
