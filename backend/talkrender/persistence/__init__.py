"""
Persistence layer for uploaded talks.

SQLite-backed record store with numbered migrations.
"""

from .manager import UploadStore, MIGRATIONS
from .models import UploadRecord
from .errors import PersistenceError, SchemaError, DuplicateRecordError, RecordNotFoundError

__all__ = [
    "UploadStore",
    "UploadRecord",
    "MIGRATIONS",
    "PersistenceError",
    "SchemaError",
    "DuplicateRecordError",
    "RecordNotFoundError",
]
