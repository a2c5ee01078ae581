"""
Persistence-specific errors.
"""


class PersistenceError(Exception):
    """Base exception for record store operations."""

    pass


class SchemaError(PersistenceError):
    """Schema migration failed."""

    def __init__(self, version: int, reason: str):
        self.version = version
        self.reason = reason
        super().__init__(f"Error applying migration {version}: {reason}")


class DuplicateRecordError(PersistenceError):
    """A row with the same path, guid or import reference already exists."""

    pass


class RecordNotFoundError(PersistenceError):
    """No upload record exists for the requested import reference."""

    def __init__(self, import_reference: int):
        self.import_reference = import_reference
        super().__init__(f"No uploaded file found for import ID {import_reference}")
