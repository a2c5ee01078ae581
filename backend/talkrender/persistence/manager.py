"""
SQLite record store for uploaded talks.

Single-file SQLite database. Every public method is a point operation
on its own connection: commit on success, rollback on failure.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from .errors import DuplicateRecordError, PersistenceError, RecordNotFoundError, SchemaError
from .models import UploadRecord

logger = logging.getLogger(__name__)


# Numbered schema migrations, applied in ascending order
MIGRATIONS: Dict[int, str] = {
    1: """
        CREATE TABLE IF NOT EXISTS uploaded_files (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            path TEXT NOT NULL UNIQUE,
            import_guid TEXT NOT NULL UNIQUE,
            import_id INTEGER NOT NULL UNIQUE,
            rendered INTEGER NOT NULL DEFAULT 0,
            uploaded_at TEXT NOT NULL
        )
    """,
    2: """
        ALTER TABLE uploaded_files ADD COLUMN rendered_at TEXT
    """,
}


class UploadStore:
    """
    Durable mapping from import reference to raw upload location.

    Stores:
    - Raw upload path (unique)
    - Schedule guid (unique)
    - Import reference (unique)
    - Rendered flag and timestamps

    Single writers: UploadPlacement creates rows,
    RenderOrchestrator sets the rendered flag.
    """

    def __init__(self, db_path: Union[str, Path, None] = None):
        """
        Initialize the store.

        The schema is not touched until bootstrap() is called.

        Args:
            db_path: Path to SQLite database file (defaults to ./db.sqlite)
        """
        if db_path is None:
            db_path = Path.cwd() / "db.sqlite"

        self.db_path = str(db_path)

    @contextmanager
    def _connect(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Error opening database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except PersistenceError:
            conn.rollback()
            raise
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise DuplicateRecordError(f"Upload record already exists: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    # Schema

    def bootstrap(self) -> List[int]:
        """
        Apply pending migrations in ascending order.

        Already-applied migrations are skipped. The first failure stops
        the loop; later migrations are not attempted.

        Returns:
            Migration ids applied by this call

        Raises:
            SchemaError: If a migration fails
        """
        applied: List[int] = []

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS migrations (id INTEGER PRIMARY KEY)")
            row = conn.execute("SELECT MAX(id) AS id FROM migrations").fetchone()
            current_version = row["id"] or 0

        for version in sorted(MIGRATIONS):
            if version <= current_version:
                continue

            try:
                with self._connect() as conn:
                    conn.execute(MIGRATIONS[version])
                    conn.execute("INSERT INTO migrations (id) VALUES (?)", (version,))
            except PersistenceError as e:
                logger.error(f"[Store] Error applying migration {version}: {e}")
                raise SchemaError(version, str(e)) from e

            logger.info(f"[Store] Migration {version} applied successfully.")
            applied.append(version)

        return applied

    def schema_version(self) -> int:
        """Highest applied migration id, 0 for a fresh database."""
        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS migrations (id INTEGER PRIMARY KEY)")
            row = conn.execute("SELECT MAX(id) AS id FROM migrations").fetchone()
            return row["id"] or 0

    # Upload records

    def insert_upload(self, path: str, guid: str, import_reference: int) -> UploadRecord:
        """
        Insert a new, not yet rendered, upload record.

        Raises:
            DuplicateRecordError: If path, guid or import reference is already recorded
        """
        uploaded_at = datetime.now().isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO uploaded_files (path, import_guid, import_id, rendered, uploaded_at)
                VALUES (?, ?, ?, 0, ?)
                """,
                (path, guid, import_reference, uploaded_at),
            )
            record_id = cursor.lastrowid

        logger.info(f"[Store] Recorded upload {path} for guid {guid} (import ID {import_reference})")
        return UploadRecord(
            id=record_id,
            path=path,
            import_guid=guid,
            import_reference=import_reference,
            rendered=False,
            uploaded_at=uploaded_at,
        )

    def get_upload_by_import_reference(self, import_reference: int) -> Optional[UploadRecord]:
        """Load the record for an import reference, None if absent."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM uploaded_files WHERE import_id = ?", (import_reference,)
            ).fetchone()
            return self._row_to_record(row) if row else None

    def get_upload_by_guid(self, guid: str) -> Optional[UploadRecord]:
        """Load the record for a schedule guid, None if absent."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM uploaded_files WHERE import_guid = ?", (guid,)
            ).fetchone()
            return self._row_to_record(row) if row else None

    def mark_rendered(self, import_reference: int) -> UploadRecord:
        """
        Set the rendered flag.

        Idempotent: rendered_at keeps the time of the first transition.

        Raises:
            RecordNotFoundError: If no record exists for the import reference
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE uploaded_files
                SET rendered = 1, rendered_at = COALESCE(rendered_at, ?)
                WHERE import_id = ?
                """,
                (datetime.now().isoformat(), import_reference),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(import_reference)
            row = conn.execute(
                "SELECT * FROM uploaded_files WHERE import_id = ?", (import_reference,)
            ).fetchone()
            return self._row_to_record(row)

    def list_uploads(self) -> List[UploadRecord]:
        """All upload records, oldest first."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM uploaded_files ORDER BY id").fetchall()
            return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> UploadRecord:
        return UploadRecord(
            id=row["id"],
            path=row["path"],
            import_guid=row["import_guid"],
            import_reference=row["import_id"],
            rendered=bool(row["rendered"]),
            uploaded_at=row["uploaded_at"],
            rendered_at=row["rendered_at"],
        )
