"""
UploadPlacement — validate and place an inbound talk recording.

Validation order (each failure deletes the inbound temp file):
1. A file payload is present
2. The guid claim is a non-empty string
3. The guid exists in the schedule
4. The destination stays inside <uploads>/<guid>
5. The filename is not the rendered deliverable name (final.<ext>)
6. Neither the destination file nor a record for the guid exists

On success:
- <uploads>/<guid> is created (idempotent; a failure here still discards)
- The upload record is inserted
- The inbound file is moved into place

A failed move after the insert leaves the record in place. That
window is logged as an inconsistency for the operator to reconcile.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from ..persistence import DuplicateRecordError, UploadRecord, UploadStore
from ..schedule import ScheduleCache
from .errors import (
    DuplicateUploadError,
    InvalidGuidError,
    MissingFileError,
    RelocationError,
    ReservedFilenameError,
    UnknownGuidError,
    UploadError,
)
from .paths import move_exclusive, resolve_upload_destination

logger = logging.getLogger(__name__)


@dataclass
class InboundFile:
    """An uploaded file sitting in the temporary landing directory."""

    temp_path: Path
    original_filename: str
    size: int
    content_type: Optional[str] = None

    def discard(self) -> None:
        """Delete the temporary file, ignoring a file that is already gone."""
        try:
            Path(self.temp_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[Upload] Could not remove temporary file {self.temp_path}: {e}")


class PlacementResult(BaseModel):
    """Outcome of a successful placement."""

    model_config = ConfigDict(frozen=True)

    filename: str
    size: int
    mimetype: Optional[str] = None
    record: UploadRecord


class UploadPlacement:
    """
    Places inbound talk recordings under a guid-scoped directory.

    The only component that creates upload records.
    """

    def __init__(
        self,
        uploads_root: Union[str, Path],
        schedule: ScheduleCache,
        store: UploadStore,
        final_extension: str = "mkv",
    ):
        self.uploads_root = Path(uploads_root)
        self.schedule = schedule
        self.store = store
        self.final_extension = final_extension

    @property
    def reserved_filename(self) -> str:
        return f"final.{self.final_extension}"

    def place(self, inbound: Optional[InboundFile], guid_claim: Any) -> PlacementResult:
        """
        Validate and place an inbound file.

        Args:
            inbound: The temporary inbound file, None if no file was sent
            guid_claim: Guid supplied alongside the file (untrusted)

        Returns:
            PlacementResult with filename, size, content type and the new record

        Raises:
            MissingFileError, InvalidGuidError, UnknownGuidError,
            PathTraversalError, DuplicateUploadError,
            ReservedFilenameError: Validation failures
            RelocationError: The record was inserted but the move failed
        """
        if inbound is None:
            raise MissingFileError()

        try:
            destination, event = self._validate(inbound, guid_claim)
        except UploadError as e:
            logger.info(f"[Upload] Rejected {inbound.original_filename!r}: {e}")
            inbound.discard()
            raise

        guid = guid_claim

        try:
            Path(destination).parent.mkdir(parents=True, exist_ok=True)
            record = self.store.insert_upload(
                path=destination,
                guid=guid,
                import_reference=event.import_reference,
            )
        except DuplicateRecordError as e:
            inbound.discard()
            raise DuplicateUploadError(f"a record for {guid} already exists") from e
        except Exception:
            inbound.discard()
            raise

        try:
            move_exclusive(inbound.temp_path, destination)
        except OSError as e:
            logger.error(
                f"[Inconsistency] Upload record {record.id} (guid {guid}, import ID "
                f"{record.import_reference}) points at {destination}, but moving "
                f"{inbound.temp_path} there failed: {e}"
            )
            raise RelocationError(str(inbound.temp_path), destination, str(e)) from e

        logger.info(
            f"[Upload] Placed {inbound.original_filename} ({inbound.size} bytes) at {destination} "
            f"for import ID {record.import_reference}"
        )
        return PlacementResult(
            filename=inbound.original_filename,
            size=inbound.size,
            mimetype=inbound.content_type,
            record=record,
        )

    def _validate(self, inbound: InboundFile, guid_claim: Any):
        if not isinstance(guid_claim, str) or not guid_claim:
            raise InvalidGuidError()

        event = self.schedule.lookup(guid_claim)
        if event is None:
            raise UnknownGuidError(guid_claim)

        destination = resolve_upload_destination(
            self.uploads_root, guid_claim, inbound.original_filename
        )

        # Matched case-insensitively
        if inbound.original_filename.casefold() == self.reserved_filename.casefold():
            raise ReservedFilenameError(inbound.original_filename)

        if os.path.lexists(destination):
            raise DuplicateUploadError(destination)

        if self.store.get_upload_by_guid(guid_claim) is not None:
            raise DuplicateUploadError(f"a record for {guid_claim} already exists")

        return destination, event
