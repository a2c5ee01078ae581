"""
Upload placement for raw talk recordings.
"""

from .placement import UploadPlacement, InboundFile, PlacementResult
from .paths import resolve_upload_destination, move_exclusive
from .errors import (
    UploadError,
    MissingFileError,
    InvalidGuidError,
    UnknownGuidError,
    PathTraversalError,
    DuplicateUploadError,
    ReservedFilenameError,
    UploadTooLargeError,
    RelocationError,
)

__all__ = [
    "UploadPlacement",
    "InboundFile",
    "PlacementResult",
    "resolve_upload_destination",
    "move_exclusive",
    "UploadError",
    "MissingFileError",
    "InvalidGuidError",
    "UnknownGuidError",
    "PathTraversalError",
    "DuplicateUploadError",
    "ReservedFilenameError",
    "UploadTooLargeError",
    "RelocationError",
]
