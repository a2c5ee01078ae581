"""
Upload placement errors.

Every validation error is raised before any store or filesystem
mutation, after the inbound temporary file has been removed.
"""


class UploadError(Exception):
    """Base exception for upload placement failures."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MissingFileError(UploadError):
    """No file payload was supplied."""

    def __init__(self):
        super().__init__("No file was uploaded.")


class InvalidGuidError(UploadError):
    """The guid claim is missing or not a non-empty string."""

    def __init__(self):
        super().__init__("Please provide a valid GUID.")


class UnknownGuidError(UploadError):
    """The guid is not part of the current schedule."""

    def __init__(self, guid: str):
        self.guid = guid
        super().__init__(
            f"GUID {guid} does not exist in the schedule. "
            "Please create the event first in the import tool."
        )


class PathTraversalError(UploadError):
    """The destination would escape its guid directory under the uploads root."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid file path: {detail}")


class DuplicateUploadError(UploadError):
    """A file or record for this talk already exists."""

    status_code = 409

    def __init__(self, detail: str):
        super().__init__(f"File already exists: {detail}")


class ReservedFilenameError(DuplicateUploadError):
    """The filename collides with the rendered deliverable of the talk."""

    def __init__(self, filename: str):
        self.filename = filename
        UploadError.__init__(
            self, f"File name {filename} is reserved for the rendered video. Please rename the file."
        )


class UploadTooLargeError(UploadError):
    """Inbound body exceeded the configured maximum size."""

    status_code = 413

    def __init__(self, limit_bytes: int):
        self.limit_bytes = limit_bytes
        super().__init__(f"File exceeds the maximum upload size of {limit_bytes} bytes.")


class RelocationError(UploadError):
    """
    Moving the inbound file to its destination failed.

    The upload record has already been inserted at this point.
    """

    status_code = 500

    def __init__(self, source: str, destination: str, reason: str):
        self.source = source
        self.destination = destination
        self.reason = reason
        super().__init__(f"Failed to upload file: could not move to {destination}: {reason}")
