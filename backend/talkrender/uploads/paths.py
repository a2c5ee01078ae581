"""
Destination path resolution and exclusive file moves.

Uploads land at <uploads root>/<guid>/<original filename>. Both the guid
and the filename must be single plain path components, and the
normalized result must stay inside <uploads root>/<guid>.
"""

import errno
import os
import shutil
from pathlib import Path
from typing import Union

from .errors import PathTraversalError

PathLike = Union[str, Path]


def _check_component(value: str, label: str) -> None:
    """Reject anything that is not one plain path component."""
    if not value:
        raise PathTraversalError(f"empty {label}")
    if "\x00" in value:
        raise PathTraversalError(f"NUL byte in {label}")
    if value in (".", ".."):
        raise PathTraversalError(f"{label} '{value}' is a relative directory reference")
    if os.path.isabs(value):
        raise PathTraversalError(f"{label} '{value}' is an absolute path")
    separators = {"/", "\\", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    if any(sep in value for sep in separators):
        raise PathTraversalError(f"{label} '{value}' contains a path separator")


def _is_within(base: str, candidate: str) -> bool:
    try:
        return os.path.commonpath([base, candidate]) == base
    except ValueError:
        # Different drives on Windows
        return False


def resolve_upload_destination(uploads_root: PathLike, guid: str, filename: str) -> str:
    """
    Compute the destination for an upload, rejecting path traversal.

    The check is lexical: it never touches the filesystem.

    Args:
        uploads_root: Root uploads directory
        guid: Schedule guid naming the subdirectory
        filename: Original client filename

    Returns:
        Normalized destination path, relative if uploads_root is relative

    Raises:
        PathTraversalError: If guid or filename could place the file
            outside <uploads_root>/<guid>
    """
    _check_component(guid, "guid")
    _check_component(filename, "filename")

    destination = os.path.normpath(os.path.join(str(uploads_root), guid, filename))

    root_abs = os.path.abspath(str(uploads_root))
    guid_abs = os.path.abspath(os.path.join(root_abs, guid))
    destination_abs = os.path.abspath(destination)

    if not _is_within(root_abs, guid_abs) or guid_abs == root_abs:
        raise PathTraversalError(f"guid '{guid}' escapes the uploads directory")
    if not _is_within(guid_abs, destination_abs) or destination_abs == guid_abs:
        raise PathTraversalError(f"filename '{filename}' escapes the upload directory for {guid}")

    return destination


def move_exclusive(source: PathLike, destination: PathLike) -> None:
    """
    Move a file without ever replacing an existing destination.

    Same filesystem: hard link then unlink the source. Across devices:
    exclusive-create the destination, copy, then unlink the source.

    Raises:
        FileExistsError: If the destination already exists
        OSError: On any other filesystem failure
    """
    source = str(source)
    destination = str(destination)

    try:
        os.link(source, destination)
    except OSError as e:
        if e.errno not in (errno.EXDEV, errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP):
            raise
        # Hard links unavailable here
        with open(source, "rb") as src, open(destination, "xb") as dst:
            shutil.copyfileobj(src, dst)
        shutil.copystat(source, destination)

    os.unlink(source)
